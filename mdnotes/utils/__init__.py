"""Shared helpers for mdnotes."""
