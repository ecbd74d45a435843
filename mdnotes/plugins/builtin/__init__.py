"""Plugins bundled with mdnotes."""
