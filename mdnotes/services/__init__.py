"""Service layer orchestrating mdnotes workflows."""
