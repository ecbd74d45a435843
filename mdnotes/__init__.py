"""mdnotes: export reference library items and their notes to Markdown."""

__version__ = "0.1.0"
