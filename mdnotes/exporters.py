"""Errors raised while building or writing Markdown exports."""

from __future__ import annotations


class ExportError(RuntimeError):
    """Raised when a record cannot be rendered or written."""


class TemplateMissingError(ExportError):
    """Raised when a template is in neither the user directory nor the defaults."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Template '{name}' not found")
        self.name = name


__all__ = ["ExportError", "TemplateMissingError"]
