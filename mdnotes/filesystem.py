"""Local file system adapter used by the exporter."""

from __future__ import annotations

import os
from pathlib import Path


class LocalFileSystem:
    """Read and write UTF-8 Markdown files on the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # newline="\n" keeps output identical across platforms.
        with target.open("w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)

    def file_path(self, directory: Path | str, name: str) -> Path:
        base = Path(os.path.normpath(Path(directory).expanduser()))
        return base / f"{name}.md"

    def path_to_uri(self, path: Path | str) -> str:
        return Path(path).expanduser().absolute().as_uri()


__all__ = ["LocalFileSystem"]
