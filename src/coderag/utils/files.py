"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path


def read_source_file(path: Path | str) -> str:
    """Read a source file as UTF-8, replacing undecodable bytes."""
    with Path(path).open("r", encoding="utf-8", errors="replace", newline="") as handle:
        content = handle.read()
    return content.replace("\r\n", "\n")


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
