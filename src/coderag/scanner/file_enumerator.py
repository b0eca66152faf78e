"""Enumerate indexable files of a repository.

Include, exclude and ``.gitignore`` patterns all use git's wildmatch rules
through ``pathspec``: a pattern without a slash matches at any depth, ``**``
crosses directories and ``.gitignore`` negations re-include paths.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional

import pathspec

from coderag.config import FilesConfig
from coderag.models import FileInfo, Language
from coderag.utils.languages import detect_language

LOGGER = logging.getLogger(__name__)

ALWAYS_IGNORED = (".git/",)


def build_spec(patterns: Iterable[str]) -> pathspec.GitIgnoreSpec:
    return pathspec.GitIgnoreSpec.from_lines(list(patterns))


def load_gitignore(repo_path: Path) -> Optional[pathspec.GitIgnoreSpec]:
    """Compile the repository's top-level ``.gitignore``, or ``None`` if there is none."""
    path = repo_path / ".gitignore"
    if not path.is_file():
        return None
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            return pathspec.GitIgnoreSpec.from_lines(handle)
    except OSError as exc:
        LOGGER.warning("Could not read %s: %s", path, exc)
        return None


class FileEnumerator:
    """Lists files matching include patterns, minus excludes, dotfiles and ignored paths."""

    def __init__(self, config: FilesConfig) -> None:
        self.respect_gitignore = config.respect_gitignore
        self.include_spec = build_spec(config.include)
        self.exclude_spec = build_spec([*config.exclude, *ALWAYS_IGNORED])

    def enumerate_files(self, repo_path: Path | str) -> List[FileInfo]:
        root = Path(repo_path)
        gitignore = load_gitignore(root) if self.respect_gitignore else None
        found: Dict[str, FileInfo] = {}

        for candidate in root.rglob("*"):
            relative = candidate.relative_to(root).as_posix()
            if relative in found or not candidate.is_file():
                continue
            if any(part.startswith(".") for part in PurePosixPath(relative).parts):
                continue
            if not self.include_spec.match_file(relative) or self.exclude_spec.match_file(relative):
                continue
            if gitignore is not None and gitignore.match_file(relative):
                continue
            info = self.file_info(root, relative)
            if info.language is Language.UNKNOWN:
                continue
            found[relative] = info

        LOGGER.debug("Enumerated %d files in %s", len(found), root)
        return [found[key] for key in sorted(found)]

    def file_info(self, repo_path: Path | str, relative_path: str) -> FileInfo:
        extension = PurePosixPath(relative_path).suffix.lower()
        return FileInfo(
            absolute_path=str(Path(repo_path) / relative_path),
            relative_path=relative_path,
            language=detect_language(extension),
            extension=extension,
        )

    def is_ignored(self, repo_path: Path | str, relative_path: str) -> bool:
        if not self.respect_gitignore:
            return False
        gitignore = load_gitignore(Path(repo_path))
        return gitignore is not None and gitignore.match_file(relative_path)
