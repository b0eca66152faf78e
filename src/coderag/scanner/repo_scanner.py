"""Discover git repositories below a root directory."""

from __future__ import annotations

import fnmatch
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from coderag.config import RepositoriesConfig
from coderag.models import Repository

LOGGER = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30
DEFAULT_BRANCH = "main"


class GitError(RuntimeError):
    """A git command failed or timed out."""


def run_git(repo_path: Path, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"git {' '.join(args)} timed out in {repo_path}") from exc
    except FileNotFoundError as exc:
        raise GitError("git executable not found") from exc
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed in {repo_path}: {result.stderr.strip()}")
    return result.stdout.strip()


class RepoScanner:
    """Scans ``root_dir`` for git checkouts matching include/exclude patterns."""

    def __init__(self, config: RepositoriesConfig) -> None:
        self.root_dir = Path(config.root_dir).expanduser().resolve()
        self.include = list(config.include)
        self.exclude = list(config.exclude)
        self.overrides = dict(config.overrides)

    def discover_repositories(self) -> List[Repository]:
        if not self.root_dir.is_dir():
            LOGGER.warning("Repositories root %s does not exist", self.root_dir)
            return []

        repos: List[Repository] = []
        for entry in sorted(self.root_dir.iterdir()):
            if not entry.is_dir() or not self.matches(entry.name):
                continue
            if not self.is_git_repo(entry):
                LOGGER.info("Skipping %s: not a git repository", entry.name)
                continue
            try:
                repos.append(self.repo_info(entry, entry.name))
            except GitError as exc:
                LOGGER.error("Error scanning %s: %s", entry.name, exc)
        return repos

    def get_repository(self, name: str) -> Optional[Repository]:
        repo_path = self.root_dir / name
        if not self.is_git_repo(repo_path):
            return None
        try:
            return self.repo_info(repo_path, name)
        except GitError as exc:
            LOGGER.error("Error scanning %s: %s", name, exc)
            return None

    def matches(self, name: str) -> bool:
        """Exclude patterns win over include patterns."""
        if any(fnmatch.fnmatchcase(name, pattern) for pattern in self.exclude):
            return False
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self.include)

    @staticmethod
    def is_git_repo(path: Path) -> bool:
        return (path / ".git").is_dir()

    def repo_info(self, repo_path: Path, name: str) -> Repository:
        branch = run_git(repo_path, "rev-parse", "--abbrev-ref", "HEAD")
        if not branch or branch == "HEAD":
            branch = DEFAULT_BRANCH
        commit = run_git(repo_path, "rev-parse", "HEAD")
        override = self.overrides.get(name)
        return Repository(
            name=name,
            path=str(repo_path),
            branch=branch,
            commit=commit,
            microservice=override.microservice if override else None,
            tags=tuple(override.tags) if override and override.tags else None,
        )
