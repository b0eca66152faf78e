"""Repository discovery and file enumeration."""

from coderag.scanner.file_enumerator import FileEnumerator
from coderag.scanner.repo_scanner import RepoScanner

__all__ = ["FileEnumerator", "RepoScanner"]
