"""Tests for repository discovery and file enumeration."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from coderag.config import FilesConfig, RepoOverride, RepositoriesConfig
from coderag.models import Language
from coderag.scanner import FileEnumerator, RepoScanner
from coderag.scanner.file_enumerator import build_spec, load_gitignore
from coderag.scanner.repo_scanner import GitError, run_git


def _fake_git(repo_path, *args):
    if "--abbrev-ref" in args:
        return "HEAD" if Path(repo_path).name == "detached" else "develop"
    return f"sha-{Path(repo_path).name}"


def _git_dir(root: Path, name: str) -> Path:
    path = root / name
    (path / ".git").mkdir(parents=True)
    return path


class TestRepoScanner:
    """Discovery below the repositories root."""

    def test_discovers_matching_git_repositories(self, tmp_path):
        _git_dir(tmp_path, "svc-b")
        _git_dir(tmp_path, "svc-a")
        _git_dir(tmp_path, "svc-old-archive")
        _git_dir(tmp_path, "tools")
        (tmp_path / "svc-plain").mkdir()
        config = RepositoriesConfig(
            root_dir=tmp_path, include=["svc-*"], exclude=["*-archive"]
        )

        with patch("coderag.scanner.repo_scanner.run_git", side_effect=_fake_git):
            repos = RepoScanner(config).discover_repositories()

        assert [repo.name for repo in repos] == ["svc-a", "svc-b"]
        assert repos[0].branch == "develop"
        assert repos[0].commit == "sha-svc-a"
        assert repos[0].path == str(tmp_path.resolve() / "svc-a")

    def test_detached_head_uses_default_branch(self, tmp_path):
        _git_dir(tmp_path, "detached")
        with patch("coderag.scanner.repo_scanner.run_git", side_effect=_fake_git):
            repo = RepoScanner(RepositoriesConfig(root_dir=tmp_path)).get_repository("detached")
        assert repo.branch == "main"

    def test_overrides(self, tmp_path):
        _git_dir(tmp_path, "billing-api")
        config = RepositoriesConfig(
            root_dir=tmp_path,
            overrides={"billing-api": RepoOverride(microservice="billing", tags=["payments"])},
        )
        with patch("coderag.scanner.repo_scanner.run_git", side_effect=_fake_git):
            repo = RepoScanner(config).get_repository("billing-api")
        assert repo.microservice == "billing"
        assert repo.tags == ("payments",)

    def test_git_failure_skips_repository(self, tmp_path):
        _git_dir(tmp_path, "bad")
        _git_dir(tmp_path, "good")

        def flaky(repo_path, *args):
            if Path(repo_path).name == "bad":
                raise GitError("fatal: not a git repository")
            return _fake_git(repo_path, *args)

        with patch("coderag.scanner.repo_scanner.run_git", side_effect=flaky):
            repos = RepoScanner(RepositoriesConfig(root_dir=tmp_path)).discover_repositories()

        assert [repo.name for repo in repos] == ["good"]

    def test_missing_root(self, tmp_path):
        scanner = RepoScanner(RepositoriesConfig(root_dir=tmp_path / "nowhere"))
        assert scanner.discover_repositories() == []
        assert scanner.get_repository("x") is None


class TestRunGit:
    """The git subprocess wrapper."""

    def test_returns_stripped_output(self, tmp_path):
        completed = subprocess.CompletedProcess(["git"], 0, stdout="main\n", stderr="")
        with patch("coderag.scanner.repo_scanner.subprocess.run", return_value=completed) as run:
            assert run_git(tmp_path, "rev-parse", "--abbrev-ref", "HEAD") == "main"
        assert run.call_args[0][0] == ["git", "rev-parse", "--abbrev-ref", "HEAD"]
        assert run.call_args[1]["cwd"] == tmp_path

    def test_non_zero_exit(self, tmp_path):
        completed = subprocess.CompletedProcess(["git"], 128, stdout="", stderr="fatal: bad\n")
        with patch("coderag.scanner.repo_scanner.subprocess.run", return_value=completed):
            with pytest.raises(GitError, match="fatal: bad"):
                run_git(tmp_path, "rev-parse", "HEAD")

    def test_timeout(self, tmp_path):
        timeout = subprocess.TimeoutExpired(["git"], 30)
        with patch("coderag.scanner.repo_scanner.subprocess.run", side_effect=timeout):
            with pytest.raises(GitError, match="timed out"):
                run_git(tmp_path, "rev-parse", "HEAD")


class TestPatterns:
    """Include, exclude and .gitignore patterns follow git wildmatch rules."""

    @pytest.mark.parametrize(
        "pattern, path, expected",
        [
            ("src/**/*", "src/a.py", True),
            ("src/**/*", "src/pkg/deep/a.py", True),
            ("src/**/*", "test/a.py", False),
            ("**/node_modules/**", "web/node_modules/x/index.js", True),
            ("*.sql", "db/a.sql", True),
            ("/*.sql", "db/a.sql", False),
            ("config/?.yml", "config/a.yml", True),
        ],
    )
    def test_build_spec(self, pattern, path, expected):
        assert build_spec([pattern]).match_file(path) is expected

    def test_gitignore_rules(self, tmp_path):
        (tmp_path / ".gitignore").write_text(
            "# comment\n\nbuild/\n/local.py\n*.log\n!keep.log\n", encoding="utf-8"
        )
        spec = load_gitignore(tmp_path)
        assert spec.match_file("pkg/build/out.py")
        assert spec.match_file("local.py")
        assert not spec.match_file("pkg/local.py")
        assert spec.match_file("logs/debug.log")
        assert not spec.match_file("logs/keep.log")

    def test_missing_gitignore(self, tmp_path):
        assert load_gitignore(tmp_path) is None


class TestFileEnumerator:
    """Files selected inside a repository."""

    @pytest.fixture
    def repo_dir(self, tmp_path):
        files = {
            "src/app.py": "x = 1\n",
            "src/util/helpers.ts": "export {}\n",
            "src/schema.sql": "CREATE TABLE t (id INT);\n",
            "src/generated/out.ts": "export {}\n",
            "src/notes.txt": "plain text\n",
            "src/.hidden/secret.py": "x = 2\n",
            "src/node_modules/lib/index.js": "module.exports = {}\n",
            "docs/readme.py": "x = 3\n",
            ".gitignore": "generated/\n",
        }
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return tmp_path

    def test_enumerate_files(self, repo_dir):
        files = FileEnumerator(FilesConfig()).enumerate_files(repo_dir)

        assert [info.relative_path for info in files] == [
            "src/app.py",
            "src/schema.sql",
            "src/util/helpers.ts",
        ]
        assert files[0].language is Language.PYTHON
        assert files[0].extension == ".py"
        assert files[0].absolute_path == str(repo_dir / "src" / "app.py")

    def test_gitignore_can_be_disabled(self, repo_dir):
        config = FilesConfig(respect_gitignore=False)
        paths = [info.relative_path for info in FileEnumerator(config).enumerate_files(repo_dir)]
        assert "src/generated/out.ts" in paths

    def test_multiple_include_patterns_do_not_duplicate(self, repo_dir):
        config = FilesConfig(include=["src/**/*", "**/*.py"])
        paths = [info.relative_path for info in FileEnumerator(config).enumerate_files(repo_dir)]
        assert paths.count("src/app.py") == 1
        assert "docs/readme.py" in paths

    def test_is_ignored(self, repo_dir):
        enumerator = FileEnumerator(FilesConfig())
        assert enumerator.is_ignored(repo_dir, "src/generated/out.ts")
        assert not enumerator.is_ignored(repo_dir, "src/app.py")

    def test_gitignore_negation_reincludes_file(self, repo_dir):
        (repo_dir / ".gitignore").write_text("*.sql\n!schema.sql\n", encoding="utf-8")
        (repo_dir / "src" / "seed.sql").write_text("CREATE TABLE s (id INT);\n", encoding="utf-8")

        paths = [info.relative_path for info in FileEnumerator(FilesConfig()).enumerate_files(repo_dir)]

        assert "src/schema.sql" in paths
        assert "src/seed.sql" not in paths

    def test_exclude_pattern_without_slash_matches_any_depth(self, repo_dir):
        config = FilesConfig(exclude=["**/node_modules/**", "*.sql"])
        paths = [info.relative_path for info in FileEnumerator(config).enumerate_files(repo_dir)]
        assert paths == ["src/app.py", "src/util/helpers.ts"]
