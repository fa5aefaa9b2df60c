"""Thin wrappers over the git index."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence


class GitError(RuntimeError):
    """Raised when a git command fails."""


class GitStage:
    """Lists staged files and stages generated documentation."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner

    def staged_files(self, repo_path: Path | str) -> List[Path]:
        """Return absolute paths of added, copied, modified or renamed staged files."""
        repo = Path(repo_path).resolve()
        output = self._run(
            ["git", "diff", "--cached", "--name-only", "--relative", "--diff-filter=ACMR"], cwd=repo
        )
        return [repo / line.strip() for line in output.splitlines() if line.strip()]

    def stage(self, repo_path: Path | str, files: Sequence[Path | str]) -> None:
        if not files:
            return
        repo = Path(repo_path).resolve()
        relative = [self._to_relative(repo, Path(file)) for file in files]
        self._run(["git", "add", "--", *relative], cwd=repo)

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _to_relative(repo: Path, file_path: Path) -> str:
        try:
            return file_path.resolve().relative_to(repo).as_posix()
        except ValueError:
            return file_path.as_posix()

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        args = list(args)
        try:
            return self._runner(args, cwd=cwd)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise GitError(f"{' '.join(args)} failed: {exc}") from exc

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


__all__ = ["GitError", "GitStage"]
