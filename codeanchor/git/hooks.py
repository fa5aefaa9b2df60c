"""Installs the anchor pre-commit hook."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from ..logging import get_logger

HOOK_MARKER = "# anchor:pre-commit"

_HOOK_SCRIPT = f"""#!/bin/sh
{HOOK_MARKER}
# Keeps component READMEs in sync. Never blocks the commit.
anchor hook run >/dev/null 2>&1 || true
exit 0
"""


class HookInstaller:
    """Writes and removes ``.git/hooks/pre-commit``."""

    def __init__(self) -> None:
        self.logger = get_logger("git.hooks")

    def hook_path(self, repo_path: Path | str) -> Path:
        repo = Path(repo_path).resolve()
        git_dir = repo / ".git"
        if not git_dir.is_dir():
            raise FileNotFoundError(f"{repo} is not a Git repository")
        return git_dir / "hooks" / "pre-commit"

    def is_installed(self, repo_path: Path | str) -> bool:
        try:
            return HOOK_MARKER in self.hook_path(repo_path).read_text(encoding="utf-8")
        except OSError:
            return False

    def install(self, repo_path: Path | str, *, force: bool = False) -> Path:
        """Install the hook, refusing to replace a foreign hook unless ``force``."""
        path = self.hook_path(repo_path)
        if path.exists() and not self.is_installed(repo_path) and not force:
            raise FileExistsError(
                f"A pre-commit hook already exists at {path}. Re-run with --force to replace it."
            )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_HOOK_SCRIPT, encoding="utf-8")
        mode = path.stat().st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        self.logger.info("Installed pre-commit hook at %s", path)
        return path

    def uninstall(self, repo_path: Path | str) -> bool:
        """Remove the hook if anchor installed it. Returns True when removed."""
        if not self.is_installed(repo_path):
            return False
        path = self.hook_path(repo_path)
        path.unlink()
        self.logger.info("Removed pre-commit hook at %s", path)
        return True


__all__ = ["HOOK_MARKER", "HookInstaller"]
