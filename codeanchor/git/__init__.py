"""Git integration: staged files, hook installation and the pre-commit fast path."""

from .hooks import HookInstaller
from .pre_commit import PreCommitHandler
from .staged import GitError, GitStage

__all__ = ["GitError", "GitStage", "HookInstaller", "PreCommitHandler"]
