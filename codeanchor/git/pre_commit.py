"""Pre-commit fast path: template-only, cache-aware sync of staged components."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ..config import AnchorConfig, load_config
from ..logging import get_logger
from ..scanner import ComponentScanner
from ..sync import SyncMode, SyncOrchestrator, SyncResult
from .staged import GitStage


class PreCommitHandler:
    """Runs the sync pipeline for staged files from a git hook.

    Enrichment is always disabled here. There is no wall-clock limit: the hook
    stays fast because unchanged components are skipped by the cache.
    """

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        config: AnchorConfig | None = None,
        orchestrator: SyncOrchestrator | None = None,
        git: GitStage | None = None,
    ) -> None:
        self.root = Path(root).resolve() if root is not None else Path.cwd()
        self._config = config
        self._orchestrator = orchestrator
        self._git = git or GitStage()
        self.logger = get_logger("git.pre_commit")

    def run(self, staged_files: Sequence[Path | str] | None = None) -> SyncResult:
        """Sync staged components and stage any README that changed."""
        config = self._config or load_config(self.root)
        if staged_files is None:
            staged_files = self._git.staged_files(self.root)

        scanner = ComponentScanner(config.watch_patterns, config.ignore)
        components = scanner.select(config.root, staged_files)
        if not components:
            self.logger.debug("No staged components to sync")
            return SyncResult()

        orchestrator = self._orchestrator or SyncOrchestrator.from_config(
            config, with_enrichment=False, include_examples=False
        )
        result = orchestrator.run(
            components,
            SyncMode(restrict_to_list=True, force=False, enable_enrichment=False),
        )
        if result.outputs:
            self._git.stage(self.root, result.outputs)
        return result

    def run_silent(self, staged_files: Sequence[Path | str] | None = None) -> None:
        """Run the hook; no exception ever propagates to the caller."""
        try:
            result = self.run(staged_files)
        except Exception as exc:
            self.logger.debug("Pre-commit sync failed: %s", exc, exc_info=True)
            return
        self.logger.debug(
            "Pre-commit sync: %d processed, %d skipped, %d error(s)",
            result.processed,
            result.skipped,
            result.errors,
        )


__all__ = ["PreCommitHandler"]
