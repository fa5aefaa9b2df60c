"""Batch sync pipeline: cache check, analysis, document generation, cache write."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import time
from typing import Iterable, List, Sequence, Tuple

from jinja2 import TemplateError

from .analyzers import AnalysisError, ComponentAnalyzer, ModuleResolver, ParsingSession
from .config import AnchorConfig
from .generators import DocGenerator
from .llm import LLMRunner
from .logging import get_logger
from .scanner import ComponentScanner
from .stores import ComponentCache


@dataclass(frozen=True)
class SyncMode:
    """How a sync run selects and treats its files.

    ``enable_enrichment`` is passed through to the document generator untouched.
    """

    restrict_to_list: bool = False
    force: bool = False
    enable_enrichment: bool = False


@dataclass
class SyncResult:
    """Aggregate outcome of a sync run."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)
    outputs: List[Path] = field(default_factory=list)
    duration: float = 0.0


class SyncOrchestrator:
    """Drives the analyzer and cache over a batch of component files.

    Files are processed sequentially. A failure in one file is recorded in the
    result and the batch moves on to the next file.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        analyzer: ComponentAnalyzer,
        cache: ComponentCache,
        generator: DocGenerator,
        scanner: ComponentScanner | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.analyzer = analyzer
        self.cache = cache
        self.generator = generator
        self.scanner = scanner
        self.logger = get_logger("sync")

    @classmethod
    def from_config(
        cls,
        config: AnchorConfig,
        *,
        with_enrichment: bool = True,
        include_examples: bool | None = None,
    ) -> "SyncOrchestrator":
        """Wire the default collaborators for ``config``."""
        logger = get_logger("sync")
        session = ParsingSession()
        analyzer = ComponentAnalyzer(session, ModuleResolver(config.root, config.aliases))
        cache = ComponentCache(config.cache_dir, analyzer)

        runner = None
        if with_enrichment and config.llm is not None:
            try:
                runner = LLMRunner.from_config(config.llm)
            except RuntimeError as exc:
                logger.warning("Enrichment unavailable, using template-only mode: %s", exc)

        docs = config.documentation
        generator = DocGenerator(
            config.root,
            templates_dir=docs.templates_dir,
            output_filename=config.output_filename,
            include_examples=docs.include_examples if include_examples is None else include_examples,
            include_timestamp=docs.include_timestamp,
            runner=runner,
        )
        scanner = ComponentScanner(config.watch_patterns, config.ignore)
        return cls(config.root, analyzer=analyzer, cache=cache, generator=generator, scanner=scanner)

    def run(
        self,
        candidate_files: Sequence[Path | str] = (),
        mode: SyncMode | None = None,
    ) -> SyncResult:
        """Process the candidates (or a full scan) and return the aggregate result."""
        mode = mode or SyncMode()
        started = time.perf_counter()
        files = self._select_files(candidate_files, mode)
        self.logger.debug(
            "Syncing %d file(s) (restrict=%s, force=%s, enrich=%s)",
            len(files),
            mode.restrict_to_list,
            mode.force,
            mode.enable_enrichment,
        )

        result = SyncResult()
        for file_path in files:
            self._process(file_path, mode, result)

        result.duration = time.perf_counter() - started
        self.logger.info(
            "Processed %d component(s), skipped %d, %d error(s) in %.2fs",
            result.processed,
            result.skipped,
            result.errors,
            result.duration,
        )
        return result

    def pending_enrichment(self, *, force: bool = False) -> List[Path]:
        """Scanned components whose README is missing or still awaits a description."""
        files = self._select_files((), SyncMode())
        if force:
            return files
        return [path for path in files if self.generator.needs_enrichment(path)]

    def _process(self, file_path: Path, mode: SyncMode, result: SyncResult) -> None:
        if not mode.force and not self.cache.needs_update(file_path):
            self.logger.debug("Cache hit for %s", file_path)
            result.skipped += 1
            return

        try:
            metadata = self.analyzer.analyze(file_path)
        except AnalysisError as exc:
            self._record_failure(result, file_path, exc)
            return

        try:
            output = self.generator.write(metadata, enable_enrichment=mode.enable_enrichment)
        except (OSError, TemplateError) as exc:
            self._record_failure(result, file_path, exc)
            return

        self.cache.save(file_path, metadata)
        result.processed += 1
        if output is not None:
            result.outputs.append(output)
            self.logger.debug("Wrote %s", output)

    def _record_failure(self, result: SyncResult, file_path: Path, exc: Exception) -> None:
        result.errors += 1
        result.failures.append((str(file_path), str(exc)))
        self.logger.error("Failed to process %s: %s", file_path, exc)

    def _select_files(self, candidate_files: Sequence[Path | str], mode: SyncMode) -> List[Path]:
        if mode.restrict_to_list:
            return _unique_resolved(candidate_files)
        if self.scanner is None:
            raise RuntimeError("A full scan requires a component scanner")
        return self.scanner.scan(self.root)


def _unique_resolved(paths: Iterable[Path | str]) -> List[Path]:
    seen: set[Path] = set()
    ordered: List[Path] = []
    for path in paths:
        resolved = Path(path).resolve()
        if resolved not in seen:
            seen.add(resolved)
            ordered.append(resolved)
    return ordered


__all__ = ["SyncMode", "SyncOrchestrator", "SyncResult"]
