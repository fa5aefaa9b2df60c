"""Renders component README files from extracted metadata."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
import re
from typing import Any, Callable, Dict, Optional, Protocol

from jinja2 import Environment, FileSystemLoader

from ..logging import get_logger
from ..models import ComponentMetadata

_TEMPLATE_NAME = "component.md.j2"
_CODE_FENCE = re.compile(r"^```[\w-]*\n(.*?)\n```$", re.DOTALL)

_SYSTEM_PROMPT = (
    "You write concise, factual documentation for UI components. "
    "Only describe what the provided props and dependencies support."
)
PENDING_DESCRIPTION = "_Component description pending..._"


class TextRunner(Protocol):
    def run(self, prompt: str, *, system: str | None = None) -> str: ...


def _md_cell(value: object) -> str:
    return " ".join(str(value).split()).replace("|", "\\|")


class DocGenerator:
    """Writes a README next to each component using a Jinja template."""

    def __init__(
        self,
        root: Path | str,
        *,
        templates_dir: Path | None = None,
        output_filename: str = "README.md",
        include_examples: bool = True,
        include_timestamp: bool = True,
        runner: TextRunner | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.output_filename = output_filename
        self.include_examples = include_examples
        self.include_timestamp = include_timestamp
        self.runner = runner
        self._clock = clock or (lambda: datetime.now(UTC))
        self._env = self._create_env(templates_dir)
        self.logger = get_logger("generators.markdown")

    def output_path(self, metadata: ComponentMetadata) -> Path:
        return self.output_path_for(metadata.file_path)

    def output_path_for(self, source: Path | str) -> Path:
        return Path(source).parent / self.output_filename

    def needs_enrichment(self, source: Path | str) -> bool:
        """True when the README for ``source`` is missing or still shows the pending placeholder."""
        try:
            return PENDING_DESCRIPTION in self.output_path_for(source).read_text(encoding="utf-8")
        except FileNotFoundError:
            return True

    def render(self, metadata: ComponentMetadata, *, enable_enrichment: bool = False) -> str:
        """Return the markdown document for ``metadata``."""
        data: Dict[str, Any] = {
            "name": metadata.name,
            "fields": metadata.fields,
            "dependencies": [self._display_path(dep) for dep in metadata.dependencies],
            "source": self._display_path(metadata.file_path),
            "last_updated": self._clock().date().isoformat() if self.include_timestamp else None,
            "description": None,
            "pending_description": PENDING_DESCRIPTION,
            "example": None,
        }
        if enable_enrichment and self.runner is not None:
            data.update(self._enrich(self.runner, metadata))
        template = self._env.get_template(_TEMPLATE_NAME)
        return template.render(**data).strip() + "\n"

    def write(self, metadata: ComponentMetadata, *, enable_enrichment: bool = False) -> Optional[Path]:
        """Render and write the README. Returns the path when the file changed."""
        markdown = self.render(metadata, enable_enrichment=enable_enrichment)
        output = self.output_path(metadata)
        try:
            if output.read_text(encoding="utf-8") == markdown:
                self.logger.debug("%s already up to date", output)
                return None
        except FileNotFoundError:
            pass
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(markdown, encoding="utf-8")
        return output

    # ------------------------------------------------------------------
    # Enrichment

    def _enrich(self, runner: TextRunner, metadata: ComponentMetadata) -> Dict[str, Optional[str]]:
        enriched: Dict[str, Optional[str]] = {}
        summary = self._component_summary(metadata)
        try:
            enriched["description"] = runner.run(
                f"Describe the {metadata.name} component in two or three sentences.\n\n{summary}",
                system=_SYSTEM_PROMPT,
            ).strip() or None
            if self.include_examples:
                example = runner.run(
                    f"Write a minimal TSX usage example for {metadata.name}. "
                    f"Reply with code only.\n\n{summary}",
                    system=_SYSTEM_PROMPT,
                )
                enriched["example"] = _strip_code_fence(example) or None
        except RuntimeError as exc:
            self.logger.warning(
                "Enrichment failed for %s, using template-only output: %s", metadata.name, exc
            )
            return {}
        return enriched

    def _component_summary(self, metadata: ComponentMetadata) -> str:
        lines = [f"Component: {metadata.name}", "Props:"]
        for field in metadata.fields:
            marker = "" if field.required else "?"
            line = f"- {field.name}{marker}: {field.type_signature}"
            if field.description:
                line += f" ({field.description})"
            lines.append(line)
        if not metadata.fields:
            lines.append("- (none)")
        if metadata.dependencies:
            lines.append("Imports: " + ", ".join(self._display_path(dep) for dep in metadata.dependencies))
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Helpers

    def _display_path(self, path: str) -> str:
        try:
            return Path(path).resolve().relative_to(self.root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters["md_cell"] = _md_cell
        return env


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


__all__ = ["DocGenerator", "PENDING_DESCRIPTION"]
