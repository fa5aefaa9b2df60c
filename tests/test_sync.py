"""Tests for the batch sync pipeline."""

from __future__ import annotations

from pathlib import Path

from codeanchor.config import AnchorConfig
from codeanchor.sync import SyncMode, SyncOrchestrator
from tests._fixtures.project_builder import (
    BROKEN_SOURCE,
    BUTTON_SOURCE,
    CARD_SOURCE,
    TYPES_SOURCE,
    ProjectBuilder,
)

_RESTRICTED = SyncMode(restrict_to_list=True)


class FakeRunner:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def run(self, prompt: str, *, system: str | None = None) -> str:
        self.prompts.append(prompt)
        if "usage example" in prompt:
            return "```tsx\n<Button>Save</Button>\n```"
        return "A clickable button."


def _orchestrator(project: ProjectBuilder, **config_kwargs) -> SyncOrchestrator:
    config = AnchorConfig(root=project.root, **config_kwargs)
    return SyncOrchestrator.from_config(config, with_enrichment=False)


def _write_components(project: ProjectBuilder) -> list[Path]:
    project.write(
        {
            "src/Button/Button.tsx": BUTTON_SOURCE,
            "src/Card/Card.tsx": CARD_SOURCE,
            "src/Card/types.ts": TYPES_SOURCE,
            "src/Badge/Badge.tsx": "export const Badge = () => null;\n",
            "src/Broken/Broken.tsx": BROKEN_SOURCE,
        }
    )
    return [
        project.path("src/Button/Button.tsx"),
        project.path("src/Card/Card.tsx"),
        project.path("src/Badge/Badge.tsx"),
        project.path("src/Broken/Broken.tsx"),
    ]


def test_one_failure_does_not_abort_the_batch(project: ProjectBuilder) -> None:
    files = _write_components(project)

    result = _orchestrator(project).run(files, _RESTRICTED)

    assert result.processed == 3
    assert result.skipped == 0
    assert result.errors == 1
    assert result.failures[0][0] == str(project.path("src/Broken/Broken.tsx"))
    assert project.path("src/Button/README.md").exists()
    assert project.path("src/Card/README.md").exists()
    assert not project.path("src/Broken/README.md").exists()


def test_second_run_skips_unchanged_components(project: ProjectBuilder) -> None:
    files = _write_components(project)
    orchestrator = _orchestrator(project)
    orchestrator.run(files, _RESTRICTED)

    result = orchestrator.run(files, _RESTRICTED)

    assert result.processed == 0
    assert result.skipped == 3
    assert result.errors == 1
    assert result.outputs == []


def test_force_reprocesses_without_rewriting_identical_docs(project: ProjectBuilder) -> None:
    files = _write_components(project)[:3]
    orchestrator = _orchestrator(project)
    orchestrator.run(files, _RESTRICTED)

    result = orchestrator.run(files, SyncMode(restrict_to_list=True, force=True))

    assert result.processed == 3
    assert result.skipped == 0
    assert result.outputs == []


def test_added_prop_is_picked_up_on_next_run(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    button = project.path("src/Button/Button.tsx")
    orchestrator = _orchestrator(project)
    orchestrator.run([button], _RESTRICTED)

    source = button.read_text(encoding="utf-8").replace(
        "  variant?: 'primary' | 'secondary';\n",
        "  variant?: 'primary' | 'secondary';\n  disabled?: boolean;\n",
    )
    button.write_text(source, encoding="utf-8")
    result = orchestrator.run([button], _RESTRICTED)

    assert result.processed == 1
    entry = orchestrator.cache.load(button)
    assert [field.name for field in entry.metadata.fields] == ["children", "variant", "disabled"]
    assert "`disabled`" in project.path("src/Button/README.md").read_text(encoding="utf-8")


def test_changed_dependency_triggers_reanalysis(project: ProjectBuilder) -> None:
    project.write({"src/Card/Card.tsx": CARD_SOURCE, "src/Card/types.ts": TYPES_SOURCE})
    card = project.path("src/Card/Card.tsx")
    orchestrator = _orchestrator(project)
    orchestrator.run([card], _RESTRICTED)

    project.touch_forward("src/Card/types.ts")
    result = orchestrator.run([card], _RESTRICTED)

    assert result.processed == 1
    assert result.skipped == 0


def test_full_scan_uses_watch_patterns(project: ProjectBuilder) -> None:
    _write_components(project)
    project.write(
        {
            "node_modules/lib/Thing.tsx": "export const Thing = () => null;\n",
            "other/Outside.tsx": "export const Outside = () => null;\n",
        }
    )

    result = _orchestrator(project).run()

    assert result.processed == 3
    assert result.errors == 1
    assert not project.path("other/README.md").exists()
    assert not project.path("node_modules/lib/README.md").exists()


def test_duplicate_candidates_are_processed_once(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    button = project.path("src/Button/Button.tsx")

    result = _orchestrator(project).run(
        [button, str(button), project.root / "src" / "Button" / ".." / "Button" / "Button.tsx"],
        _RESTRICTED,
    )

    assert result.processed == 1
    assert result.skipped == 0


def test_enrichment_flag_reaches_the_generator(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    button = project.path("src/Button/Button.tsx")
    orchestrator = _orchestrator(project)
    runner = FakeRunner()
    orchestrator.generator.runner = runner

    orchestrator.run([button], _RESTRICTED)
    assert runner.prompts == []

    orchestrator.run([button], SyncMode(restrict_to_list=True, force=True, enable_enrichment=True))

    readme = project.path("src/Button/README.md").read_text(encoding="utf-8")
    assert len(runner.prompts) == 2
    assert "A clickable button." in readme
    assert "<Button>Save</Button>" in readme


def test_generation_failure_is_recorded_and_not_cached(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    button = project.path("src/Button/Button.tsx")
    project.path("src/Button/README.md").mkdir()
    orchestrator = _orchestrator(project)

    result = orchestrator.run([button], _RESTRICTED)

    assert result.processed == 0
    assert result.errors == 1
    assert orchestrator.cache.needs_update(button) is True


def test_custom_output_filename(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})

    result = _orchestrator(project, output_filename="DOCS.md").run(
        [project.path("src/Button/Button.tsx")], _RESTRICTED
    )

    assert result.outputs == [project.path("src/Button/DOCS.md")]
