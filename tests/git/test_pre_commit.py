"""Tests for the pre-commit fast path."""

from __future__ import annotations

import logging

from codeanchor.config import AnchorConfig
from codeanchor.git import GitError, PreCommitHandler
from codeanchor.sync import SyncOrchestrator
from tests._fixtures.project_builder import BROKEN_SOURCE, BUTTON_SOURCE, ProjectBuilder


class FakeGit:
    def __init__(self, staged=None, fail_on=None) -> None:
        self.staged = list(staged or [])
        self.fail_on = fail_on
        self.added: list[list] = []

    def staged_files(self, repo_path):
        if self.fail_on == "diff":
            raise GitError("git diff --cached failed")
        return list(self.staged)

    def stage(self, repo_path, files) -> None:
        if self.fail_on == "add":
            raise GitError("git add failed")
        self.added.append(list(files))


class ExplodingOrchestrator:
    def run(self, candidate_files=(), mode=None):
        raise RuntimeError("orchestrator exploded")


class RecordingRunner:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def run(self, prompt, *, system=None):
        self.prompts.append(prompt)
        return "should never be used"


def test_empty_staged_list_returns_without_work(project: ProjectBuilder) -> None:
    git = FakeGit()
    handler = PreCommitHandler(project.root, git=git)

    result = handler.run([])

    assert result.processed == 0
    assert git.added == []
    handler.run_silent([])


def test_staged_components_are_documented_and_staged(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE, "src/util.ts": "export const x = 1;\n"})
    git = FakeGit(staged=[project.path("src/Button/Button.tsx"), project.path("src/util.ts")])

    result = PreCommitHandler(project.root, git=git).run()

    assert result.processed == 1
    assert git.added == [[project.path("src/Button/README.md")]]


def test_unchanged_components_are_skipped_and_nothing_is_staged(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    staged = [project.path("src/Button/Button.tsx")]
    PreCommitHandler(project.root, git=FakeGit()).run(staged)
    git = FakeGit()

    result = PreCommitHandler(project.root, git=git).run(staged)

    assert result.skipped == 1
    assert git.added == []


def test_missing_cache_directory_is_created(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    config = AnchorConfig(root=project.root, cache_dir=project.path("deep/nested/cache"))

    PreCommitHandler(project.root, config=config, git=FakeGit()).run_silent(
        [project.path("src/Button/Button.tsx")]
    )

    assert any(project.path("deep/nested/cache").iterdir())


def test_parse_failure_never_raises(project: ProjectBuilder) -> None:
    project.write({"src/Broken/Broken.tsx": BROKEN_SOURCE})
    git = FakeGit()
    handler = PreCommitHandler(project.root, git=git)

    result = handler.run([project.path("src/Broken/Broken.tsx")])
    handler.run_silent([project.path("src/Broken/Broken.tsx")])

    assert result.errors == 1
    assert git.added == []


def test_unexpected_errors_are_swallowed(project: ProjectBuilder, caplog) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    handler = PreCommitHandler(
        project.root, orchestrator=ExplodingOrchestrator(), git=FakeGit()
    )

    with caplog.at_level(logging.DEBUG, logger="codeanchor"):
        handler.run_silent([project.path("src/Button/Button.tsx")])

    assert "orchestrator exploded" in caplog.text


def test_git_failures_are_swallowed(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})

    PreCommitHandler(project.root, git=FakeGit(fail_on="diff")).run_silent()
    PreCommitHandler(project.root, git=FakeGit(fail_on="add")).run_silent(
        [project.path("src/Button/Button.tsx")]
    )


def test_invalid_config_is_swallowed(project: ProjectBuilder) -> None:
    project.write({".anchor.yml": "watch_patterns: [\n"})

    PreCommitHandler(project.root, git=FakeGit()).run_silent([])


def test_enrichment_is_never_requested(project: ProjectBuilder) -> None:
    project.write({"src/Button/Button.tsx": BUTTON_SOURCE})
    config = AnchorConfig(root=project.root)
    orchestrator = SyncOrchestrator.from_config(config)
    runner = RecordingRunner()
    orchestrator.generator.runner = runner

    result = PreCommitHandler(project.root, config=config, orchestrator=orchestrator, git=FakeGit()).run(
        [project.path("src/Button/Button.tsx")]
    )

    assert result.processed == 1
    assert runner.prompts == []
    readme = project.path("src/Button/README.md").read_text(encoding="utf-8")
    assert "## Example" not in readme
