"""Tests for codeanchor.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from codeanchor.config import AnchorConfig, ConfigError, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, AnchorConfig)
    assert config.root == tmp_path.resolve()
    assert config.watch_patterns == ["src/**/*.tsx", "src/**/*.jsx"]
    assert "node_modules/" in config.ignore
    assert config.cache_dir == tmp_path.resolve() / ".anchor" / "cache"
    assert config.output_filename == "README.md"
    assert config.aliases == {}
    assert config.documentation.include_examples is True
    assert config.llm is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".anchor.yml"
    config_file.write_text(
        """
watch_patterns:
  - "app/components/**/*.tsx"
ignore:
  - "**/*.stories.tsx"
cache_dir: ".cache/anchor"
output_filename: "COMPONENT.md"
resolve:
  aliases:
    "@/": "app/"
documentation:
  include_examples: false
  include_timestamp: no
  templates_dir: "docs/templates"
llm:
  model: "llama3:8b-instruct"
  base_url: "http://localhost:12434/engines/v1"
  temperature: 0.15
  max_tokens: 256
  request_timeout: 60
""",
        encoding="utf-8",
    )

    config = load_config(config_file)
    root = tmp_path.resolve()

    assert config.watch_patterns == ["app/components/**/*.tsx"]
    assert config.ignore == ["**/*.stories.tsx"]
    assert config.cache_dir == root / ".cache/anchor"
    assert config.output_filename == "COMPONENT.md"
    assert config.aliases == {"@/": "app/"}
    assert config.documentation.include_examples is False
    assert config.documentation.include_timestamp is False
    assert config.documentation.templates_dir == root / "docs/templates"
    assert config.llm is not None
    assert config.llm.model == "llama3:8b-instruct"
    assert config.llm.temperature == pytest.approx(0.15)
    assert config.llm.max_tokens == 256
    assert config.llm.request_timeout == pytest.approx(60.0)
    assert config.llm.api_key is None


def test_load_config_accepts_empty_file(tmp_path: Path) -> None:
    (tmp_path / ".anchor.yml").write_text("", encoding="utf-8")

    assert load_config(tmp_path).watch_patterns == ["src/**/*.tsx", "src/**/*.jsx"]


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "watch_patterns: [\n",
        "watch_patterns: []\n",
        "output_filename: docs/README.md\n",
    ],
)
def test_load_config_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    (tmp_path / ".anchor.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_relative_cache_dir_is_anchored_at_root(tmp_path: Path) -> None:
    config = AnchorConfig(root=tmp_path, cache_dir=Path("tmp/cache"))

    assert config.cache_dir == tmp_path / "tmp" / "cache"
    assert AnchorConfig(root=tmp_path).cache_dir == tmp_path / ".anchor" / "cache"
