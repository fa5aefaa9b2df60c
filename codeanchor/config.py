"""Configuration loading for codeanchor (.anchor.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".anchor.yml"

DEFAULT_WATCH_PATTERNS: tuple[str, ...] = ("src/**/*.tsx", "src/**/*.jsx")
DEFAULT_IGNORE: tuple[str, ...] = ("node_modules/", "dist/", "build/", ".anchor/")
DEFAULT_CACHE_DIR = ".anchor/cache"
DEFAULT_OUTPUT_FILENAME = "README.md"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Enrichment runtime settings from .anchor.yml."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    executable: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class DocumentationConfig:
    """Controls what the generated component README contains."""

    include_examples: bool = True
    include_timestamp: bool = True
    templates_dir: Optional[Path] = None


@dataclass
class AnchorConfig:
    """Represents the settings defined in .anchor.yml."""

    root: Path
    watch_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_WATCH_PATTERNS))
    ignore: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    output_filename: str = DEFAULT_OUTPUT_FILENAME
    aliases: Dict[str, str] = field(default_factory=dict)
    documentation: DocumentationConfig = field(default_factory=DocumentationConfig)
    llm: Optional[LLMConfig] = None

    def __post_init__(self) -> None:
        if not self.cache_dir.is_absolute():
            self.cache_dir = self.root / self.cache_dir


def load_config(config_path: Path) -> AnchorConfig:
    """Load configuration from disk, returning defaults when no file exists."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AnchorConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = AnchorConfig(root=root)

    if "watch_patterns" in data:
        patterns = _as_str_list(data.get("watch_patterns"))
        if not patterns:
            raise ConfigError("watch_patterns must list at least one glob pattern")
        config.watch_patterns = patterns
    if "ignore" in data:
        config.ignore = _as_str_list(data.get("ignore"))

    cache_dir = _as_str(data.get("cache_dir"))
    if cache_dir:
        config.cache_dir = root / cache_dir

    output_filename = _as_str(data.get("output_filename"))
    if output_filename:
        if "/" in output_filename or "\\" in output_filename:
            raise ConfigError("output_filename must be a bare file name")
        config.output_filename = output_filename

    resolve_data = _as_dict(data.get("resolve"))
    aliases = _as_dict(resolve_data.get("aliases"))
    config.aliases = {
        str(prefix): str(target)
        for prefix, target in aliases.items()
        if isinstance(target, str) and str(prefix)
    }

    docs_data = _as_dict(data.get("documentation"))
    if docs_data:
        templates_dir = _as_str(docs_data.get("templates_dir"))
        config.documentation = DocumentationConfig(
            include_examples=_as_bool(docs_data.get("include_examples"), default=True),
            include_timestamp=_as_bool(docs_data.get("include_timestamp"), default=True),
            templates_dir=root / templates_dir if templates_dir else None,
        )

    llm_data = _as_dict(data.get("llm"))
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            executable=_as_str(llm_data.get("executable")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )
        if any(value is not None for value in vars(llm).values()):
            config.llm = llm

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return default


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AnchorConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DocumentationConfig",
    "LLMConfig",
    "load_config",
]
