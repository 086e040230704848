"""Generation policy loading (auto_test.toml / auto_test.yaml and friends)."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import ConfigError, ProjectRootError
from .signatures import normalize_type_text

PROJECT_CONFIG_NAMES: Tuple[str, ...] = (
    "auto_test.toml",
    "auto_test.yaml",
    "auto_test.yml",
    ".auto_test.toml",
    ".auto_test.yaml",
    ".auto_test.yml",
)
GLOBAL_CONFIG_NAMES: Tuple[str, ...] = ("config.toml", "config.yaml", "config.yml")
SUPPORTED_LANGUAGES: Tuple[str, ...] = ("rust", "v")

DEFAULT_SKIP_PATTERNS: Tuple[str, ...] = (
    "**/target/**",
    "**/.git/**",
    "**/node_modules/**",
)

_ENV_PREFIX = "AUTO_TEST_"
_PROJECT_MARKERS: Tuple[str, ...] = ("Cargo.toml", "v.mod", "src")

# Flat (legacy) key -> (hierarchical table, key inside the table)
_HIERARCHY: Dict[str, Tuple[str, str]] = {
    "output_dir": ("generation", "output_dir"),
    "skip_functions": ("generation", "skip_functions"),
    "include_private": ("generation", "include_private"),
    "timeout_seconds": ("generation", "timeout_seconds"),
    "templates_dir": ("generation", "templates_dir"),
    "type_mappings": ("types", "mappings"),
    "parallel": ("performance", "parallel"),
    "parallel_chunk_size": ("performance", "parallel_chunk_size"),
    "respect_gitignore": ("filesystem", "respect_gitignore"),
    "skip_patterns": ("filesystem", "skip_patterns"),
    "language": ("project", "language"),
    "crate_name": ("project", "crate_name"),
}


@dataclass(frozen=True)
class GenerationPolicy:
    """Resolved, read-only options controlling one generation run."""

    output_dir: str = "tests"
    skip_functions: Tuple[str, ...] = ()
    type_mappings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    include_private: bool = False
    parallel: bool = True
    parallel_chunk_size: int = 25
    respect_gitignore: bool = True
    skip_patterns: Tuple[str, ...] = DEFAULT_SKIP_PATTERNS
    timeout_seconds: int = 300
    language: Optional[str] = None
    crate_name: Optional[str] = None
    templates_dir: Optional[str] = None

    def __post_init__(self) -> None:
        # Freeze collection fields so worker threads can share one instance.
        object.__setattr__(self, "skip_functions", tuple(self.skip_functions))
        object.__setattr__(self, "skip_patterns", tuple(self.skip_patterns))
        mappings = {normalize_type_text(key): value for key, value in self.type_mappings.items()}
        object.__setattr__(self, "type_mappings", MappingProxyType(mappings))
        if self.parallel_chunk_size < 1:
            raise ConfigError("parallel_chunk_size must be at least 1")
        if self.timeout_seconds < 0:
            raise ConfigError("timeout_seconds must not be negative")
        if self.language is not None and self.language not in SUPPORTED_LANGUAGES:
            supported = ", ".join(SUPPORTED_LANGUAGES)
            raise ConfigError(f"Unsupported language '{self.language}' (expected one of: {supported})")

    def should_skip_function(self, function_name: str) -> bool:
        return any(skip in function_name for skip in self.skip_functions if skip)

    def get_type_mapping(self, type_name: str) -> Optional[str]:
        return self.type_mappings.get(normalize_type_text(type_name))

    def to_mapping(self) -> Dict[str, Any]:
        """Render the policy in the hierarchical configuration layout."""
        tables: Dict[str, Dict[str, Any]] = {}
        for flat_key, (table, key) in _HIERARCHY.items():
            value = getattr(self, flat_key)
            if value is None:
                continue
            if isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            tables.setdefault(table, {})[key] = value
        return tables


def load_policy(
    project_root: Path,
    *,
    config_file: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    include_global: bool = True,
) -> GenerationPolicy:
    """Resolve the generation policy for a project.

    Layers, lowest precedence first: defaults, global user config, project
    config (or ``config_file``), ``AUTO_TEST_*`` environment variables and
    explicit ``overrides``.
    """
    environ = os.environ if env is None else env
    settings: Dict[str, Any] = {}

    if include_global:
        global_file = _first_existing(_global_config_dir(environ), GLOBAL_CONFIG_NAMES)
        if global_file is not None:
            _merge(settings, read_config_file(global_file))

    project_file = config_file or _first_existing(project_root, PROJECT_CONFIG_NAMES)
    if project_file is not None:
        if config_file is not None and not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_file}")
        _merge(settings, read_config_file(project_file))

    _merge(settings, _settings_from_env(environ))
    if overrides:
        _merge(settings, {key: value for key, value in overrides.items() if value is not None})

    return _build_policy(settings)


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse one configuration file into flat (legacy layout) settings."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}

    suffix = path.suffix.lower()
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    elif suffix in {".yaml", ".yml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    else:
        raise ConfigError(f"Unsupported configuration format for {path.name}. Use .toml or .yaml")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return _flatten_layout(data)


def write_default_config(path: Path, policy: GenerationPolicy | None = None) -> Path:
    """Write ``policy`` (defaults when omitted) as YAML to ``path``."""
    payload = (policy or GenerationPolicy()).to_mapping()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(payload, sort_keys=True), encoding="utf-8")
    return path


def find_project_root(start_path: Path) -> Path:
    """Return the closest ancestor of ``start_path`` that looks like a project root."""
    try:
        current = start_path.expanduser().resolve(strict=True)
    except OSError as exc:
        raise ProjectRootError(f"Project path not found: {start_path}") from exc
    if current.is_file():
        current = current.parent

    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in _PROJECT_MARKERS):
            return candidate
    raise ProjectRootError(f"Project root not found above {start_path}")


def _flatten_layout(data: Dict[str, Any]) -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key in _HIERARCHY:
        if key in data:
            flat[key] = data[key]
    # Hierarchical tables win over legacy keys when both are present.
    for flat_key, (table, key) in _HIERARCHY.items():
        section = _as_dict(data.get(table))
        if key in section:
            flat[flat_key] = section[key]
    project = _as_dict(data.get("project"))
    if "crate_name" not in flat and "name" in project:
        flat["crate_name"] = project["name"]
    return flat


def _settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    settings: Dict[str, Any] = {}
    for key in _HIERARCHY:
        if key == "type_mappings":
            continue
        raw = environ.get(f"{_ENV_PREFIX}{key.upper()}")
        if raw is None:
            continue
        if key in {"skip_functions", "skip_patterns"}:
            settings[key] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            settings[key] = raw
    return settings


def _merge(target: Dict[str, Any], layer: Mapping[str, Any]) -> None:
    for key, value in layer.items():
        if key == "type_mappings":
            merged = dict(_as_dict(target.get(key)))
            merged.update(_as_dict(value))
            target[key] = merged
        else:
            target[key] = value


def _build_policy(settings: Mapping[str, Any]) -> GenerationPolicy:
    defaults = GenerationPolicy()
    kwargs: Dict[str, Any] = {}

    if "output_dir" in settings:
        kwargs["output_dir"] = _require(_as_str(settings["output_dir"]), "output_dir")
    if "skip_functions" in settings:
        kwargs["skip_functions"] = tuple(_as_str_list(settings["skip_functions"]))
    if "type_mappings" in settings:
        kwargs["type_mappings"] = {
            str(key): str(value)
            for key, value in _as_dict(settings["type_mappings"]).items()
            if isinstance(value, (str, int, float, bool))
        }
    if "include_private" in settings:
        kwargs["include_private"] = _require(_as_bool(settings["include_private"]), "include_private")
    if "parallel" in settings:
        kwargs["parallel"] = _require(_as_bool(settings["parallel"]), "parallel")
    if "parallel_chunk_size" in settings:
        kwargs["parallel_chunk_size"] = _require(
            _as_int(settings["parallel_chunk_size"]), "parallel_chunk_size"
        )
    if "respect_gitignore" in settings:
        kwargs["respect_gitignore"] = _require(
            _as_bool(settings["respect_gitignore"]), "respect_gitignore"
        )
    if "skip_patterns" in settings:
        kwargs["skip_patterns"] = tuple(_as_str_list(settings["skip_patterns"]))
    if "timeout_seconds" in settings:
        kwargs["timeout_seconds"] = _require(_as_int(settings["timeout_seconds"]), "timeout_seconds")
    if "language" in settings:
        language = _as_str(settings["language"])
        kwargs["language"] = None if not language or language.lower() == "auto" else language.lower()
    if "crate_name" in settings:
        kwargs["crate_name"] = _as_str(settings["crate_name"]) or None
    if "templates_dir" in settings:
        kwargs["templates_dir"] = _as_str(settings["templates_dir"]) or None

    return replace(defaults, **kwargs)


def _global_config_dir(environ: Mapping[str, str]) -> Path:
    base = environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "auto_test"


def _first_existing(directory: Path, names: Sequence[str]) -> Path | None:
    for name in names:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _require(value: Any, key: str) -> Any:
    if value is None:
        raise ConfigError(f"Invalid value for '{key}'")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "ConfigError",
    "DEFAULT_SKIP_PATTERNS",
    "GenerationPolicy",
    "SUPPORTED_LANGUAGES",
    "find_project_root",
    "load_policy",
    "read_config_file",
    "write_default_config",
]
