"""Tests for policy loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from autotest.config import (
    DEFAULT_SKIP_PATTERNS,
    GenerationPolicy,
    find_project_root,
    load_policy,
    read_config_file,
    write_default_config,
)
from autotest.errors import ConfigError, ProjectRootError


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _load(root: Path, **kwargs) -> GenerationPolicy:
    kwargs.setdefault("env", {})
    kwargs.setdefault("include_global", False)
    return load_policy(root, **kwargs)


def test_defaults_without_config(tmp_path: Path) -> None:
    policy = _load(tmp_path)

    assert policy.output_dir == "tests"
    assert policy.skip_functions == ()
    assert dict(policy.type_mappings) == {}
    assert policy.include_private is False
    assert policy.parallel is True
    assert policy.parallel_chunk_size == 25
    assert policy.respect_gitignore is True
    assert policy.skip_patterns == DEFAULT_SKIP_PATTERNS
    assert policy.timeout_seconds == 300
    assert policy.language is None


def test_legacy_toml_layout(tmp_path: Path) -> None:
    _write(
        tmp_path / "auto_test.toml",
        """
output_dir = "generated"
skip_functions = ["internal_", "debug"]
include_private = true
parallel_chunk_size = 5

[type_mappings]
"Config" = "Config::new()"
""",
    )

    policy = _load(tmp_path)

    assert policy.output_dir == "generated"
    assert policy.skip_functions == ("internal_", "debug")
    assert policy.include_private is True
    assert policy.parallel_chunk_size == 5
    assert policy.get_type_mapping("Config") == "Config::new()"


def test_hierarchical_yaml_layout_wins_over_legacy_keys(tmp_path: Path) -> None:
    _write(
        tmp_path / "auto_test.yaml",
        """
output_dir: legacy
generation:
  output_dir: tests/generated
  timeout_seconds: 60
types:
  mappings:
    Uuid: "Uuid::nil()"
performance:
  parallel: false
filesystem:
  respect_gitignore: false
  skip_patterns: ["vendor/**"]
project:
  name: my-crate
  language: v
""",
    )

    policy = _load(tmp_path)

    assert policy.output_dir == "tests/generated"
    assert policy.timeout_seconds == 60
    assert policy.get_type_mapping("Uuid") == "Uuid::nil()"
    assert policy.parallel is False
    assert policy.respect_gitignore is False
    assert policy.skip_patterns == ("vendor/**",)
    assert policy.crate_name == "my-crate"
    assert policy.language == "v"


def test_layer_precedence_global_project_env_overrides(tmp_path: Path) -> None:
    xdg = tmp_path / "xdg"
    root = tmp_path / "project"
    _write(
        xdg / "auto_test" / "config.yaml",
        "output_dir: from_global\ninclude_private: true\ntype_mappings:\n  A: a()\n  B: b()\n",
    )
    _write(root / "auto_test.toml", 'output_dir = "from_project"\n[type_mappings]\nB = "b2()"\n')
    env = {"XDG_CONFIG_HOME": str(xdg), "AUTO_TEST_PARALLEL": "false", "AUTO_TEST_SKIP_FUNCTIONS": "x, y"}

    policy = load_policy(root, env=env, overrides={"output_dir": "from_cli", "language": None})

    assert policy.output_dir == "from_cli"
    assert policy.include_private is True
    assert policy.parallel is False
    assert policy.skip_functions == ("x", "y")
    # Override tables merge key by key across layers.
    assert dict(policy.type_mappings) == {"A": "a()", "B": "b2()"}


def test_explicit_config_file_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        _load(tmp_path, config_file=tmp_path / "missing.yaml")


def test_invalid_files_raise_config_error(tmp_path: Path) -> None:
    broken_toml = tmp_path / "a.toml"
    _write(broken_toml, "output_dir = \n")
    with pytest.raises(ConfigError):
        read_config_file(broken_toml)

    not_mapping = tmp_path / "b.yaml"
    _write(not_mapping, "- just\n- a list\n")
    with pytest.raises(ConfigError):
        read_config_file(not_mapping)

    unknown = tmp_path / "c.json"
    _write(unknown, "{}")
    with pytest.raises(ConfigError):
        read_config_file(unknown)


def test_invalid_values_raise_config_error(tmp_path: Path) -> None:
    _write(tmp_path / "auto_test.toml", 'parallel = "sometimes"\n')
    with pytest.raises(ConfigError):
        _load(tmp_path)

    with pytest.raises(ConfigError):
        GenerationPolicy(parallel_chunk_size=0)
    with pytest.raises(ConfigError):
        GenerationPolicy(timeout_seconds=-1)
    with pytest.raises(ConfigError):
        GenerationPolicy(language="cobol")


def test_policy_is_read_only() -> None:
    policy = GenerationPolicy(type_mappings={"A": "a()"}, skip_functions=["x"])

    assert isinstance(policy.skip_functions, tuple)
    with pytest.raises(TypeError):
        policy.type_mappings["B"] = "b()"  # type: ignore[index]
    with pytest.raises(AttributeError):
        policy.output_dir = "elsewhere"  # type: ignore[misc]


def test_should_skip_function_matches_substrings() -> None:
    policy = GenerationPolicy(skip_functions=("internal", ""))

    assert policy.should_skip_function("do_internal_work")
    assert not policy.should_skip_function("public_api")


def test_write_default_config_round_trips(tmp_path: Path) -> None:
    path = write_default_config(tmp_path / "auto_test.yaml")

    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert payload["generation"]["output_dir"] == "tests"
    assert payload["performance"]["parallel_chunk_size"] == 25
    assert _load(tmp_path) == GenerationPolicy()


def test_find_project_root_walks_upwards(tmp_path: Path) -> None:
    _write(tmp_path / "crate" / "Cargo.toml", "[package]\nname = 'x'\n")
    nested = tmp_path / "crate" / "src" / "deep"
    nested.mkdir(parents=True)

    assert find_project_root(nested) == (tmp_path / "crate").resolve()


def test_find_project_root_missing_path(tmp_path: Path) -> None:
    with pytest.raises(ProjectRootError):
        find_project_root(tmp_path / "nope")


def test_templates_dir_from_file_and_env(tmp_path: Path) -> None:
    _write(tmp_path / "auto_test.yaml", "generation:\n  templates_dir: my_templates\n")

    assert _load(tmp_path).templates_dir == "my_templates"
    assert _load(tmp_path, env={"AUTO_TEST_TEMPLATES_DIR": "other"}).templates_dir == "other"
