"""Whole-project analysis: discovery plus per-file extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from autotest.analyzers import analyze_project, detect_language, get_extractor
from autotest.config import GenerationPolicy
from autotest.errors import ProjectRootError, UnsupportedLanguageError
from tests._fixtures.repo_builder import RepoBuilder


def test_parse_failure_does_not_block_sibling_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "Cargo.toml": "[package]\nname = 'demo'\n",
            "src/lib.rs": "pub fn good() -> u32 { 1 }\n",
            "src/bad.rs": "pub fn broken( {\n",
            "src/other.rs": "pub fn also_good() {}\n",
        }
    )

    analysis = repo_builder.analyze()

    assert analysis.project.language == "rust"
    assert [f.name for f in analysis.project.functions] == ["good", "also_good"]
    assert len(analysis.diagnostics) == 1
    diagnostic = analysis.diagnostics[0]
    assert diagnostic.stage == "extraction"
    assert diagnostic.path.endswith("bad.rs")


def test_unreadable_file_becomes_diagnostic(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "Cargo.toml": "[package]\nname = 'demo'\n",
            "src/lib.rs": "pub fn good() {}\n",
            "src/other.rs": "pub fn also_good() {}\n",
        }
    )
    (repo_builder.path() / "src" / "bad.rs").write_bytes(b"pub fn x() {}\xff\n")

    analysis = repo_builder.analyze()

    assert sorted(f.name for f in analysis.project.functions) == ["also_good", "good"]
    assert len(analysis.diagnostics) == 1
    diagnostic = analysis.diagnostics[0]
    assert diagnostic.stage == "extraction"
    assert diagnostic.path.endswith("bad.rs")
    assert "cannot read file" in diagnostic.message


def test_descriptors_point_at_walked_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "Cargo.toml": "[package]\nname = 'demo'\n",
            "src/lib.rs": "pub fn a() {}\n",
            "src/net/mod.rs": "pub fn b() {}\n",
        }
    )

    analysis = repo_builder.analyze()
    walked = {str(path) for path in repo_builder.scan().files}

    assert {f.source_file for f in analysis.project.functions} <= walked
    assert analysis.project.root_path == str(repo_builder.path().resolve())


def test_visibility_filter_counts_one_descriptor(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"Cargo.toml": "", "src/lib.rs": "pub fn shown() {}\nfn hidden() {}\n"})

    analysis = repo_builder.analyze(GenerationPolicy(include_private=False))

    assert len(analysis.project.functions) == 1


def test_v_projects_skip_test_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "v.mod": "Module { name: 'demo' }\n",
            "main.v": "pub fn hello() string {\n\treturn 'hi'\n}\n",
            "main_test.v": "fn test_hello() {\n\tassert hello() == 'hi'\n}\n",
        }
    )

    analysis = repo_builder.analyze()

    assert analysis.project.language == "v"
    assert [f.name for f in analysis.project.functions] == ["hello"]


def test_detect_language(tmp_path: Path) -> None:
    assert detect_language(tmp_path, GenerationPolicy(language="v")) == "v"

    (tmp_path / "a.v").write_text("fn a() {}\n", encoding="utf-8")
    (tmp_path / "b.v").write_text("fn b() {}\n", encoding="utf-8")
    (tmp_path / "c.rs").write_text("fn c() {}\n", encoding="utf-8")
    assert detect_language(tmp_path, env={}) == "v"

    (tmp_path / "Cargo.toml").write_text("", encoding="utf-8")
    assert detect_language(tmp_path, env={}) == "rust"


def test_detect_language_defaults_to_rust(tmp_path: Path) -> None:
    assert detect_language(tmp_path, env={}) == "rust"


def test_invalid_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ProjectRootError):
        analyze_project(tmp_path / "missing")


def test_unknown_language_is_rejected() -> None:
    with pytest.raises(UnsupportedLanguageError):
        get_extractor("cobol")
