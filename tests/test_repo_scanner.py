"""Tests for autotest.repo_scanner."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from autotest.config import GenerationPolicy
from autotest.errors import ProjectRootError
from autotest.repo_scanner import (
    RepoScanner,
    global_excludes_file,
    matches_skip_pattern,
    parse_ignore_file,
)
from tests._fixtures.repo_builder import RepoBuilder


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_returns_sorted_matching_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/lib.rs": "pub fn a() {}\n",
            "src/b/mod.rs": "pub fn b() {}\n",
            "src/a.rs": "pub fn c() {}\n",
            "README.md": "# readme\n",
        }
    )

    discovery = repo_builder.scan()

    # Files of a directory come before its subdirectories.
    assert repo_builder.relative(discovery.files) == ["src/a.rs", "src/lib.rs", "src/b/mod.rs"]
    assert discovery.diagnostics == []


def test_scan_always_excludes_infrastructure_and_output_dirs(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/lib.rs": "pub fn a() {}\n",
            "target/debug/build.rs": "fn main() {}\n",
            ".git/hooks/x.rs": "fn main() {}\n",
            "node_modules/pkg/y.rs": "fn main() {}\n",
            "tests/integration_tests.rs": "#[test] fn t() {}\n",
        }
    )

    discovery = repo_builder.scan(policy=GenerationPolicy(respect_gitignore=False, skip_patterns=()))

    assert repo_builder.relative(discovery.files) == ["src/lib.rs"]


def test_scan_respects_nested_gitignore(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "generated/\n",
            "src/lib.rs": "pub fn a() {}\n",
            "src/generated/out.rs": "pub fn gen() {}\n",
            "src/extra/.gitignore": "*.rs\n!keep.rs\n",
            "src/extra/drop.rs": "pub fn drop_me() {}\n",
            "src/extra/keep.rs": "pub fn keep() {}\n",
            "other/drop.rs": "pub fn visible() {}\n",
        }
    )

    discovery = repo_builder.scan()

    assert repo_builder.relative(discovery.files) == [
        "other/drop.rs",
        "src/lib.rs",
        "src/extra/keep.rs",
    ]


def test_scan_ignores_gitignore_when_disabled(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "*.rs\n",
            "src/lib.rs": "pub fn a() {}\n",
        }
    )

    assert repo_builder.scan().files == []
    discovery = repo_builder.scan(policy=GenerationPolicy(respect_gitignore=False))
    assert repo_builder.relative(discovery.files) == ["src/lib.rs"]


def test_scan_honours_git_info_exclude(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".git/info/exclude": "/scratch.rs\n",
            "scratch.rs": "pub fn s() {}\n",
            "src/scratch.rs": "pub fn kept() {}\n",
        }
    )

    discovery = repo_builder.scan()

    assert repo_builder.relative(discovery.files) == ["src/scratch.rs"]


def test_scan_applies_skip_patterns_without_gitignore(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/lib.rs": "pub fn a() {}\n",
            "src/bench/heavy.rs": "pub fn heavy() {}\n",
            "benches/speed.rs": "pub fn speed() {}\n",
        }
    )
    policy = GenerationPolicy(respect_gitignore=False, skip_patterns=("**/bench/**", "benches"))

    discovery = repo_builder.scan(policy=policy)

    assert repo_builder.relative(discovery.files) == ["src/lib.rs"]


def test_scan_deduplicates_symlinked_files(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/lib.rs": "pub fn a() {}\n"})
    link = repo_builder.path() / "src" / "alias.rs"
    try:
        os.symlink(repo_builder.path() / "src" / "lib.rs", link)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not available on this platform")

    discovery = repo_builder.scan()

    assert repo_builder.relative(discovery.files) == ["src/alias.rs"]


def test_scan_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    with pytest.raises(ProjectRootError) as excinfo:
        RepoScanner().scan(missing, (".rs",))
    assert str(missing) in str(excinfo.value)


def test_parse_ignore_file_handles_comments_and_negation(tmp_path: Path) -> None:
    ignore = tmp_path / ".gitignore"
    _write(ignore, "# comment\n\n/build/\n!important.rs\n\\#literal\n")

    rules = parse_ignore_file(ignore, base="sub")

    assert [(rule.pattern, rule.anchored, rule.directory_only, rule.negate) for rule in rules] == [
        ("build", True, True, False),
        ("important.rs", False, False, True),
        ("#literal", False, False, False),
    ]
    assert all(rule.base == "sub" for rule in rules)


def test_parse_ignore_file_missing_returns_empty(tmp_path: Path) -> None:
    assert parse_ignore_file(tmp_path / "absent") == []


def test_global_excludes_file_prefers_gitconfig(tmp_path: Path) -> None:
    home = tmp_path / "home"
    _write(home / ".gitconfig", "[user]\n  name = x\n[core]\n  excludesfile = /etc/custom-ignore\n")

    assert global_excludes_file({"HOME": str(home)}) == Path("/etc/custom-ignore")


def test_global_excludes_file_uses_xdg_default(tmp_path: Path) -> None:
    home = tmp_path / "home"
    xdg = tmp_path / "xdg"
    _write(xdg / "git" / "ignore", "*.bak\n")

    env = {"HOME": str(home), "XDG_CONFIG_HOME": str(xdg)}
    assert global_excludes_file(env) == xdg / "git" / "ignore"
    assert global_excludes_file({"HOME": str(home)}) is None


def test_scan_applies_xdg_global_excludes(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    xdg = tmp_path / "xdg"
    _write(xdg / "git" / "ignore", "generated.rs\n")
    repo_builder.env["XDG_CONFIG_HOME"] = str(xdg)
    repo_builder.write({"src/lib.rs": "pub fn a() {}\n", "src/generated.rs": "pub fn b() {}\n"})

    discovery = repo_builder.scan()

    assert repo_builder.relative(discovery.files) == ["src/lib.rs"]
    assert discovery.diagnostics == []


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root can read any directory")
def test_unreadable_directory_becomes_diagnostic(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/lib.rs": "pub fn a() {}\n", "src/locked/inner.rs": "pub fn b() {}\n"})
    locked = repo_builder.path() / "src" / "locked"
    locked.chmod(0)
    try:
        discovery = repo_builder.scan()
    finally:
        locked.chmod(0o755)

    assert repo_builder.relative(discovery.files) == ["src/lib.rs"]
    assert len(discovery.diagnostics) >= 1
    assert all(diagnostic.stage == "discovery" for diagnostic in discovery.diagnostics)
    assert any("locked" in diagnostic.path for diagnostic in discovery.diagnostics)


def test_matches_skip_pattern_semantics() -> None:
    assert matches_skip_pattern("a/target/debug/x.rs", ["**/target/**"])
    assert matches_skip_pattern("target/x.rs", ["**/target/**"])
    assert matches_skip_pattern("src/gen.rs", ["gen.rs"])
    assert not matches_skip_pattern("src/deep/x.rs", ["src/*.rs"])
    assert matches_skip_pattern("src/x.rs", ["src/*.rs"])
