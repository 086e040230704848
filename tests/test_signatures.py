"""Tests for textual type helpers."""

from __future__ import annotations

import pytest

from autotest.signatures import (
    base_name,
    is_nominal,
    normalize_type_text,
    split_top_level,
    strip_generic,
    to_snake_case,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Vec< u8 >", "Vec<u8>"),
        ("Result<A ,B>", "Result<A, B>"),
        ("& mut  T", "&mut T"),
        ("HashMap <String,\n    Vec<i32>>", "HashMap<String, Vec<i32>>"),
        ("( u8 , String )", "(u8, String)"),
    ],
)
def test_normalize_type_text(raw: str, expected: str) -> None:
    assert normalize_type_text(raw) == expected


def test_split_top_level_respects_nesting() -> None:
    assert split_top_level("HashMap<K, V>, Box<dyn Fn(u8, u8) -> u8>") == [
        "HashMap<K, V>",
        "Box<dyn Fn(u8, u8) -> u8>",
    ]
    assert split_top_level("") == []


def test_strip_generic_matches_literal_prefix_only() -> None:
    assert strip_generic("Option<Vec<u8>>", "Option") == "Vec<u8>"
    assert strip_generic("MyOption<u8>", "Option") is None
    assert strip_generic("Option", "Option") is None


def test_base_name_and_nominal() -> None:
    assert base_name("std::collections::HashMap<K, V>") == "std::collections::HashMap"
    assert is_nominal("crate::Config")
    assert not is_nominal("u8")


def test_to_snake_case() -> None:
    assert to_snake_case("HttpClient") == "http_client"
    assert to_snake_case("Config") == "config"
