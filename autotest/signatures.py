"""Purely textual helpers for type signatures.

Nothing here resolves names or aliases: a signature is matched by its
literal shape only.
"""

from __future__ import annotations

import re
from typing import List, Optional

_WHITESPACE = re.compile(r"\s+")
_AFTER_OPEN = re.compile(r"([<(\[])\s+")
_BEFORE_CLOSE = re.compile(r"\s+([>)\]])")
_BEFORE_OPEN_ANGLE = re.compile(r"(\w)\s+<")
_COMMA = re.compile(r"\s*,\s*")
_AMPERSAND = re.compile(r"&\s+")

_OPENERS = {"<": ">", "(": ")", "[": "]", "{": "}"}
_CLOSERS = {">", ")", "]", "}"}


def normalize_type_text(text: str) -> str:
    """Collapse insignificant whitespace in a type as written in source."""
    normalized = _WHITESPACE.sub(" ", text).strip()
    normalized = _AFTER_OPEN.sub(r"\1", normalized)
    normalized = _BEFORE_CLOSE.sub(r"\1", normalized)
    normalized = _BEFORE_OPEN_ANGLE.sub(r"\1<", normalized)
    normalized = _COMMA.sub(", ", normalized)
    normalized = _AMPERSAND.sub("&", normalized)
    return normalized.strip()


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on ``separator`` outside any bracket pair; parts are stripped."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    previous = ""
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and not (char == ">" and previous == "-"):
            depth = max(depth - 1, 0)
        if char == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        previous = char
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def strip_generic(text: str, outer: str, *, open_bracket: str = "<", close_bracket: str = ">") -> Optional[str]:
    """Return the bracketed argument text of ``outer<...>``, or None.

    Matching is by literal prefix and suffix, one bracket level deep.
    """
    text = text.strip()
    prefix = f"{outer}{open_bracket}"
    if text.startswith(prefix) and text.endswith(close_bracket) and len(text) > len(prefix):
        return text[len(prefix) : -len(close_bracket)].strip()
    return None


def first_generic_argument(arguments: str) -> str:
    parts = split_top_level(arguments)
    return parts[0] if parts and parts[0] else ""


def base_name(text: str) -> str:
    """Return the nominal part of a type: ``a::b::Foo<T>`` -> ``a::b::Foo``."""
    head = text.strip().split("<", 1)[0].split("[", 1)[0]
    return head.strip()


def last_segment(path: str, separator: str = "::") -> str:
    return path.rsplit(separator, 1)[-1]


def is_nominal(text: str) -> bool:
    """Capitalized signatures look like user-defined (nominal) types."""
    name = last_segment(base_name(text))
    return bool(name) and name[0].isupper()


def is_identifier(text: str) -> bool:
    return bool(re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", text))


def to_snake_case(name: str) -> str:
    snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    return re.sub(r"\W+", "_", snake).strip("_").lower()


__all__ = [
    "base_name",
    "first_generic_argument",
    "is_identifier",
    "is_nominal",
    "last_segment",
    "normalize_type_text",
    "split_top_level",
    "strip_generic",
    "to_snake_case",
]
