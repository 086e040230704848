"""Deterministic literal synthesis from textual type signatures.

Each synthesizer is an ordered list of purely syntactic rules: the first rule
that recognizes the signature's shape produces the literal. No alias or trait
resolution happens here, so a user type lexically named ``Option`` is treated
like the built-in one.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

from ..config import GenerationPolicy
from ..errors import SynthesisError, UnsupportedLanguageError
from ..signatures import (
    base_name,
    first_generic_argument,
    is_nominal,
    last_segment,
    normalize_type_text,
    split_top_level,
    strip_generic,
)

MAX_DEPTH = 32

Rule = Callable[[str, int], Optional[str]]

RUST_INTEGERS = frozenset(
    {"i8", "i16", "i32", "i64", "i128", "isize", "u8", "u16", "u32", "u64", "u128", "usize"}
)
RUST_FLOATS = frozenset({"f32", "f64"})
RUST_STRINGS = frozenset({"String", "&str"})

V_INTEGERS = frozenset(
    {"int", "i8", "i16", "i32", "i64", "u8", "u16", "u32", "u64", "byte", "isize", "usize"}
)
V_FLOATS = frozenset({"f32", "f64"})

_LIFETIME = re.compile(r"^&'\w+\s*")
_ARRAY = re.compile(r"^\[(?P<element>.+);\s*(?P<length>[^;\]]+)\]$")


class ValueSynthesizer(ABC):
    """Turns a type signature into a literal expression of that type."""

    language: str = ""

    def __init__(self, policy: GenerationPolicy | None = None) -> None:
        self.policy = policy or GenerationPolicy()

    def synthesize(self, signature: str) -> str:
        """Return a literal for ``signature``; identical input gives identical output."""
        return self._synthesize(normalize_type_text(signature), 0)

    def _synthesize(self, signature: str, depth: int) -> str:
        if depth > MAX_DEPTH:
            raise SynthesisError(signature, "type nesting is too deep to synthesize")
        override = self.policy.get_type_mapping(signature)
        if override is not None:
            return override
        for rule in self.rules():
            value = rule(signature, depth)
            if value is not None:
                return value
        return self.fallback(signature)

    @abstractmethod
    def rules(self) -> Sequence[Rule]:
        """Ordered rules consulted after the override table."""

    @abstractmethod
    def fallback(self, signature: str) -> str:
        """Generic default-instance form used when no rule matches."""


class RustValueSynthesizer(ValueSynthesizer):
    language = "rust"

    _WELL_KNOWN: Dict[str, str] = {
        "PathBuf": 'std::path::PathBuf::from(".")',
        "Path": 'std::path::Path::new(".")',
        "Uuid": "uuid::Uuid::new_v4()",
        "Url": 'url::Url::parse("https://example.com").unwrap()',
        "DateTime": "chrono::Utc::now()",
        "NaiveDate": "chrono::NaiveDate::from_ymd_opt(2024, 1, 1).unwrap()",
        "Duration": "std::time::Duration::from_secs(1)",
    }
    _CHRONO_DURATION = "chrono::Duration::seconds(1)"

    def rules(self) -> Sequence[Rule]:
        return (
            self._well_known,
            self._primitive,
            self._option,
            self._result,
            self._vec,
            self._reference,
            self._tuple,
            self._array,
            self._nominal,
        )

    def fallback(self, signature: str) -> str:
        return "Default::default()"

    def _well_known(self, signature: str, depth: int) -> Optional[str]:
        text = signature
        if text.startswith("&") and last_segment(text[1:]) == "Path":
            text = text[1:]
        name = base_name(text)
        short = last_segment(name)
        if short not in self._WELL_KNOWN:
            return None
        # Only DateTime is recognized with generic arguments.
        if name != text and short != "DateTime":
            return None
        if short == "Duration" and name.startswith("chrono::"):
            return self._CHRONO_DURATION
        return self._WELL_KNOWN[short]

    def _primitive(self, signature: str, depth: int) -> Optional[str]:
        text = _LIFETIME.sub("&", signature)
        if text == "String":
            return '"test".to_string()'
        if text == "&str":
            return '"test"'
        if text in RUST_INTEGERS:
            return "0"
        if text in RUST_FLOATS:
            return "0.0"
        if text == "bool":
            return "false"
        if text == "char":
            return "'a'"
        if text == "()":
            return "()"
        return None

    def _option(self, signature: str, depth: int) -> Optional[str]:
        inner = strip_generic(signature, "Option")
        if inner is None:
            return None
        return f"Some({self._synthesize(inner, depth + 1)})"

    def _result(self, signature: str, depth: int) -> Optional[str]:
        inner = strip_generic(signature, "Result")
        if inner is None:
            return None
        ok_type = first_generic_argument(inner) or "()"
        return f"Ok({self._synthesize(ok_type, depth + 1)})"

    def _vec(self, signature: str, depth: int) -> Optional[str]:
        inner = strip_generic(signature, "Vec")
        if inner is None:
            return None
        return f"vec![{self._synthesize(inner, depth + 1)}]"

    def _reference(self, signature: str, depth: int) -> Optional[str]:
        if not signature.startswith("&"):
            return None
        text = _LIFETIME.sub("&", signature)[1:].strip()
        marker = "&"
        if text.startswith("mut "):
            marker = "&mut "
            text = text[4:].strip()
        # A block expression in a `let` keeps its temporary alive for the binding.
        return f"{marker}{{ {self._synthesize(text, depth + 1)} }}"

    def _tuple(self, signature: str, depth: int) -> Optional[str]:
        if not (signature.startswith("(") and signature.endswith(")")) or signature == "()":
            return None
        parts = [part for part in split_top_level(signature[1:-1]) if part]
        values = [self._synthesize(part, depth + 1) for part in parts]
        if len(values) == 1:
            return f"({values[0]},)"
        return f"({', '.join(values)})"

    def _array(self, signature: str, depth: int) -> Optional[str]:
        if not (signature.startswith("[") and signature.endswith("]")):
            return None
        match = _ARRAY.match(signature)
        if match is not None:
            element = self._synthesize(match.group("element").strip(), depth + 1)
            return f"[{element}; {match.group('length').strip()}]"
        return f"[{self._synthesize(signature[1:-1].strip(), depth + 1)}]"

    def _nominal(self, signature: str, depth: int) -> Optional[str]:
        if not is_nominal(signature):
            return None
        if "<" in signature:
            return f"<{signature}>::default()"
        return f"{signature}::default()"


class VValueSynthesizer(ValueSynthesizer):
    language = "v"

    def rules(self) -> Sequence[Rule]:
        return (
            self._well_known,
            self._primitive,
            self._wrapped,
            self._array,
            self._reference,
        )

    def fallback(self, signature: str) -> str:
        return f"{signature}{{}}"

    def _well_known(self, signature: str, depth: int) -> Optional[str]:
        if signature == "time.Time":
            return "time.now()"
        return None

    def _primitive(self, signature: str, depth: int) -> Optional[str]:
        if signature == "string":
            return "'test'"
        if signature in V_INTEGERS:
            return "0"
        if signature in V_FLOATS:
            return "0.0"
        if signature == "bool":
            return "false"
        if signature == "rune":
            return "`a`"
        return None

    def _wrapped(self, signature: str, depth: int) -> Optional[str]:
        # Option (?T), result (!T), mutable and variadic markers wrap a plain value.
        for prefix in ("?", "!", "mut ", "..."):
            if signature.startswith(prefix) and len(signature) > len(prefix):
                return self._synthesize(signature[len(prefix) :].strip(), depth + 1)
        return None

    def _array(self, signature: str, depth: int) -> Optional[str]:
        if not signature.startswith("[]") or len(signature) == 2:
            return None
        element_type = signature[2:].strip()
        element = self._synthesize(element_type, depth + 1)
        if element_type in (V_INTEGERS - {"int"}) or element_type == "f32":
            # Untyped numeric literals default to int/f64 inside array literals.
            element = f"{element_type}({element})"
        return f"[{element}]"

    def _reference(self, signature: str, depth: int) -> Optional[str]:
        if not signature.startswith("&") or len(signature) == 1:
            return None
        return f"&{self._synthesize(signature[1:].strip(), depth + 1)}"


_SYNTHESIZERS: Dict[str, type] = {
    "rust": RustValueSynthesizer,
    "v": VValueSynthesizer,
}


def value_synthesizer_for(language: str, policy: GenerationPolicy | None = None) -> ValueSynthesizer:
    cls = _SYNTHESIZERS.get(language)
    if cls is None:
        raise UnsupportedLanguageError(f"No value synthesizer for language '{language}'")
    return cls(policy)


__all__: List[str] = [
    "MAX_DEPTH",
    "RUST_FLOATS",
    "RUST_INTEGERS",
    "RustValueSynthesizer",
    "VValueSynthesizer",
    "ValueSynthesizer",
    "value_synthesizer_for",
]
