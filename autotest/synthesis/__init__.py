"""Value and assertion synthesis from textual type signatures."""

from __future__ import annotations

from .assertions import (
    AssertionSynthesizer,
    RustAssertionSynthesizer,
    VAssertionSynthesizer,
    assertion_synthesizer_for,
)
from .values import (
    RustValueSynthesizer,
    ValueSynthesizer,
    VValueSynthesizer,
    value_synthesizer_for,
)

__all__ = [
    "AssertionSynthesizer",
    "RustAssertionSynthesizer",
    "RustValueSynthesizer",
    "VAssertionSynthesizer",
    "VValueSynthesizer",
    "ValueSynthesizer",
    "assertion_synthesizer_for",
    "value_synthesizer_for",
]
