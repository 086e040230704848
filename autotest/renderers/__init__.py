"""Language specific test renderers."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from .base import Binding, TestCase, TestRenderer
from .rust import RustTestRenderer
from .vlang import VTestRenderer
from ..config import GenerationPolicy
from ..errors import UnsupportedLanguageError
from ..synthesis import assertion_synthesizer_for, value_synthesizer_for

_RENDERERS: Dict[str, type] = {
    "rust": RustTestRenderer,
    "v": VTestRenderer,
}


def renderer_for(language: str, root: str | Path, policy: GenerationPolicy) -> TestRenderer:
    """Build the renderer for ``language`` wired to its value and assertion synthesizers."""
    cls = _RENDERERS.get(language)
    if cls is None:
        raise UnsupportedLanguageError(f"No test renderer for language '{language}'")
    return cls(
        root,
        policy,
        value_synthesizer_for(language, policy),
        assertion_synthesizer_for(language),
    )


__all__ = [
    "Binding",
    "RustTestRenderer",
    "TestCase",
    "TestRenderer",
    "VTestRenderer",
    "renderer_for",
]
