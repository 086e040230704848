"""Core data models shared across autotest components."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

RECEIVER_NAME = "self"
RECEIVER_TYPE = "Self"


@dataclass(frozen=True)
class ParameterDescriptor:
    """A single parameter: its declared name and textual type signature."""

    name: str
    type_signature: str

    @property
    def is_receiver(self) -> bool:
        return self.name == RECEIVER_NAME and self.type_signature.endswith(RECEIVER_TYPE)


@dataclass(frozen=True)
class FunctionDescriptor:
    """Signature of one discovered function, independent of its source language."""

    name: str
    parameters: Tuple[ParameterDescriptor, ...]
    return_type_signature: str
    source_file: str
    is_async: bool = False
    owner: Optional[str] = None
    scope: Tuple[str, ...] = ()

    @property
    def receiver(self) -> Optional[ParameterDescriptor]:
        for parameter in self.parameters:
            if parameter.is_receiver:
                return parameter
        return None

    @property
    def arguments(self) -> Tuple[ParameterDescriptor, ...]:
        """Parameters passed explicitly at the call site (receiver excluded)."""
        return tuple(parameter for parameter in self.parameters if not parameter.is_receiver)

    @property
    def qualified_name(self) -> str:
        parts = [*self.scope]
        if self.owner:
            parts.append(self.owner)
        parts.append(self.name)
        return "::".join(parts)


@dataclass(frozen=True)
class ProjectDescriptor:
    """Aggregate root of one analysis run."""

    language: str
    root_path: str
    functions: Tuple[FunctionDescriptor, ...]


@dataclass(frozen=True)
class SynthesizedTestFile:
    """Rendered test file ready to be handed to the writer."""

    path: str
    content: str


@dataclass(frozen=True)
class Diagnostic:
    """Human-readable warning produced by a recoverable failure."""

    stage: str
    path: str
    message: str

    def __str__(self) -> str:
        return f"[{self.stage}] {self.path}: {self.message}"


@dataclass
class ProjectAnalysis:
    """Project descriptor plus the diagnostics gathered while building it."""

    project: ProjectDescriptor
    diagnostics: List[Diagnostic] = field(default_factory=list)


@dataclass
class GenerationResult:
    """Synthesized test files plus every diagnostic of the run."""

    files: List[SynthesizedTestFile] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class TypeInterner:
    """Deduplicates type signature strings for one extraction session.

    Equal text maps to the same stored string object. This is a cache only:
    two identical signatures are not claimed to denote the same type.
    """

    def __init__(self) -> None:
        self._table: Dict[str, str] = {}
        self._lock = threading.Lock()

    def intern(self, text: str) -> str:
        with self._lock:
            return self._table.setdefault(text, text)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, text: object) -> bool:
        return text in self._table


__all__ = [
    "Diagnostic",
    "FunctionDescriptor",
    "GenerationResult",
    "ParameterDescriptor",
    "ProjectAnalysis",
    "ProjectDescriptor",
    "RECEIVER_NAME",
    "RECEIVER_TYPE",
    "SynthesizedTestFile",
    "TypeInterner",
]
