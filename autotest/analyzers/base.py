"""Base classes for signature extractors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Tuple

from ..config import GenerationPolicy
from ..errors import ExtractionError
from ..models import FunctionDescriptor, ParameterDescriptor, TypeInterner
from ..signatures import normalize_type_text


class SignatureExtractor(ABC):
    """Contract for extractors that turn one source file into function descriptors."""

    language: str = ""
    extensions: Tuple[str, ...] = ()

    def accepts(self, path: Path) -> bool:
        """Return True when ``path`` is a source file this extractor handles."""
        return path.name.lower().endswith(self.extensions)

    def extract_file(
        self, path: Path, policy: GenerationPolicy, interner: TypeInterner
    ) -> List[FunctionDescriptor]:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExtractionError(path, f"cannot read file: {exc}") from exc
        return self.extract(source, str(path), policy, interner)

    @abstractmethod
    def extract(
        self,
        source: str,
        path: str,
        policy: GenerationPolicy,
        interner: TypeInterner,
    ) -> List[FunctionDescriptor]:
        """Parse ``source`` and return the retained function signatures.

        Raises ``ExtractionError`` when the file cannot be parsed.
        """

    @staticmethod
    def is_retained(name: str, is_public: bool, policy: GenerationPolicy) -> bool:
        if not (is_public or policy.include_private):
            return False
        return not policy.should_skip_function(name)

    @staticmethod
    def parameter(name: str, type_text: str, interner: TypeInterner) -> ParameterDescriptor:
        return ParameterDescriptor(name=name, type_signature=interner.intern(normalize_type_text(type_text)))


__all__ = ["SignatureExtractor"]
