"""Signature extractors and whole-project analysis."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Mapping, Set

from .base import SignatureExtractor
from .rust import RustExtractor
from .vlang import VExtractor
from ..config import GenerationPolicy
from ..errors import ExtractionError, ProjectRootError, UnsupportedLanguageError
from ..logging import get_logger
from ..models import Diagnostic, FunctionDescriptor, ProjectAnalysis, ProjectDescriptor, TypeInterner
from ..repo_scanner import RepoScanner

_BUILTIN_FACTORIES: Dict[str, Callable[[], SignatureExtractor]] = {
    "rust": RustExtractor,
    "v": VExtractor,
}

_MANIFESTS: Dict[str, str] = {
    "Cargo.toml": "rust",
    "v.mod": "v",
}

_DEFAULT_LANGUAGE = "rust"

logger = get_logger("analyzers")


def get_extractor(language: str) -> SignatureExtractor:
    """Return a fresh extractor for ``language``."""
    factory = _BUILTIN_FACTORIES.get(language.lower())
    if factory is None:
        supported = ", ".join(sorted(_BUILTIN_FACTORIES))
        raise UnsupportedLanguageError(f"No extractor for language '{language}' (supported: {supported})")
    return factory()


def detect_language(
    root: Path,
    policy: GenerationPolicy | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> str:
    """Pick the project language: policy, then manifest file, then file counts."""
    policy = policy or GenerationPolicy()
    if policy.language:
        return policy.language

    for manifest, language in _MANIFESTS.items():
        if (root / manifest).is_file():
            return language

    scanner = RepoScanner(policy, env=env)
    best_language = _DEFAULT_LANGUAGE
    best_count = 0
    for language, factory in _BUILTIN_FACTORIES.items():
        extractor = factory()
        discovery = scanner.scan(root, extractor.extensions)
        count = sum(1 for path in discovery.files if extractor.accepts(path))
        if count > best_count:
            best_language, best_count = language, count
    return best_language


def analyze_project(
    root: str | Path,
    policy: GenerationPolicy | None = None,
    *,
    language: str | None = None,
    env: Mapping[str, str] | None = None,
) -> ProjectAnalysis:
    """Discover source files under ``root`` and extract every retained signature.

    Unreadable or unparsable files become diagnostics and contribute nothing;
    only an invalid root aborts the run.
    """
    policy = policy or GenerationPolicy()
    root_path = Path(root).expanduser().resolve()
    if not root_path.is_dir():
        raise ProjectRootError(f"Project path not found or not a directory: {root}")

    language = language or detect_language(root_path, policy, env=env)
    extractor = get_extractor(language)
    discovery = RepoScanner(policy, env=env).scan(root_path, extractor.extensions)

    interner = TypeInterner()
    diagnostics: List[Diagnostic] = list(discovery.diagnostics)
    functions: List[FunctionDescriptor] = []
    processed: Set[Path] = set()

    logger.info("Analyzing %d %s file(s) under %s", len(discovery.files), language, root_path)
    for path in discovery.files:
        if not extractor.accepts(path):
            continue
        key = path.resolve()
        if key in processed:
            continue
        processed.add(key)

        try:
            extracted = extractor.extract_file(path, policy, interner)
        except ExtractionError as exc:
            diagnostic = Diagnostic(stage="extraction", path=str(path), message=exc.reason)
            diagnostics.append(diagnostic)
            logger.warning("%s", diagnostic)
            continue
        logger.debug("Extracted %d function(s) from %s", len(extracted), path)
        functions.extend(extracted)

    project = ProjectDescriptor(
        language=language,
        root_path=str(root_path),
        functions=tuple(functions),
    )
    logger.info(
        "Found %d function(s) across %d file(s); %d type signature(s) interned",
        len(functions),
        len(processed),
        len(interner),
    )
    return ProjectAnalysis(project=project, diagnostics=diagnostics)


__all__ = [
    "RustExtractor",
    "SignatureExtractor",
    "VExtractor",
    "analyze_project",
    "detect_language",
    "get_extractor",
]
