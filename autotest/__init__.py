"""autotest - synthesize skeleton test files from a project's public signatures."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .analyzers import analyze_project
from .config import GenerationPolicy, find_project_root, load_policy
from .logging import get_logger
from .models import Diagnostic, GenerationResult
from .orchestrator import TestGenerator
from .writer import save_all

__version__ = "0.1.0"

logger = get_logger()


def generate_tests_for_project(
    path: str | Path,
    policy: GenerationPolicy | None = None,
    *,
    write: bool = True,
) -> GenerationResult:
    """Analyze the project containing ``path`` and synthesize its test files.

    When ``policy`` is omitted it is loaded from the project's configuration
    files and ``AUTO_TEST_*`` environment variables. Run-level failures
    (missing root, broken configuration) raise; everything else is reported
    through ``GenerationResult.diagnostics``.
    """
    root = find_project_root(Path(path))
    if policy is None:
        policy = load_policy(root)

    analysis = analyze_project(root, policy)
    result = TestGenerator(policy).generate(analysis.project)

    diagnostics: List[Diagnostic] = [*analysis.diagnostics, *result.diagnostics]
    result.diagnostics = diagnostics
    if write:
        save_all(result.files)
    if diagnostics:
        logger.info("Finished with %d warning(s)", len(diagnostics))
    return result


__all__ = [
    "GenerationPolicy",
    "GenerationResult",
    "__version__",
    "generate_tests_for_project",
]
