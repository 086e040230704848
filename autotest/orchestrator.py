"""Turns an analyzed project into rendered test files."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .config import GenerationPolicy
from .errors import SynthesisError
from .logging import get_logger
from .models import Diagnostic, FunctionDescriptor, GenerationResult, ProjectDescriptor
from .renderers import TestCase, TestRenderer, renderer_for

logger = get_logger("orchestrator")


@dataclass(frozen=True)
class CaseOutcome:
    """Either a synthesized test case or the diagnostic explaining its absence."""

    case: TestCase | None = None
    diagnostic: Diagnostic | None = None


class TestGenerator:
    """Synthesizes one test per retained function and groups them per module file."""

    __test__ = False

    def __init__(self, policy: GenerationPolicy | None = None, *, max_workers: int | None = None) -> None:
        self.policy = policy or GenerationPolicy()
        self.max_workers = max_workers

    def generate(self, project: ProjectDescriptor) -> GenerationResult:
        renderer = renderer_for(project.language, project.root_path, self.policy)
        functions = [fn for fn in project.functions if not self.policy.should_skip_function(fn.name)]
        if self.policy.timeout_seconds:
            # Advisory only: nothing is cancelled when the timeout elapses.
            logger.debug("Timeout for this run: %ss (advisory)", self.policy.timeout_seconds)

        if self.policy.parallel and len(functions) > self.policy.parallel_chunk_size:
            outcomes = self._run_parallel(renderer, functions)
        else:
            outcomes = _process_chunk(renderer, functions)

        result = GenerationResult()
        grouped: Dict[str, List[TestCase]] = {}
        for outcome in outcomes:
            if outcome.diagnostic is not None:
                result.diagnostics.append(outcome.diagnostic)
                logger.warning("%s", outcome.diagnostic)
                continue
            if outcome.case is not None:
                grouped.setdefault(outcome.case.path, []).append(outcome.case)

        for path, cases in grouped.items():
            result.files.append(renderer.render_file(path, cases))
            logger.debug("Rendered %d test(s) into %s", len(cases), path)

        logger.info(
            "Synthesized %d test file(s) from %d function(s)",
            len(result.files),
            len(functions),
        )
        return result

    def _run_parallel(self, renderer: TestRenderer, functions: Sequence[FunctionDescriptor]) -> List[CaseOutcome]:
        chunks = _chunked(functions, self.policy.parallel_chunk_size)
        workers = self.max_workers or min(len(chunks), os.cpu_count() or 1)
        logger.debug("Processing %d chunk(s) on %d worker(s)", len(chunks), workers)
        outcomes: List[CaseOutcome] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="autotest") as executor:
            # map() yields in submission order, so output never depends on scheduling.
            for chunk_outcomes in executor.map(lambda chunk: _process_chunk(renderer, chunk), chunks):
                outcomes.extend(chunk_outcomes)
        return outcomes


def _process_chunk(renderer: TestRenderer, functions: Sequence[FunctionDescriptor]) -> List[CaseOutcome]:
    outcomes: List[CaseOutcome] = []
    for function in functions:
        try:
            outcomes.append(CaseOutcome(case=renderer.build_case(function)))
        except SynthesisError as exc:
            outcomes.append(CaseOutcome(diagnostic=_diagnostic(function, exc.reason)))
        except Exception as exc:  # noqa: BLE001
            outcomes.append(CaseOutcome(diagnostic=_diagnostic(function, f"unexpected error: {exc}")))
    return outcomes


def _diagnostic(function: FunctionDescriptor, message: str) -> Diagnostic:
    return Diagnostic(
        stage="synthesis",
        path=function.source_file,
        message=f"{function.qualified_name}: {message}",
    )


def _chunked(items: Sequence[FunctionDescriptor], size: int) -> List[Tuple[FunctionDescriptor, ...]]:
    return [tuple(items[index : index + size]) for index in range(0, len(items), size)]


__all__ = ["CaseOutcome", "TestGenerator"]
