"""Shared machinery for language specific test renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Set, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateError

from ..config import GenerationPolicy
from ..errors import ConfigError
from ..models import FunctionDescriptor, ParameterDescriptor, SynthesizedTestFile
from ..repo_scanner import relative_posix
from ..signatures import is_identifier, to_snake_case
from ..synthesis import AssertionSynthesizer, ValueSynthesizer

TEMPLATES_DIR = Path(__file__).with_name("templates")

_RESERVED_LOCALS = {"result", "instance", "self", "_"}


@dataclass(frozen=True)
class Binding:
    """One arrange-block local and the literal bound to it."""

    local: str
    value: str
    mutable: bool = False


@dataclass(frozen=True)
class TestCase:
    """A synthesized test for one function, before names are made unique per file."""

    __test__ = False

    function: FunctionDescriptor
    path: str
    module: Tuple[str, ...]
    name: str
    receiver: Binding | None
    bindings: Tuple[Binding, ...]
    call: str
    assertion: str


class TestRenderer(ABC):
    """Derives module paths and file names and renders test source text."""

    __test__ = False

    language: str = ""
    indent: str = "    "
    template_name: str = ""

    def __init__(
        self,
        root: str | Path,
        policy: GenerationPolicy,
        values: ValueSynthesizer,
        assertions: AssertionSynthesizer,
    ) -> None:
        self.root = Path(root)
        self.policy = policy
        self.values = values
        self.assertions = assertions
        self._env = self._create_env()

    def _create_env(self) -> Environment:
        # A project templates directory shadows the bundled templates by file name.
        directories: List[str] = []
        if self.policy.templates_dir:
            directories.append(str(self.root / self.policy.templates_dir))
        directories.append(str(TEMPLATES_DIR))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)

    @abstractmethod
    def module_segments(self, function: FunctionDescriptor) -> Tuple[str, ...]:
        """Module path of ``function`` as a tuple of segments (empty for the root)."""

    @abstractmethod
    def file_name(self, module: Sequence[str]) -> str:
        """Test file name for a module path."""

    @abstractmethod
    def receiver_binding(self, function: FunctionDescriptor, module: Sequence[str]) -> Binding | None:
        """Binding for the instance a method is invoked on, if any."""

    @abstractmethod
    def call_expression(
        self,
        function: FunctionDescriptor,
        module: Sequence[str],
        arguments: Sequence[Binding],
    ) -> str:
        """Invocation of the function under test using the bound locals."""

    def template_context(self, module: Sequence[str], cases: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """Extra template variables for one file; ``cases`` are already named."""
        return {}

    def case_context(self, case: TestCase, name: str) -> Dict[str, Any]:
        locals_ = [case.receiver, *case.bindings] if case.receiver is not None else list(case.bindings)
        return {
            "name": name,
            "is_async": case.function.is_async,
            "locals": locals_,
            "call": case.call,
            "assertion": case.assertion,
            "function": case.function,
        }

    def parameter_type(self, function: FunctionDescriptor, parameter: ParameterDescriptor) -> str:
        return parameter.type_signature

    def is_mutable(self, parameter: ParameterDescriptor) -> bool:
        return False

    def output_path(self, module: Sequence[str]) -> Path:
        return self.root / self.policy.output_dir / self.file_name(module)

    def relative_source(self, function: FunctionDescriptor) -> str:
        return relative_posix(function.source_file, self.root)

    def test_name(self, function: FunctionDescriptor) -> str:
        if function.owner:
            return f"test_{to_snake_case(function.owner)}_{function.name}"
        return f"test_{function.name}"

    def build_case(self, function: FunctionDescriptor) -> TestCase:
        """Synthesize the arrange, act and assert parts for one function."""
        module = self.module_segments(function)
        arguments = function.arguments
        locals_ = argument_locals(arguments)
        bindings = tuple(
            Binding(
                local=local,
                value=self.values.synthesize(self.parameter_type(function, parameter)),
                mutable=self.is_mutable(parameter),
            )
            for local, parameter in zip(locals_, arguments)
        )
        return TestCase(
            function=function,
            path=str(self.output_path(module)),
            module=module,
            name=self.test_name(function),
            receiver=self.receiver_binding(function, module),
            bindings=bindings,
            call=self.call_expression(function, module, bindings),
            assertion=self.assertions.synthesize(self.return_type(function)),
        )

    def return_type(self, function: FunctionDescriptor) -> str:
        return function.return_type_signature

    def render_file(self, path: str, cases: Sequence[TestCase]) -> SynthesizedTestFile:
        """Assemble one test file from cases that share ``path``."""
        module = cases[0].module if cases else ()
        named = [
            self.case_context(case, name)
            for case, name in zip(cases, unique_names(case.name for case in cases))
        ]
        try:
            template = self._env.get_template(self.template_name)
            content = template.render(
                module=tuple(module),
                cases=named,
                indent=self.indent,
                **self.template_context(module, named),
            )
        except TemplateError as exc:
            raise ConfigError(f"Failed to render template {self.template_name}: {exc}") from exc
        return SynthesizedTestFile(path=path, content=content.rstrip("\n") + "\n")


def argument_locals(arguments: Sequence[ParameterDescriptor]) -> List[str]:
    """Local names for arguments: declared names when usable, else ``param_<i>``."""
    names = [parameter.name for parameter in arguments]
    counts: Dict[str, int] = {}
    for name in names:
        counts[name] = counts.get(name, 0) + 1

    locals_: List[str] = []
    taken: Set[str] = set()
    for index, name in enumerate(names):
        usable = (
            is_identifier(name)
            and name not in _RESERVED_LOCALS
            and counts[name] == 1
            and not _is_placeholder(name)
        )
        local = name if usable else f"param_{index}"
        while local in taken:
            local = f"{local}_"
        taken.add(local)
        locals_.append(local)
    return locals_


def unique_names(names: Iterable[str]) -> List[str]:
    """Suffix repeated test names with ``_2``, ``_3``... in order of appearance."""
    seen: Dict[str, int] = {}
    used: Set[str] = set()
    unique: List[str] = []
    for name in names:
        count = seen.get(name, 0) + 1
        seen[name] = count
        candidate = name if count == 1 else f"{name}_{count}"
        while candidate in used:
            count += 1
            candidate = f"{name}_{count}"
        used.add(candidate)
        unique.append(candidate)
    return unique


def _is_placeholder(name: str) -> bool:
    return name.startswith("arg") and name[3:].isdigit()


__all__ = [
    "Binding",
    "TestCase",
    "TestRenderer",
    "argument_locals",
    "unique_names",
]
