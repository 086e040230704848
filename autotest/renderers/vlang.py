"""V test rendering."""

from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple

from .base import Binding, TestCase, TestRenderer
from ..models import FunctionDescriptor, ParameterDescriptor

_MUT_PREFIX = "mut "
_OPTION_MARKERS = ("!", "?")


def module_path_from_file(relative_path: str) -> Tuple[str, ...]:
    """Directory of the file, ``src/`` stripped: ``src/net/http/x.v`` -> ``("net", "http")``."""
    parts = [part for part in relative_path.replace("\\", "/").split("/") if part and part != "."]
    directories = parts[:-1]
    if directories and directories[0] == "src":
        directories = directories[1:]
    return tuple(directories)


def file_name_for_module(module: Sequence[str]) -> str:
    if not module:
        return "integration_test.v"
    return f"{'_'.join(module)}_test.v"


class VTestRenderer(TestRenderer):
    language = "v"
    indent = "\t"
    template_name = "v_test.v.j2"

    def module_segments(self, function: FunctionDescriptor) -> Tuple[str, ...]:
        return module_path_from_file(self.relative_source(function)) + tuple(function.scope)

    def file_name(self, module: Sequence[str]) -> str:
        return file_name_for_module(module)

    def is_mutable(self, parameter: ParameterDescriptor) -> bool:
        return parameter.type_signature.startswith(_MUT_PREFIX)

    def receiver_binding(self, function: FunctionDescriptor, module: Sequence[str]) -> Binding | None:
        receiver = function.receiver
        if receiver is None or not function.owner:
            return None
        value = self.policy.get_type_mapping(function.owner)
        if value is None:
            value = self.values.synthesize(f"{_qualifier(module)}{function.owner}")
        return Binding(
            local="instance",
            value=value,
            mutable=receiver.type_signature.startswith("&mut"),
        )

    def call_expression(
        self,
        function: FunctionDescriptor,
        module: Sequence[str],
        arguments: Sequence[Binding],
    ) -> str:
        args = ", ".join(
            f"{_MUT_PREFIX}{binding.local}" if binding.mutable else binding.local
            for binding in arguments
        )
        if function.receiver is not None and function.owner:
            call = f"instance.{function.name}({args})"
        else:
            call = f"{_qualifier(module)}{function.name}({args})"
        if function.return_type_signature.startswith(_OPTION_MARKERS):
            call = f"{call} or {{ panic(err) }}"
        return call

    def case_context(self, case: TestCase, name: str) -> Dict[str, Any]:
        context = super().case_context(case, name)
        context["returns_value"] = _returns_value(case.function.return_type_signature)
        return context

    def template_context(self, module: Sequence[str], cases: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        imports = [".".join(module)] if module else []
        if any(_uses_time(case["locals"]) for case in cases):
            imports.append("time")
        return {"imports": imports}


def _qualifier(module: Sequence[str]) -> str:
    return f"{module[-1]}." if module else ""


def _returns_value(signature: str) -> bool:
    return bool(signature) and signature not in _OPTION_MARKERS


def _uses_time(bindings: Sequence[Binding]) -> bool:
    return any("time." in binding.value for binding in bindings)


__all__ = ["VTestRenderer", "file_name_for_module", "module_path_from_file"]
