"""Rust integration test rendering."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

from .base import Binding, TestRenderer
from ..config import GenerationPolicy
from ..logging import get_logger
from ..models import FunctionDescriptor, ParameterDescriptor
from ..synthesis import AssertionSynthesizer, ValueSynthesizer

_SELF = re.compile(r"\bSelf\b")
_ROOT_FILES = {"lib.rs", "main.rs"}

logger = get_logger("renderers.rust")


def detect_crate_name(root: Path, policy: GenerationPolicy) -> str:
    """Crate name used in ``use`` lines: policy, then Cargo.toml, then the directory name."""
    if policy.crate_name:
        return _sanitize(policy.crate_name)

    manifest = root / "Cargo.toml"
    if manifest.is_file():
        try:
            data = tomllib.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Could not read %s: %s", manifest, exc)
        else:
            for table in ("lib", "package"):
                section = data.get(table)
                if isinstance(section, dict) and isinstance(section.get("name"), str):
                    return _sanitize(section["name"])

    return _sanitize(root.resolve().name)


def module_path_from_file(relative_path: str) -> Tuple[str, ...]:
    """``src/a/b.rs`` -> ``("a", "b")``; crate roots map to the empty path."""
    path = relative_path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    if path.startswith("src/"):
        path = path[len("src/") :]
    if path in _ROOT_FILES:
        return ()

    parts = [part for part in path.split("/") if part]
    if parts and parts[-1] == "mod.rs":
        parts.pop()
    elif parts and parts[-1].endswith(".rs"):
        parts[-1] = parts[-1][: -len(".rs")]
    return tuple(parts)


def file_name_for_module(module: Sequence[str]) -> str:
    if not module:
        return "integration_tests.rs"
    return f"{'_'.join(module)}_tests.rs"


class RustTestRenderer(TestRenderer):
    language = "rust"
    template_name = "rust_tests.rs.j2"

    def __init__(
        self,
        root: str | Path,
        policy: GenerationPolicy,
        values: ValueSynthesizer,
        assertions: AssertionSynthesizer,
    ) -> None:
        super().__init__(root, policy, values, assertions)
        self.crate_name = detect_crate_name(self.root, policy)

    def module_segments(self, function: FunctionDescriptor) -> Tuple[str, ...]:
        return module_path_from_file(self.relative_source(function)) + tuple(function.scope)

    def file_name(self, module: Sequence[str]) -> str:
        return file_name_for_module(module)

    def parameter_type(self, function: FunctionDescriptor, parameter: ParameterDescriptor) -> str:
        return _resolve_self(parameter.type_signature, function.owner)

    def return_type(self, function: FunctionDescriptor) -> str:
        return _resolve_self(function.return_type_signature, function.owner)

    def receiver_binding(self, function: FunctionDescriptor, module: Sequence[str]) -> Binding | None:
        receiver = function.receiver
        if receiver is None or not function.owner:
            return None
        value = self.policy.get_type_mapping(function.owner)
        if value is None:
            value = self.values.synthesize(self._qualified(module, function.owner))
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
        args = ", ".join(binding.local for binding in arguments)
        if function.receiver is not None and function.owner:
            call = f"instance.{function.name}({args})"
        elif function.owner:
            call = f"{self._qualified(module, function.owner)}::{function.name}({args})"
        else:
            call = f"{self._qualified(module, function.name)}({args})"
        return f"{call}.await" if function.is_async else call

    def template_context(self, module: Sequence[str], cases: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        return {"crate_name": self.crate_name}

    def _qualified(self, module: Sequence[str], name: str) -> str:
        return "::".join([self.crate_name, *module, name])


def _resolve_self(signature: str, owner: str | None) -> str:
    if not owner:
        return signature
    return _SELF.sub(owner, signature)


def _sanitize(name: str) -> str:
    return re.sub(r"\W", "_", name.strip().replace("-", "_")) or "crate_under_test"


__all__ = [
    "RustTestRenderer",
    "detect_crate_name",
    "module_path_from_file",
    "file_name_for_module",
]
