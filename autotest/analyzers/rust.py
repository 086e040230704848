"""Tree-sitter powered signature extractor for Rust sources."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from .base import SignatureExtractor
from ..config import GenerationPolicy
from ..errors import ExtractionError
from ..models import (
    RECEIVER_NAME,
    RECEIVER_TYPE,
    FunctionDescriptor,
    ParameterDescriptor,
    TypeInterner,
)
from ..signatures import base_name, normalize_type_text

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_PUBLIC = "pub"
_UNIT = "()"
_TEST_ATTRIBUTE = re.compile(r"#\[\s*(?:\w+::)*test\s*\]")
_CFG_TEST = re.compile(r"#\[\s*cfg\s*\(\s*test\s*\)\s*\]")
_ARGUMENT_NODES = {"parameter", "self_parameter"}


class RustExtractor(SignatureExtractor):
    """Extracts free functions, impl methods and inline-module functions."""

    language = "rust"
    extensions = (".rs",)

    def __init__(self) -> None:
        self._parser = Parser(RUST_LANGUAGE)

    def extract(
        self,
        source: str,
        path: str,
        policy: GenerationPolicy,
        interner: TypeInterner,
    ) -> List[FunctionDescriptor]:
        source_bytes = source.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            line = _first_error_line(root)
            raise ExtractionError(path, f"syntax error near line {line}")

        return list(
            self._collect(root, source_bytes, path, policy, interner, scope=(), owner=None)
        )

    def _collect(
        self,
        node: Node,
        source_bytes: bytes,
        path: str,
        policy: GenerationPolicy,
        interner: TypeInterner,
        *,
        scope: Tuple[str, ...],
        owner: Optional[str],
    ) -> Iterable[FunctionDescriptor]:
        for child in node.named_children:
            if child.type == "function_item":
                if _has_attribute(child, source_bytes, _TEST_ATTRIBUTE):
                    continue
                descriptor = self._function(child, source_bytes, path, policy, interner, scope, owner)
                if descriptor is not None:
                    yield descriptor
            elif child.type == "impl_item":
                body = child.child_by_field_name("body")
                type_node = child.child_by_field_name("type")
                if body is None or type_node is None:
                    continue
                impl_owner = base_name(self._node_text(type_node, source_bytes))
                yield from self._collect(
                    body, source_bytes, path, policy, interner, scope=scope, owner=impl_owner
                )
            elif child.type == "mod_item":
                body = child.child_by_field_name("body")
                name_node = child.child_by_field_name("name")
                if body is None or name_node is None:
                    continue
                if _has_attribute(child, source_bytes, _CFG_TEST):
                    continue
                if _visibility(child, source_bytes) != _PUBLIC and not policy.include_private:
                    continue
                module_name = self._node_text(name_node, source_bytes)
                yield from self._collect(
                    body,
                    source_bytes,
                    path,
                    policy,
                    interner,
                    scope=(*scope, module_name),
                    owner=None,
                )

    def _function(
        self,
        node: Node,
        source_bytes: bytes,
        path: str,
        policy: GenerationPolicy,
        interner: TypeInterner,
        scope: Tuple[str, ...],
        owner: Optional[str],
    ) -> Optional[FunctionDescriptor]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = self._node_text(name_node, source_bytes)
        is_public = _visibility(node, source_bytes) == _PUBLIC
        if not self.is_retained(name, is_public, policy):
            return None

        parameters_node = node.child_by_field_name("parameters")
        parameters = (
            self._parameters(parameters_node, source_bytes, interner)
            if parameters_node is not None
            else ()
        )

        return_node = node.child_by_field_name("return_type")
        return_type = (
            normalize_type_text(self._node_text(return_node, source_bytes))
            if return_node is not None
            else _UNIT
        )

        return FunctionDescriptor(
            name=name,
            parameters=parameters,
            return_type_signature=interner.intern(return_type),
            source_file=path,
            is_async=_has_modifier(node, source_bytes, "async"),
            owner=owner,
            scope=scope,
        )

    def _parameters(
        self, node: Node, source_bytes: bytes, interner: TypeInterner
    ) -> Tuple[ParameterDescriptor, ...]:
        parameters: List[ParameterDescriptor] = []
        arguments = [child for child in node.named_children if child.type in _ARGUMENT_NODES]
        for index, child in enumerate(arguments):
            if child.type == "self_parameter":
                text = self._node_text(child, source_bytes)
                parameters.append(_receiver(text, interner))
                continue

            pattern = child.child_by_field_name("pattern")
            type_node = child.child_by_field_name("type")
            type_text = self._node_text(type_node, source_bytes) if type_node is not None else "_"
            if pattern is not None and pattern.type == "self":
                parameters.append(_receiver(type_text, interner))
                continue
            if pattern is not None and pattern.type == "identifier":
                name = self._node_text(pattern, source_bytes)
            else:
                name = f"arg{index}"
            parameters.append(self.parameter(name, type_text, interner))
        return tuple(parameters)

    @staticmethod
    def _node_text(node: Node, source_bytes: bytes) -> str:
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _receiver(text: str, interner: TypeInterner) -> ParameterDescriptor:
    compact = text.replace(" ", "")
    if compact.startswith("&"):
        sentinel = f"&mut {RECEIVER_TYPE}" if "mut" in compact else f"&{RECEIVER_TYPE}"
    else:
        sentinel = RECEIVER_TYPE
    return ParameterDescriptor(name=RECEIVER_NAME, type_signature=interner.intern(sentinel))


def _visibility(node: Node, source_bytes: bytes) -> Optional[str]:
    for child in node.children:
        if child.type == "visibility_modifier":
            return source_bytes[child.start_byte : child.end_byte].decode("utf-8").replace(" ", "")
    return None


def _has_modifier(node: Node, source_bytes: bytes, keyword: str) -> bool:
    for child in node.children:
        if child.type != "function_modifiers":
            continue
        for modifier in child.children:
            text = source_bytes[modifier.start_byte : modifier.end_byte].decode("utf-8")
            if modifier.type == keyword or text == keyword:
                return True
    return False


def _has_attribute(node: Node, source_bytes: bytes, pattern: "re.Pattern[str]") -> bool:
    sibling = node.prev_named_sibling
    while sibling is not None and sibling.type in {"attribute_item", "line_comment", "block_comment"}:
        if sibling.type == "attribute_item":
            text = source_bytes[sibling.start_byte : sibling.end_byte].decode("utf-8", errors="ignore")
            if pattern.search(text):
                return True
        sibling = sibling.prev_named_sibling
    return False


def _first_error_line(node: Node) -> int:
    if node.type == "ERROR" or node.is_missing:
        return node.start_point[0] + 1
    for child in node.children:
        if child.has_error or child.type == "ERROR" or child.is_missing:
            return _first_error_line(child)
    return node.start_point[0] + 1


__all__ = ["RUST_LANGUAGE", "RustExtractor"]
