"""Regex based signature extractor for V sources."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Tuple

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
from ..signatures import normalize_type_text, split_top_level

_HEADER = re.compile(
    r"^[ \t]*(?P<pub>pub\s+)?fn\s+"
    r"(?:\(\s*(?P<lead_mut>mut\s+)?(?P<receiver>\w+)\s+(?P<receiver_mut>mut\s+)?"
    r"(?P<receiver_type>&?[\w.]+(?:\[[^\]\n]*\])?)\s*\)\s*)?"
    r"(?P<name>[A-Za-z_]\w*)\s*(?:\[[^\]\n]*\]\s*)?\(",
    re.MULTILINE,
)
_MUT_PREFIX = "mut "
_OPEN = {"(": ")", "[": "]", "{": "}"}


class VExtractor(SignatureExtractor):
    """Extracts functions and receiver methods from ``.v`` files."""

    language = "v"
    extensions = (".v",)

    def accepts(self, path: Path) -> bool:
        return super().accepts(path) and not path.name.lower().endswith("_test.v")

    def extract(
        self,
        source: str,
        path: str,
        policy: GenerationPolicy,
        interner: TypeInterner,
    ) -> List[FunctionDescriptor]:
        code = strip_comments_and_strings(source)
        problem = _unbalanced(code)
        if problem is not None:
            raise ExtractionError(path, problem)

        functions: List[FunctionDescriptor] = []
        for match in _HEADER.finditer(code):
            name = match.group("name")
            if not self.is_retained(name, match.group("pub") is not None, policy):
                continue

            close = _matching_paren(code, match.end() - 1)
            if close is None:
                continue
            arguments = code[match.end() : close]
            return_type = _return_type(code, close + 1)

            parameters: List[ParameterDescriptor] = []
            owner: Optional[str] = None
            if match.group("receiver"):
                receiver_type = match.group("receiver_type")
                owner = receiver_type.lstrip("&").split("[", 1)[0]
                parameters.append(
                    _receiver(
                        receiver_type,
                        bool(match.group("lead_mut") or match.group("receiver_mut")),
                        interner,
                    )
                )
            parameters.extend(self._parameters(arguments, interner))

            functions.append(
                FunctionDescriptor(
                    name=name,
                    parameters=tuple(parameters),
                    return_type_signature=interner.intern(normalize_type_text(return_type)),
                    source_file=path,
                    is_async=False,
                    owner=owner,
                )
            )
        return functions

    def _parameters(self, text: str, interner: TypeInterner) -> Tuple[ParameterDescriptor, ...]:
        resolved: List[Tuple[str, str]] = []
        # Grouped names (``a, b int``) wait here for the next declared type.
        pending: List[Tuple[str, bool]] = []
        for part in split_top_level(text):
            if not part:
                continue
            is_mut = part.startswith(_MUT_PREFIX)
            if is_mut:
                part = part[len(_MUT_PREFIX) :].strip()
            pieces = part.split(None, 1)
            if len(pieces) == 1:
                pending.append((pieces[0], is_mut))
                continue
            name, type_text = pieces
            for grouped_name, grouped_mut in pending:
                resolved.append((grouped_name, _with_mut(type_text, grouped_mut)))
            pending = []
            resolved.append((name, _with_mut(type_text, is_mut)))

        # Leftovers are bare types (``fn (int, string)``), so names are unknown.
        for bare_type, is_mut in pending:
            resolved.append(("", _with_mut(bare_type, is_mut)))

        parameters = []
        for index, (name, type_text) in enumerate(resolved):
            parameters.append(self.parameter(name or f"arg{index}", type_text, interner))
        return tuple(parameters)


def strip_comments_and_strings(source: str) -> str:
    """Blank out comments and string literal bodies, keeping offsets and newlines."""
    out: List[str] = []
    index = 0
    length = len(source)
    while index < length:
        char = source[index]
        if source.startswith("//", index):
            end = source.find("\n", index)
            end = length if end == -1 else end
            out.append(" " * (end - index))
            index = end
        elif source.startswith("/*", index):
            end = source.find("*/", index + 2)
            end = length if end == -1 else end + 2
            out.append(re.sub(r"[^\n]", " ", source[index:end]))
            index = end
        elif char in "'\"`":
            end = index + 1
            while end < length and source[end] != char:
                end += 2 if source[end] == "\\" else 1
            end = min(end + 1, length)
            body = source[index + 1 : end - 1] if end - index >= 2 else ""
            out.append(char + re.sub(r"[^\n]", " ", body) + (char if end - index >= 2 else ""))
            index = end
        else:
            out.append(char)
            index += 1
    return "".join(out)


def _unbalanced(code: str) -> Optional[str]:
    stack: List[Tuple[str, int]] = []
    line = 1
    for char in code:
        if char == "\n":
            line += 1
        elif char in _OPEN:
            stack.append((char, line))
        elif char in _OPEN.values():
            if not stack or _OPEN[stack[-1][0]] != char:
                return f"unexpected '{char}' on line {line}"
            stack.pop()
    if stack:
        opener, opened_on = stack[-1]
        return f"unclosed '{opener}' opened on line {opened_on}"
    return None


def _matching_paren(code: str, start: int) -> Optional[int]:
    depth = 0
    for index in range(start, len(code)):
        if code[index] == "(":
            depth += 1
        elif code[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def _return_type(code: str, start: int) -> str:
    end = start
    while end < len(code) and code[end] not in "{\n":
        end += 1
    return code[start:end].strip()


def _with_mut(type_text: str, is_mut: bool) -> str:
    return f"{_MUT_PREFIX}{type_text}" if is_mut else type_text


def _receiver(receiver_type: str, is_mut: bool, interner: TypeInterner) -> ParameterDescriptor:
    if is_mut:
        sentinel = f"&mut {RECEIVER_TYPE}"
    elif receiver_type.startswith("&"):
        sentinel = f"&{RECEIVER_TYPE}"
    else:
        sentinel = RECEIVER_TYPE
    return ParameterDescriptor(name=RECEIVER_NAME, type_signature=interner.intern(sentinel))


__all__ = ["VExtractor", "strip_comments_and_strings"]
