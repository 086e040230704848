"""Tests for the descriptor models and the type interner."""

from __future__ import annotations

import threading

import pytest

from autotest.models import (
    Diagnostic,
    FunctionDescriptor,
    ParameterDescriptor,
    TypeInterner,
)


def test_interner_returns_canonical_instance() -> None:
    interner = TypeInterner()
    first = interner.intern("Vec<u8>")
    # Build an equal string that is a distinct object.
    second = interner.intern("".join(["Vec<", "u8>"]))

    assert first == second
    assert first is second
    assert len(interner) == 1
    assert "Vec<u8>" in interner


def test_interners_are_isolated_per_session() -> None:
    a = TypeInterner()
    b = TypeInterner()
    a.intern("String")

    assert "String" not in b
    assert len(b) == 0


def test_interner_is_safe_under_threads() -> None:
    interner = TypeInterner()
    results: list[str] = []

    def _worker() -> None:
        for _ in range(200):
            results.append(interner.intern("Option<String>"))

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len({id(value) for value in results}) == 1


def test_function_descriptor_separates_receiver() -> None:
    receiver = ParameterDescriptor("self", "&mut Self")
    value = ParameterDescriptor("value", "u32")
    function = FunctionDescriptor(
        name="set",
        parameters=(receiver, value),
        return_type_signature="()",
        source_file="src/lib.rs",
        owner="Counter",
        scope=("inner",),
    )

    assert function.receiver == receiver
    assert function.arguments == (value,)
    assert function.qualified_name == "inner::Counter::set"


def test_descriptors_are_immutable() -> None:
    parameter = ParameterDescriptor("name", "String")
    with pytest.raises(AttributeError):
        parameter.name = "other"  # type: ignore[misc]


def test_parameter_named_self_without_sentinel_type_is_not_receiver() -> None:
    assert not ParameterDescriptor("self", "u8").is_receiver


def test_diagnostic_renders_stage_and_path() -> None:
    diagnostic = Diagnostic(stage="extraction", path="src/bad.rs", message="syntax error near line 3")

    assert str(diagnostic) == "[extraction] src/bad.rs: syntax error near line 3"
