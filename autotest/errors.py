"""Exception hierarchy shared by the autotest pipeline."""

from __future__ import annotations

from pathlib import Path


class AutoTestError(RuntimeError):
    """Base class for all autotest failures."""


class ConfigError(AutoTestError):
    """Raised when a configuration file or value cannot be used."""


class ProjectRootError(AutoTestError):
    """Raised when the project root is missing or unreadable."""


class UnsupportedLanguageError(AutoTestError):
    """Raised when no language profile exists for a requested language."""


class ExtractionError(AutoTestError):
    """Raised when a single source file cannot be read or parsed."""

    def __init__(self, path: str | Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = str(path)
        self.reason = message


class SynthesisError(AutoTestError):
    """Raised when a test cannot be synthesized for one function."""

    def __init__(self, function: str, message: str) -> None:
        super().__init__(f"{function}: {message}")
        self.function = function
        self.reason = message


__all__ = [
    "AutoTestError",
    "ConfigError",
    "ExtractionError",
    "ProjectRootError",
    "SynthesisError",
    "UnsupportedLanguageError",
]
