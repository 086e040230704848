"""Repository walking with ignore-file and skip-pattern filtering."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator, List, Mapping, Optional, Sequence, Set

from .config import GenerationPolicy
from .errors import ProjectRootError
from .logging import get_logger
from .models import Diagnostic

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "target",
    "node_modules",
    ".venv",
    "__pycache__",
    ".idea",
    ".vscode",
    ".vmodules",
}

_GITIGNORE = ".gitignore"

logger = get_logger("repo_scanner")


@dataclass
class IgnoreRule:
    """Represents one gitignore pattern, scoped to the directory that declared it."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool
    base: str = ""

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.base:
            prefix = f"{self.base}/"
            if not target.startswith(prefix):
                return False
            target = target[len(prefix):]

        if self.anchored or self.has_slash:
            return _glob_matches(target, self.pattern)

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def _build_ignore_rule(pattern: str, negate: bool = False, base: str = "") -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
        base=base,
    )


def parse_ignore_file(path: Path, base: str = "") -> List[IgnoreRule]:
    """Parse a gitignore-style file; ``base`` is its directory relative to the root."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        line = line.strip()
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        elif line.startswith("\\"):
            line = line[1:]
        rule = _build_ignore_rule(line, negate=negate, base=base)
        if rule is not None:
            rules.append(rule)
    return rules


def global_excludes_file(env: Mapping[str, str] | None = None) -> Path | None:
    """Locate git's global excludes file (``core.excludesFile`` or the XDG default)."""
    environ = os.environ if env is None else env
    home = Path(environ.get("HOME") or Path.home())
    configured = _read_core_excludes_file(home / ".gitconfig")
    if configured:
        return Path(os.path.expanduser(configured)) if configured.startswith("~") else Path(configured)

    xdg = environ.get("XDG_CONFIG_HOME")
    default = (Path(xdg) if xdg else home / ".config") / "git" / "ignore"
    return default if default.is_file() else None


def _read_core_excludes_file(gitconfig: Path) -> Optional[str]:
    try:
        lines = gitconfig.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return None

    in_core = False
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("["):
            in_core = line.strip("[]").strip().lower() == "core"
            continue
        if in_core and "=" in line:
            key, value = line.split("=", 1)
            if key.strip().lower() == "excludesfile":
                return value.strip().strip('"') or None
    return None


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> "re.Pattern[str]":
    index = 0
    parts: List[str] = []
    while index < len(pattern):
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("/**", index) and index + 3 == len(pattern):
            parts.append("(?:/.*)?")
            index += 3
        elif pattern.startswith("**", index):
            parts.append(".*")
            index += 2
        elif pattern[index] == "*":
            parts.append("[^/]*")
            index += 1
        elif pattern[index] == "?":
            parts.append("[^/]")
            index += 1
        else:
            parts.append(re.escape(pattern[index]))
            index += 1
    return re.compile("".join(parts) + r"\Z")


def _glob_matches(rel_path: str, pattern: str) -> bool:
    return _compile_glob(pattern).match(rel_path) is not None


def matches_skip_pattern(rel_path: str, patterns: Iterable[str]) -> bool:
    """Return True when a root-relative POSIX path matches any skip glob.

    Patterns without a slash match any single path component, like gitignore.
    """
    parts = rel_path.split("/")
    for pattern in patterns:
        pattern = pattern.strip().lstrip("/")
        if not pattern:
            continue
        if "/" not in pattern:
            if any(fnmatchcase(part, pattern) for part in parts):
                return True
        elif _glob_matches(rel_path, pattern.rstrip("/")):
            return True
    return False


@dataclass
class Discovery:
    """Ordered, deduplicated candidate files plus walk warnings."""

    root: Path
    files: List[Path] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class RepoScanner:
    """Walks a project tree and yields candidate source files."""

    def __init__(self, policy: GenerationPolicy | None = None, *, env: Mapping[str, str] | None = None) -> None:
        self.policy = policy or GenerationPolicy()
        self._env = env

    def scan(self, root: str | Path, extensions: Sequence[str]) -> Discovery:
        """Return files under ``root`` whose suffix is in ``extensions``."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise ProjectRootError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise ProjectRootError(f"Project path is not a directory: {root}")

        discovery = Discovery(root=root_path)
        suffixes = tuple(ext.lower() for ext in extensions)
        seen: Set[Path] = set()

        for path in self._iter_files(root_path, discovery):
            if not path.name.lower().endswith(suffixes):
                continue
            try:
                if not path.is_file():
                    continue
                real = path.resolve()
            except OSError as exc:
                self._warn(discovery, path, f"cannot stat file: {exc}")
                continue
            if real in seen:
                logger.debug("Skipping duplicate path %s", path)
                continue
            seen.add(real)
            discovery.files.append(path)

        logger.debug("Discovered %d candidate files under %s", len(discovery.files), root_path)
        return discovery

    def _base_rules(self, root: Path, discovery: Discovery) -> List[IgnoreRule]:
        if not self.policy.respect_gitignore:
            return []
        rules: List[IgnoreRule] = []
        sources = [global_excludes_file(self._env), root / ".git" / "info" / "exclude"]
        for source in sources:
            if source is None:
                continue
            try:
                rules.extend(parse_ignore_file(source))
            except (OSError, UnicodeDecodeError) as exc:
                self._warn(discovery, source, f"cannot read ignore file: {exc}")
        return rules

    def _iter_files(self, root: Path, discovery: Discovery) -> Iterator[Path]:
        output_dir = self.policy.output_dir.strip("/").replace("\\", "/")
        skip_patterns = self.policy.skip_patterns
        rules_by_dir: dict[str, List[IgnoreRule]] = {"": self._base_rules(root, discovery)}

        def _on_error(exc: OSError) -> None:
            self._warn(discovery, Path(exc.filename or root), f"cannot read directory: {exc.strerror or exc}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            rules = list(rules_by_dir.pop(rel_dir, []))
            if self.policy.respect_gitignore:
                try:
                    rules.extend(parse_ignore_file(current_dir / _GITIGNORE, base=rel_dir))
                except (OSError, UnicodeDecodeError) as exc:
                    self._warn(discovery, current_dir / _GITIGNORE, f"cannot read ignore file: {exc}")
            kept_dirs: List[str] = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if output_dir and rel_path == output_dir:
                    continue
                if _should_ignore(rel_path, True, rules):
                    continue
                if matches_skip_pattern(rel_path, skip_patterns):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs
            for name in kept_dirs:
                rules_by_dir[f"{rel_dir}/{name}" if rel_dir else name] = rules

            for filename in sorted(filenames):
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                if matches_skip_pattern(rel_path, skip_patterns):
                    continue
                yield current_dir / filename

    @staticmethod
    def _warn(discovery: Discovery, path: Path, message: str) -> None:
        diagnostic = Diagnostic(stage="discovery", path=str(path), message=message)
        discovery.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)


def relative_posix(path: str | Path, root: str | Path) -> str:
    """Return ``path`` relative to ``root`` using forward slashes."""
    candidate = Path(path)
    try:
        return candidate.resolve().relative_to(Path(root).resolve()).as_posix()
    except ValueError:
        return candidate.as_posix()


__all__ = [
    "Discovery",
    "IgnoreRule",
    "RepoScanner",
    "global_excludes_file",
    "matches_skip_pattern",
    "parse_ignore_file",
    "relative_posix",
]
