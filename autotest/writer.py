"""Atomic persistence of synthesized test files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, List

from .logging import get_logger
from .models import SynthesizedTestFile

logger = get_logger("writer")


def save_test_file(test_file: SynthesizedTestFile) -> Path:
    """Write ``test_file`` through a temporary sibling and rename it into place.

    Readers never observe a partially written file; the temporary file is
    removed when anything fails before the rename.
    """
    target = Path(test_file.path)
    target.parent.mkdir(parents=True, exist_ok=True)

    handle = tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(test_file.content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %s", target)
    return target


def save_all(files: Iterable[SynthesizedTestFile]) -> List[Path]:
    """Save each file in order and return the written paths."""
    written = [save_test_file(test_file) for test_file in files]
    logger.info("Wrote %d test file(s)", len(written))
    return written


__all__ = ["save_all", "save_test_file"]
