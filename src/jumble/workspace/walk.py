"""Bounded directory walk shared by project and skill discovery."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

log = logging.getLogger(__name__)


def _log_walk_error(err: OSError) -> None:
    log.warning("Cannot read %s: %s", err.filename, err.strerror or err)


def walk_dirs(
    root: Path,
    skip_dirs: frozenset[str] | set[str] = frozenset(),
    follow_links: bool = True,
) -> Iterator[tuple[Path, list[str], list[str]]]:
    """Yield ``(dirpath, dirnames, filenames)`` below *root*, top-down.

    Directories named in *skip_dirs* are pruned before descending.
    Symlinked directories are followed once; a link back into an
    already-visited directory is not re-entered. Entries are sorted so
    that walk order, and so first-wins tie breaks, are deterministic.
    Unreadable subdirectories are logged and skipped.
    """
    seen: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(
        root, followlinks=follow_links, onerror=_log_walk_error
    ):
        real = os.path.realpath(dirpath)
        if real in seen:
            dirnames[:] = []
            continue
        seen.add(real)
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)
        filenames.sort()
        yield Path(dirpath), dirnames, filenames
