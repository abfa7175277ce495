"""Repository root detection.

Heuristics:
- A root is a directory holding one of the root markers (``.git`` or a lockfile).
- Candidate directories are checked concurrently in a few independent jobs, ordered
  by likelihood: the start directory, the directory preceding a ``packages`` or
  ``node_modules`` segment, the parent, the grandparent.
- Results are combined by priority, not by completion order, so a slow check of a
  likely directory is never beaten by a fast check of an unlikely one.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from pathlib import Path

from bundle_builder.logging import get_logger

log = get_logger(__name__)

ROOT_MARKERS = (
    ".git",
    "yarn.lock",
    "pnpm-lock.yaml",
    "package-lock.json",
    "pnpm-workspace.yaml",
)

_SEGMENT_RE = re.compile(r"(.*(?=/packages/))|(.*(?=/node_modules/))|(.*)")


def _segment_candidate(directory: Path) -> Path:
    """Return the directory preceding the last ``packages``/``node_modules`` segment."""
    text = directory.as_posix()
    match = _SEGMENT_RE.match(text)
    packages_root, node_modules_root, entire = match.groups() if match else (None, None, text)
    return Path(packages_root or node_modules_root or entire or text)


def _parent(directory: Path | None) -> Path | None:
    if directory is None or directory.parent == directory:
        return None
    return directory.parent


def candidate_jobs(start: Path) -> list[list[Path]]:
    parent = _parent(start)
    grandparent = _parent(parent)
    jobs: list[list[Path | None]] = [
        [start],
        [_segment_candidate(start)],
        [parent],
        [grandparent],
    ]
    return [[d for d in job if d is not None] for job in jobs if any(job)]


def _has_marker(directory: Path, markers: Sequence[str]) -> bool:
    return any((directory / marker).exists() for marker in markers)


async def find_marker(directories: Sequence[Path], markers: Sequence[str] = ROOT_MARKERS) -> Path | None:
    """Return the first directory (list order) containing any marker."""
    for directory in directories:
        try:
            found = await asyncio.to_thread(_has_marker, directory, markers)
        except OSError as exc:
            log.debug("Root marker check failed for %s: %s", directory, exc)
            found = False
        if found:
            return directory
    return None


async def first_by_priority(
    jobs: Sequence[Sequence[Path]], markers: Sequence[str] = ROOT_MARKERS
) -> Path | None:
    """Run all lookup jobs concurrently and combine them by priority.

    Job ``i`` only decides once jobs ``0..i-1`` are known to have found nothing.
    Jobs still running after the decision are left to complete on their own.
    """
    tasks = [asyncio.ensure_future(find_marker(job, markers)) for job in jobs]
    for task in tasks:
        result = await task
        if result is not None:
            return result
    return None


async def locate_root(start_directory: Path) -> Path:
    """Find the repository root for *start_directory*, falling back to it."""
    start = Path(start_directory).resolve()
    found = await first_by_priority(candidate_jobs(start))
    if found is None:
        log.debug("No root markers found around %s, using it as root", start)
        return start
    return found
