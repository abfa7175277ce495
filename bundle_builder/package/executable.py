"""Executable permission post-step for bin outputs."""

from __future__ import annotations

import asyncio
import stat
from pathlib import Path

from bundle_builder.logging import get_logger

log = get_logger(__name__)

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    path.chmod(mode | EXECUTE_BITS)


def _executable_candidates(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file())


async def mark_directory_executable(directory: Path) -> list[Path]:
    """Mark every file directly inside *directory* executable."""
    files = await asyncio.to_thread(_executable_candidates, directory)
    for path in files:
        await asyncio.to_thread(make_executable, path)
    log.debug("Marked %d files executable in %s", len(files), directory)
    return files
