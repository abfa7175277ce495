"""Child process spawning with captured output."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from bundle_builder.logging import get_logger

log = get_logger(__name__)


@dataclass
class SpawnResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def spawn(
    cmd: Sequence[str],
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> SpawnResult:
    """Run *cmd* and wait for it, returning exit code and decoded output.

    Extra *env* entries are layered over the current environment.
    """
    if not cmd:
        raise ValueError("cmd must be a non-empty sequence")
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    log.debug("Spawning %s in %s", " ".join(cmd), cwd or Path.cwd())
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=str(cwd) if cwd else None,
        env=full_env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    return SpawnResult(
        exit_code=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
