"""Adapters for the external build tool (the JS bundler).

The bundler is a black box: it receives one :class:`BundleTarget` at a time and
reports success or failure.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from bundle_builder.logging import get_logger
from bundle_builder.tooling.process import spawn
from bundle_builder.types import BundleTarget

log = get_logger(__name__)


@dataclass
class BuildOutcome:
    ok: bool
    target: BundleTarget
    message: str = ""


class BuildTool(Protocol):
    async def build(self, target: BundleTarget, package_directory: Path) -> BuildOutcome: ...


class CommandBuildTool:
    """Spawn ``command + [config.json]`` in the package directory per target.

    The config file is the JSON form of the target (inputs, virtual modules,
    output directory, format, banner, naming and externals).
    """

    def __init__(self, command: Sequence[str], timeout: float | None = None) -> None:
        if not command:
            raise ValueError("build command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    async def build(self, target: BundleTarget, package_directory: Path) -> BuildOutcome:
        with tempfile.TemporaryDirectory(prefix="bundle-builder-") as tmp:
            config_path = Path(tmp) / f"{target.name}.json"
            config_path.write_text(target.model_dump_json(indent=2), encoding="utf-8")
            result = await spawn(
                [*self.command, str(config_path)], cwd=package_directory, timeout=self.timeout
            )
        if not result.ok:
            return BuildOutcome(
                ok=False,
                target=target,
                message=(result.stderr or result.stdout).strip()
                or f"exit code {result.exit_code}",
            )
        return BuildOutcome(ok=True, target=target, message=result.stdout.strip())


@dataclass
class DryRunBuildTool:
    """Record targets without building anything."""

    targets: list[BundleTarget] = field(default_factory=list)

    async def build(self, target: BundleTarget, package_directory: Path) -> BuildOutcome:
        self.targets.append(target)
        log.info(
            "dry-run: %s -> %s (%d inputs)",
            target.name,
            package_directory / target.output_directory,
            len(target.inputs),
        )
        return BuildOutcome(ok=True, target=target, message=json.dumps(sorted(target.inputs)))
