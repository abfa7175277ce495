"""Workspace layout: single package or a set of packages matched by globs."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import yaml

from bundle_builder.logging import get_logger
from bundle_builder.types import WorkspaceRoot

log = get_logger(__name__)

WORKSPACE_FILE = "pnpm-workspace.yaml"


def _read_pnpm_globs(root: Path) -> list[str] | None:
    path = root / WORKSPACE_FILE
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        log.error("Cannot parse %s: %s", path, exc)
        return None
    packages = data.get("packages") if isinstance(data, dict) else None
    return [str(p) for p in packages] if isinstance(packages, list) else None


def _read_manifest_globs(root: Path) -> list[str] | None:
    path = root / "package.json"
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        log.error("Cannot parse %s: %s", path, exc)
        return None
    workspaces = data.get("workspaces") if isinstance(data, dict) else None
    # npm/yarn accept either a list or {"packages": [...]}
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    return [str(p) for p in workspaces] if isinstance(workspaces, list) else None


async def read_packages_globs(root: Path) -> list[str]:
    """Read both glob sources in parallel; the first non-empty answer wins."""
    lookups = [
        asyncio.to_thread(_read_pnpm_globs, root),
        asyncio.to_thread(_read_manifest_globs, root),
    ]
    for next_done in asyncio.as_completed(lookups):
        globs = await next_done
        if globs:
            return globs
    return []


def expand_package_globs(root: Path, globs: list[str]) -> list[Path]:
    """Return directories under *root* matching *globs* that hold a ``package.json``."""
    included: set[Path] = set()
    excluded: set[Path] = set()
    for pattern in globs:
        target = excluded if pattern.startswith("!") else included
        pattern = pattern.lstrip("!").strip("/")
        if pattern.startswith("./"):
            pattern = pattern[2:]
        for manifest in root.glob(f"{pattern}/package.json"):
            if "node_modules" in manifest.relative_to(root).parts:
                continue
            target.add(manifest.parent)
    return sorted(included - excluded)


async def load_workspace(root: Path) -> WorkspaceRoot:
    globs = await read_packages_globs(root)
    if not globs:
        return WorkspaceRoot(path=root, type="single-package")
    locations = await asyncio.to_thread(expand_package_globs, root, globs)
    log.debug("Workspace %s has %d packages", root, len(locations))
    return WorkspaceRoot(
        path=root,
        type="multiple-packages",
        package_globs=globs,
        package_locations=locations,
    )
