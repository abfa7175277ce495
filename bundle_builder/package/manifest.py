"""Publish manifest: the ``package.json`` shipped inside the bundled artifact.

Only an allow-list of metadata is carried over from the source manifest;
``main``, ``exports`` and ``bin`` are rebuilt to point at bundled output.
Entries that could not be bundled are rendered back verbatim.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from bundle_builder.errors import ManifestError
from bundle_builder.logging import get_logger
from bundle_builder.planner import bin_output_path
from bundle_builder.resolve.exports import MAIN_CHUNK
from bundle_builder.types import BinEntryPoint, EntryPoint, PackageManifest
from bundle_builder.validator import validate_publish_manifest

log = get_logger(__name__)

ALLOWED_FIELDS = (
    "name",
    "version",
    "type",
    "license",
    "description",
    "author",
    "keywords",
    "bugs",
    "repository",
    "peerDependencies",
    "peerDependenciesMeta",
    "engines",
)
REQUIRED_FIELDS = ("name", "version", "type")

ManifestHook = Callable[[dict[str, Any]], dict[str, Any]]


def _as_mapping(original: PackageManifest | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(original, PackageManifest):
        return original.raw()
    return original


def _main_entry(entry_points: Sequence[EntryPoint]) -> EntryPoint | None:
    for entry in entry_points:
        if entry.chunk_name == MAIN_CHUNK:
            return entry
    return None


def transform_manifest(
    original: PackageManifest | Mapping[str, Any],
    entry_points: Sequence[EntryPoint],
    ignored_entry_points: Mapping[str, Any] | None = None,
    bin_entry_points: Sequence[BinEntryPoint] = (),
    ignored_bin_entry_points: Mapping[str, str] | None = None,
    customize: ManifestHook | None = None,
) -> dict[str, Any]:
    """Build the publish manifest from *original* and the resolved entries."""
    source = _as_mapping(original)
    for field in REQUIRED_FIELDS:
        if not source.get(field):
            raise ManifestError(f'"{field}" in package.json should be defined')

    result: dict[str, Any] = {
        field: source[field] for field in ALLOWED_FIELDS if source.get(field) is not None
    }

    bins = {entry.bin_name: bin_output_path(entry) for entry in bin_entry_points}
    bins.update(ignored_bin_entry_points or {})
    if bins:
        result["bin"] = bins

    if "main" in source:
        main = _main_entry(entry_points)
        if main is not None:
            result["main"] = main.output_path
        else:
            log.warning(
                "Dropping \"main\" from the publish manifest, no \".\" entry point was bundled",
                extra={"context": {"package": source["name"], "main": source["main"]}},
            )

    ignored = dict(ignored_entry_points or {})
    if len(entry_points) == 1 and not ignored and entry_points[0].entry_point == ".":
        result["exports"] = entry_points[0].output_path
    elif entry_points or ignored:
        exports: dict[str, Any] = {entry.entry_point: entry.output_path for entry in entry_points}
        exports.update(ignored)
        result["exports"] = exports

    if customize is not None:
        result = customize(result)
    validate_publish_manifest(result)
    return result


def write_publish_manifest(manifest: Mapping[str, Any], directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
