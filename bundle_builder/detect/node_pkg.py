"""Package manifest reader.

Decodes ``package.json`` into a validated :class:`PackageManifest`; downstream
code never consumes the raw mapping.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bundle_builder.errors import ManifestError
from bundle_builder.logging import get_logger
from bundle_builder.types import PackageManifest
from bundle_builder.validator import validate_package_manifest

log = get_logger(__name__)

MANIFEST_FILE = "package.json"


def _field_error(exc: ValidationError) -> ManifestError:
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first["loc"]) or "<root>"
    if field == "type":
        return ManifestError('"type" in package.json should be "module"')
    if first["type"] == "missing":
        return ManifestError(f'"{field}" in package.json should be defined')
    return ManifestError(f'"{field}" in package.json is invalid: {first["msg"]}')


def parse_manifest(data: Any, directory: Path | None = None) -> PackageManifest:
    """Validate a decoded ``package.json`` mapping."""
    if not isinstance(data, dict):
        raise ManifestError("package.json should contain a JSON object")
    validate_package_manifest(data)
    try:
        manifest = PackageManifest.model_validate(data)
    except ValidationError as exc:
        raise _field_error(exc) from exc
    if data.get("typings"):
        raise ManifestError('"typings" in package.json should not be defined, use "types"')
    if "exports" not in data:
        raise ManifestError(
            '"exports" in package.json should be defined, for starters you can point '
            'it to your main entry point; ie "./src/index.ts"'
        )
    manifest.directory = directory
    return manifest


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


async def read_package_json(directory: Path) -> PackageManifest:
    path = Path(directory) / MANIFEST_FILE
    try:
        text = await asyncio.to_thread(_read_text, path)
    except FileNotFoundError as exc:
        raise ManifestError(f"No package.json found at {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Cannot read {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Cannot parse {path}: {exc}") from exc
    log.debug("Read manifest %s", path)
    return parse_manifest(data, Path(directory))
