"""Classify and validate the ``bin`` declarations of a package.

Heuristics:
- A declared value naming one of the package's dependencies mirrors that
  dependency's own executable (``dependency-bin``); the script is located through
  the dependency's ``package.json`` in the nearest ``node_modules``.
- Otherwise the value is a file relative to the package: TypeScript sources
  directly inside the bin source directory are ``typescript-shebang-bin``,
  anything else is a ``standard-bin``.
- Every bin must start with an interpreter directive so it can be executed
  straight from source at dev-time. Bins failing a check are ignored, never fatal.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path, PurePosixPath

from bundle_builder.config import BuildSettings
from bundle_builder.logging import get_logger
from bundle_builder.types import BinEntryPoint, ClassifiedBins, ModuleFormat, PackageManifest

log = get_logger(__name__)

TYPESCRIPT_EXTENSIONS = {".ts", ".mts", ".cts", ".tsx"}
COMMONJS_EXTENSIONS = {".cts", ".cjs"}


def bin_declarations(manifest: PackageManifest) -> dict[str, str]:
    if isinstance(manifest.bin, str):
        return {manifest.name: manifest.bin}
    if isinstance(manifest.bin, dict):
        return dict(manifest.bin)
    return {}


def format_for(path: str) -> ModuleFormat:
    return "cjs" if PurePosixPath(path).suffix in COMMONJS_EXTENSIONS else "esm"


def _is_file(path: Path) -> bool:
    return path.is_file()


def _first_line(path: Path) -> str:
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.readline().rstrip("\r\n")


def _read_json(path: Path) -> dict | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


async def iterate_node_modules(
    start: Path, relative: str, stop: Path | None = None
) -> AsyncIterator[Path]:
    """Yield ``<dir>/node_modules/<relative>`` files from *start* upwards.

    The walk ends after *stop* (inclusive) or at the filesystem root.
    """
    current = start.resolve()
    stop = stop.resolve() if stop else None
    while True:
        candidate = current / "node_modules" / relative
        if await asyncio.to_thread(_is_file, candidate):
            yield candidate
        if current == stop or current.parent == current:
            return
        current = current.parent


def script_from_manifest(bin_name: str, manifest: dict) -> str | None:
    candidate = manifest.get("bin")
    if isinstance(candidate, str):
        return candidate
    if isinstance(candidate, dict):
        entry = candidate.get(bin_name)
        if isinstance(entry, str):
            return entry
    return None


async def determine_bin_script_path(
    bin_name: str, package_name: str, start: Path, stop: Path | None = None
) -> tuple[str, Path] | None:
    """Locate the script *package_name* installs for *bin_name*.

    Returns the script path relative to ``node_modules`` (posix form, usable at
    runtime on every platform) and the absolute path of the file found.
    """
    async for manifest_path in iterate_node_modules(start, f"{package_name}/package.json", stop):
        data = await asyncio.to_thread(_read_json, manifest_path)
        if not data:
            continue
        script = script_from_manifest(bin_name, data)
        if not script:
            continue
        candidate = (manifest_path.parent / script).resolve()
        if await asyncio.to_thread(_is_file, candidate):
            normalized = PurePosixPath(package_name, script.replace("\\", "/"))
            return str(normalized), candidate
    return None


async def _has_directive(path: Path, directive: str) -> bool:
    try:
        first_line = await asyncio.to_thread(_first_line, path)
    except OSError:
        return False
    return first_line.startswith(directive)


def _is_typescript_source(source: Path, package_directory: Path, settings: BuildSettings) -> bool:
    bin_dir = (package_directory / settings.bin_source_dir).resolve()
    return source.parent == bin_dir and source.suffix in TYPESCRIPT_EXTENSIONS


async def _classify(
    bin_name: str,
    value: str,
    manifest: PackageManifest,
    package_directory: Path,
    settings: BuildSettings,
    search_stop: Path | None,
) -> BinEntryPoint | None:
    dependencies = {**manifest.dev_dependencies, **manifest.dependencies}
    if value in dependencies:
        found = await determine_bin_script_path(bin_name, value, package_directory, search_stop)
        if found is None:
            log.warning(
                'package.json "bin" prop is invalid: the key "%s" mirrors "%s" but the '
                "dependency does not provide a bin with that name, is it installed?",
                bin_name,
                value,
            )
            return None
        script_path, script_file = found
        if not await _has_directive(script_file, settings.interpreter_directive):
            log.warning(
                'package.json "bin" prop is invalid: the key "%s" mirrors "%s" which '
                "does not have a shebang",
                bin_name,
                script_file,
            )
            return None
        return BinEntryPoint(
            bin_name=bin_name,
            source_file_path=script_path,
            format="esm",
            bin_entry_type="dependency-bin",
        )

    source = (package_directory / value).resolve()
    if not await asyncio.to_thread(_is_file, source):
        log.warning(
            'package.json "bin" prop is invalid: the key "%s" points to a file "%s" '
            "that does not exist.",
            bin_name,
            value,
        )
        return None
    if not await _has_directive(source, settings.interpreter_directive):
        log.warning(
            'package.json "bin" prop is invalid: the key "%s" points to a file "%s" that '
            'does not have a shebang, ie "%stsx". The shebang is required to be able to '
            "run the file when the bin command is executed at dev-time.",
            bin_name,
            value,
            settings.interpreter_directive,
        )
        return None
    return BinEntryPoint(
        bin_name=bin_name,
        source_file_path=value,
        format=format_for(value),
        bin_entry_type=(
            "typescript-shebang-bin"
            if _is_typescript_source(source, package_directory.resolve(), settings)
            else "standard-bin"
        ),
    )


async def classify_bins(
    manifest: PackageManifest,
    package_directory: Path,
    settings: BuildSettings | None = None,
    search_stop: Path | None = None,
) -> ClassifiedBins:
    """Split the declared bins into valid entry points and ignored declarations."""
    settings = settings or BuildSettings()
    declarations = bin_declarations(manifest)
    if not declarations:
        return ClassifiedBins()

    results = await asyncio.gather(
        *(
            _classify(name, value, manifest, Path(package_directory), settings, search_stop)
            for name, value in declarations.items()
        )
    )
    classified = ClassifiedBins()
    for (name, value), entry in zip(declarations.items(), results):
        if entry is None:
            classified.ignored[name] = value
        else:
            classified.bin_entry_points.append(entry)
    return classified
