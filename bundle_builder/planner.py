"""Bundle plan: turn entry points and bins into build tool invocations.

Every bin is built twice: a dev copy committed next to the package (runs from
the checked-out repository) and a publish copy shipped in the artifact. Targets
that end up with the same mode, format, directory, banner and naming are merged
so the build tool can share chunks between them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath

from bundle_builder.buildpacks.virtual_modules import (
    dev_jump_content,
    dev_module_id,
    mirror_module_id,
    mirrored_bin_content,
)
from bundle_builder.config import BuildSettings
from bundle_builder.types import BinEntryPoint, BundleTarget, EntryPoint, ModuleFormat

SHEBANG = "#!/usr/bin/env node"
DEV_BANNER = f"{SHEBANG}\n// NOTE: This file is bundled up from './src/bin/*' and needs to be committed"
PUBLISH_BIN_DIR = "bin"

_EXTENSION: dict[ModuleFormat, str] = {"cjs": "cjs", "esm": "mjs"}


def _join(*parts: str) -> str:
    return str(PurePosixPath(*(p.strip("/") for p in parts if p.strip("/"))))


def _depth(directory: str) -> int:
    return len([p for p in PurePosixPath(directory).parts if p not in {".", ""}])


def dev_file_names(fmt: ModuleFormat) -> str:
    return f"[name].gen.{_EXTENSION[fmt]}"


def publish_file_names(fmt: ModuleFormat) -> str:
    return f"[name].bin.{_EXTENSION[fmt]}"


def bin_output_path(entry: BinEntryPoint) -> str:
    """Path of the published bin relative to the published package root."""
    name = publish_file_names(entry.format).replace("[name]", entry.bin_name)
    return f"./{PUBLISH_BIN_DIR}/{name}"


def dev_bin_path(entry: BinEntryPoint, settings: BuildSettings) -> str:
    """Path of the dev bin relative to the package directory."""
    name = dev_file_names(entry.format).replace("[name]", entry.bin_name)
    return f"./{_join(settings.dev_bin_dir, name)}"


def _entry_points_target(
    entry_points: Sequence[EntryPoint], settings: BuildSettings, externals: list[str]
) -> BundleTarget:
    return BundleTarget(
        name="entry-points",
        mode="publish",
        inputs={entry.chunk_name: entry.source_path for entry in entry_points},
        output_directory=_join(settings.publish_dir, settings.entry_output_dir),
        module_format=settings.entry_format,
        entry_file_names="[name].js",
        externals=externals,
    )


def _dev_target(
    fmt: ModuleFormat,
    inputs: dict[str, str],
    virtual: dict[str, str],
    settings: BuildSettings,
    externals: list[str],
) -> BundleTarget:
    return BundleTarget(
        name=f"bins-{fmt}-dev",
        mode="dev",
        inputs=inputs,
        output_directory=_join(settings.dev_bin_dir),
        module_format=fmt,
        is_executable=True,
        virtual_modules=virtual,
        banner=DEV_BANNER,
        entry_file_names=dev_file_names(fmt),
        externals=externals,
    )


def _publish_target(
    fmt: ModuleFormat,
    inputs: dict[str, str],
    virtual: dict[str, str],
    settings: BuildSettings,
    externals: list[str],
) -> BundleTarget:
    return BundleTarget(
        name=f"bins-{fmt}-publish",
        mode="publish",
        inputs=inputs,
        output_directory=_join(settings.publish_dir, PUBLISH_BIN_DIR),
        module_format=fmt,
        is_executable=True,
        virtual_modules=virtual,
        banner=SHEBANG,
        entry_file_names=publish_file_names(fmt),
        externals=externals,
    )


def _cjs_targets(
    bins: Sequence[BinEntryPoint], settings: BuildSettings, externals: list[str]
) -> list[BundleTarget]:
    if not bins:
        return []
    inputs = {b.bin_name: b.source_file_path for b in bins}
    return [
        _dev_target("cjs", inputs, {}, settings, externals),
        _publish_target("cjs", dict(inputs), {}, settings, externals),
    ]


def _esm_source_targets(
    bins: Sequence[BinEntryPoint], settings: BuildSettings, externals: list[str]
) -> list[BundleTarget]:
    if not bins:
        return []
    depth = _depth(settings.dev_bin_dir)
    dev_inputs: dict[str, str] = {}
    dev_virtual: dict[str, str] = {}
    for b in bins:
        module_id = dev_module_id(b.bin_name)
        dev_inputs[b.bin_name] = module_id
        dev_virtual[module_id] = dev_jump_content(
            b.bin_name,
            b.source_file_path,
            depth=depth,
            via_tsx=b.bin_entry_type == "typescript-shebang-bin",
        )
    publish_inputs = {b.bin_name: b.source_file_path for b in bins}
    return [
        _dev_target("esm", dev_inputs, dev_virtual, settings, externals),
        _publish_target("esm", publish_inputs, {}, settings, externals),
    ]


def _mirror_targets(
    bins: Sequence[BinEntryPoint], settings: BuildSettings, externals: list[str]
) -> list[BundleTarget]:
    if not bins:
        return []
    targets: list[BundleTarget] = []
    for depth, factory in (
        (_depth(settings.dev_bin_dir), _dev_target),
        (_depth(PUBLISH_BIN_DIR), _publish_target),
    ):
        inputs: dict[str, str] = {}
        virtual: dict[str, str] = {}
        for b in bins:
            module_id = mirror_module_id(b.bin_name)
            inputs[b.bin_name] = module_id
            virtual[module_id] = mirrored_bin_content(b.bin_name, b.source_file_path, depth=depth)
        targets.append(factory("esm", inputs, virtual, settings, externals))
    return targets


def _merge_key(target: BundleTarget) -> tuple:
    return (
        target.mode,
        target.module_format,
        target.output_directory,
        target.banner,
        target.entry_file_names,
    )


def merge_targets(targets: Iterable[BundleTarget]) -> list[BundleTarget]:
    """Merge targets sharing mode, format, output directory, banner and naming.

    The first target of a group keeps its position and name.
    """
    merged: dict[tuple, BundleTarget] = {}
    for target in targets:
        key = _merge_key(target)
        existing = merged.get(key)
        if existing is None:
            merged[key] = target.model_copy(deep=True)
            continue
        existing.inputs.update({k: v for k, v in target.inputs.items() if k not in existing.inputs})
        existing.virtual_modules.update(target.virtual_modules)
        existing.externals = sorted(set(existing.externals) | set(target.externals))
        existing.is_executable = existing.is_executable or target.is_executable
    return list(merged.values())


def build_plan(
    entry_points: Sequence[EntryPoint],
    bin_entry_points: Sequence[BinEntryPoint],
    settings: BuildSettings | None = None,
    externals: Iterable[str] = (),
) -> list[BundleTarget]:
    """Assemble the bundle targets for a package.

    *externals* are module ids left unbundled, normally the package's runtime
    ``dependencies``.
    """
    settings = settings or BuildSettings()
    external_list = sorted(set(externals))

    cjs_bins = [b for b in bin_entry_points if b.format == "cjs"]
    esm_bins = [b for b in bin_entry_points if b.format == "esm"]
    mirrored = [b for b in esm_bins if b.bin_entry_type == "dependency-bin"]
    from_source = [b for b in esm_bins if b.bin_entry_type != "dependency-bin"]

    targets: list[BundleTarget] = []
    if entry_points:
        targets.append(_entry_points_target(entry_points, settings, external_list))
    targets.extend(_cjs_targets(cjs_bins, settings, external_list))
    targets.extend(_esm_source_targets(from_source, settings, external_list))
    targets.extend(_mirror_targets(mirrored, settings, external_list))
    return merge_targets(targets)
