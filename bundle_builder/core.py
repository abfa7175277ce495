"""Build orchestration: manifest -> entry points + bins -> plan -> bundles + manifest."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bundle_builder.config import SETTINGS_KEY, BuildSettings, load_settings
from bundle_builder.context import BuildContext
from bundle_builder.errors import BuildToolError, ManifestError
from bundle_builder.logging import get_logger
from bundle_builder.package.executable import mark_directory_executable
from bundle_builder.package.manifest import transform_manifest, write_publish_manifest
from bundle_builder.planner import build_plan
from bundle_builder.resolve.bins import classify_bins
from bundle_builder.resolve.exports import resolve_exports
from bundle_builder.tooling.build_tool import BuildTool
from bundle_builder.types import (
    BuildReport,
    BundleTarget,
    ClassifiedBins,
    PackageManifest,
    ResolvedExports,
    WorkspaceRoot,
)

log = get_logger(__name__)


@dataclass
class PackagePlan:
    package_directory: Path
    workspace: WorkspaceRoot
    manifest: PackageManifest
    settings: BuildSettings
    exports: ResolvedExports
    bins: ClassifiedBins
    targets: list[BundleTarget]
    publish_manifest: dict[str, Any]


def settings_for(ctx: BuildContext, manifest: PackageManifest) -> BuildSettings:
    """Settings for *manifest*: ``bundleBuilder`` layered with the context overrides."""
    if ctx.settings is not None:
        return ctx.settings
    return load_settings((manifest.model_extra or {}).get(SETTINGS_KEY), **ctx.overrides)


async def plan_package(ctx: BuildContext, package_directory: Path | None = None) -> PackagePlan:
    """Resolve and plan a package without writing anything."""
    directory = (package_directory or ctx.cwd).resolve()
    workspace, manifest = await asyncio.gather(
        ctx.workspace_root(), ctx.read_manifest(directory)
    )
    settings = settings_for(ctx, manifest)

    exports = resolve_exports(manifest.exports, settings)
    bins = await classify_bins(manifest, directory, settings, search_stop=workspace.path)

    if not exports.entry_points:
        raise ManifestError(
            f"The package {manifest.name} doesn't have any entry points, nothing to bundle!"
        )
    for name, value in bins.ignored.items():
        log.warning(
            'bin "%s" is not bundled and will be published as declared',
            name,
            extra={"context": {"package": manifest.name, "bin": value}},
        )

    targets = build_plan(
        exports.entry_points,
        bins.bin_entry_points,
        settings,
        externals=manifest.dependencies.keys(),
    )
    publish_manifest = transform_manifest(
        manifest,
        exports.entry_points,
        exports.ignored,
        bins.bin_entry_points,
        bins.ignored,
    )
    return PackagePlan(
        package_directory=directory,
        workspace=workspace,
        manifest=manifest,
        settings=settings,
        exports=exports,
        bins=bins,
        targets=targets,
        publish_manifest=publish_manifest,
    )


async def build_package(
    ctx: BuildContext, tool: BuildTool, package_directory: Path | None = None
) -> BuildReport:
    plan = await plan_package(ctx, package_directory)

    for target in plan.targets:
        outcome = await tool.build(target, plan.package_directory)
        if not outcome.ok:
            raise BuildToolError(f"Build of {target.name} failed: {outcome.message}")
        if target.is_executable:
            await mark_directory_executable(plan.package_directory / target.output_directory)
        log.info(
            "Built %s",
            target.name,
            extra={
                "context": {
                    "mode": target.mode,
                    "format": target.module_format,
                    "output": target.output_directory,
                }
            },
        )

    manifest_path = write_publish_manifest(
        plan.publish_manifest, plan.package_directory / plan.settings.publish_dir
    )
    log.info("Wrote %s", manifest_path)
    return BuildReport(
        workspace=plan.workspace,
        targets=plan.targets,
        publish_manifest=plan.publish_manifest,
        ignored_entry_points=plan.exports.ignored,
        ignored_bin_entry_points=plan.bins.ignored,
        manifest_path=manifest_path,
    )
