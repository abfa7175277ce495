"""bundle-builder CLI: inspect and build package bundle configurations.

Commands:
- root: repository root and workspace layout
- entries / bins: resolved entry points and classified bins
- plan: build tool targets (JSON)
- manifest: the publish package.json
- build: run the build tool for every target and write the publish manifest
"""

from __future__ import annotations

import asyncio
import json
import shlex
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from bundle_builder.context import BuildContext
from bundle_builder.core import build_package, plan_package
from bundle_builder.errors import BuilderError
from bundle_builder.logging import set_verbosity
from bundle_builder.planner import bin_output_path, dev_bin_path
from bundle_builder.tooling.build_tool import BuildTool, CommandBuildTool, DryRunBuildTool

app = typer.Typer(add_completion=False, help="Build configuration compiler for JS/TS packages")
console = Console()


@app.callback()
def main(
    verbosity: str = typer.Option(
        "info", "--verbosity", help="debug | info | warning | error | off"
    ),
) -> None:
    set_verbosity(verbosity)


def _context(path: str, publish_dir: str | None = None) -> BuildContext:
    return BuildContext(cwd=Path(path), overrides={"publish_dir": publish_dir})


def _fail(exc: BuilderError) -> typer.Exit:
    rprint(f"[red]Error:[/red] {exc}")
    return typer.Exit(code=1)


@app.command()
def root(path: str = typer.Argument(".", help="Directory to start the lookup from")) -> None:
    try:
        workspace = asyncio.run(_context(path).workspace_root())
    except BuilderError as exc:
        raise _fail(exc) from exc
    rprint(f"[cyan]root:[/cyan] {workspace.path}")
    rprint(f"[cyan]type:[/cyan] {workspace.type}")
    for location in workspace.package_locations:
        rprint(f"  - {location}")


@app.command()
def entries(path: str = typer.Argument(".", help="Package directory")) -> None:
    try:
        result = asyncio.run(plan_package(_context(path)))
    except BuilderError as exc:
        raise _fail(exc) from exc

    table = Table(title="Entry points")
    table.add_column("Export", style="cyan")
    table.add_column("Source")
    table.add_column("Chunk")
    table.add_column("Output")
    for entry in result.exports.entry_points:
        table.add_row(entry.entry_point, entry.source_path, entry.chunk_name, entry.output_path)
    console.print(table)
    for key, value in result.exports.ignored.items():
        rprint(f"[yellow]ignored:[/yellow] {key} -> {json.dumps(value)}")


@app.command()
def bins(path: str = typer.Argument(".", help="Package directory")) -> None:
    try:
        result = asyncio.run(plan_package(_context(path)))
    except BuilderError as exc:
        raise _fail(exc) from exc

    table = Table(title="Bins")
    table.add_column("Bin", style="cyan")
    table.add_column("Source")
    table.add_column("Type")
    table.add_column("Dev")
    table.add_column("Published")
    for entry in result.bins.bin_entry_points:
        table.add_row(
            entry.bin_name,
            entry.source_file_path,
            entry.bin_entry_type,
            dev_bin_path(entry, result.settings),
            bin_output_path(entry),
        )
    console.print(table)
    for name, value in result.bins.ignored.items():
        rprint(f"[yellow]ignored:[/yellow] {name} -> {value}")


@app.command()
def plan(
    path: str = typer.Argument(".", help="Package directory"),
    out: str | None = typer.Option(None, "--out", help="Write to file instead of stdout"),
) -> None:
    try:
        result = asyncio.run(plan_package(_context(path)))
    except BuilderError as exc:
        raise _fail(exc) from exc

    payload = json.dumps([t.model_dump() for t in result.targets], indent=2)
    if out:
        Path(out).write_text(payload, encoding="utf-8")
        rprint(f"[green]Plan written:[/green] {out}")
    else:
        print(payload)


@app.command()
def manifest(path: str = typer.Argument(".", help="Package directory")) -> None:
    try:
        result = asyncio.run(plan_package(_context(path)))
    except BuilderError as exc:
        raise _fail(exc) from exc
    print(json.dumps(result.publish_manifest, indent=2))


@app.command()
def build(
    path: str = typer.Argument(".", help="Package directory"),
    command: str | None = typer.Option(
        None, "--command", help="Build tool command, receives the target config path"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Plan and write the manifest only"),
    publish_dir: str | None = typer.Option(None, "--publish-dir", help="Published artifact dir"),
) -> None:
    if not command and not dry_run:
        rprint("[red]Error:[/red] pass --command or --dry-run")
        raise typer.Exit(code=2)
    tool: BuildTool = DryRunBuildTool() if dry_run else CommandBuildTool(shlex.split(command or ""))

    try:
        report = asyncio.run(build_package(_context(path, publish_dir), tool))
    except BuilderError as exc:
        raise _fail(exc) from exc

    table = Table(title="Build Summary")
    table.add_column("Target", style="cyan")
    table.add_column("Mode")
    table.add_column("Format")
    table.add_column("Output")
    for target in report.targets:
        table.add_row(target.name, target.mode, target.module_format, target.output_directory)
    console.print(table)
    for name in {**report.ignored_entry_points, **report.ignored_bin_entry_points}:
        rprint(f"[yellow]kept as declared:[/yellow] {name}")
    rprint(f"[green]Publish manifest written:[/green] {report.manifest_path}")


if __name__ == "__main__":
    app()
