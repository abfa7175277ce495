"""Shared models: manifest, entry points, bins and bundle targets."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

ModuleFormat = Literal["cjs", "esm"]
BinEntryType = Literal["typescript-shebang-bin", "dependency-bin", "standard-bin"]
BuildMode = Literal["dev", "publish"]
RepositoryType = Literal["single-package", "multiple-packages"]


class WorkspaceRoot(BaseModel):
    path: Path
    type: RepositoryType
    package_globs: list[str] = Field(default_factory=list)
    package_locations: list[Path] = Field(default_factory=list)


class PackageManifest(BaseModel):
    """Validated view of a ``package.json``.

    Keys that are not modelled explicitly are kept as extra fields so that the
    publish manifest can carry metadata such as ``license`` forward.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    version: str
    type: Literal["module"]
    main: str | None = None
    exports: Any = None
    bin: str | dict[str, str] | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    workspaces: list[str] | dict[str, Any] | None = None
    directory: Path | None = Field(default=None, exclude=True)

    def raw(self) -> dict[str, Any]:
        """Return the manifest as it appeared on disk (declared keys only)."""
        data = self.model_dump(by_alias=True, exclude_unset=True, exclude={"directory"})
        data.update(self.model_extra or {})
        return data


@dataclass(frozen=True)
class ExportsLeaf:
    path: str


@dataclass(frozen=True)
class ExportsGroup:
    # ``None`` values stand for an explicit JSON ``null``
    entries: dict[str, ExportsNode | None]


ExportsNode = Union[ExportsLeaf, ExportsGroup]


class EntryPoint(BaseModel):
    """One importable module of the package.

    ``entry_point`` is the export subpath (``"."`` is the primary one),
    ``source_path`` the module being bundled, ``output_path`` where the
    bundled chunk lives relative to the published package and ``chunk_name``
    the bundler's name for that chunk.
    """

    entry_point: str
    source_path: str
    output_path: str
    chunk_name: str


class BinEntryPoint(BaseModel):
    bin_name: str
    source_file_path: str
    format: ModuleFormat
    bin_entry_type: BinEntryType


class ResolvedExports(BaseModel):
    entry_points: list[EntryPoint] = Field(default_factory=list)
    ignored: dict[str, Any] = Field(default_factory=dict)


class ClassifiedBins(BaseModel):
    bin_entry_points: list[BinEntryPoint] = Field(default_factory=list)
    ignored: dict[str, str] = Field(default_factory=dict)


class BundleTarget(BaseModel):
    """A single invocation of the external build tool."""

    name: str
    mode: BuildMode
    inputs: dict[str, str]
    output_directory: str
    module_format: ModuleFormat
    is_executable: bool = False
    virtual_modules: dict[str, str] = Field(default_factory=dict)
    banner: str | None = None
    entry_file_names: str = "[name].js"
    externals: list[str] = Field(default_factory=list)

    def output_file(self, name: str) -> str:
        return f"{self.output_directory}/{self.entry_file_names.replace('[name]', name)}"


class BuildReport(BaseModel):
    workspace: WorkspaceRoot
    targets: list[BundleTarget]
    publish_manifest: dict[str, Any]
    ignored_entry_points: dict[str, Any] = Field(default_factory=dict)
    ignored_bin_entry_points: dict[str, str] = Field(default_factory=dict)
    manifest_path: Path | None = None
