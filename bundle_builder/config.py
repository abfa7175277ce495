"""Build settings.

Precedence (lowest first): model defaults, the ``"bundleBuilder"`` object of
``package.json``, explicit overrides (CLI options).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bundle_builder.errors import ManifestError
from bundle_builder.types import ModuleFormat

SETTINGS_KEY = "bundleBuilder"


class BuildSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    # published artifact root, relative to the package directory
    publish_dir: str = Field(default="dist", alias="publishDir")
    # entry point chunks, relative to ``publish_dir``
    entry_output_dir: str = Field(default="dist", alias="entryOutputDir")
    # development bins, relative to the package directory
    dev_bin_dir: str = Field(default="bin", alias="devBinDir")
    bin_source_dir: str = Field(default="src/bin", alias="binSourceDir")
    entry_format: ModuleFormat = Field(default="esm", alias="entryFormat")
    export_conditions: list[str] = Field(
        default_factory=lambda: ["types", "node", "default"], alias="exportConditions"
    )
    interpreter_directive: str = Field(default="#!/usr/bin/env ", alias="interpreterDirective")


def load_settings(raw: Any = None, **overrides: Any) -> BuildSettings:
    """Build settings from the manifest's ``bundleBuilder`` object and overrides.

    ``None`` overrides are ignored so CLI options can be passed straight through.
    """
    data: dict[str, Any] = {}
    if raw is not None:
        if not isinstance(raw, dict):
            raise ManifestError(f'"{SETTINGS_KEY}" in package.json should be an object')
        data.update(raw)
    for key, value in overrides.items():
        if value is None:
            continue
        field = BuildSettings.model_fields.get(key)
        data[field.alias if field and field.alias else key] = value
    try:
        return BuildSettings.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f'Invalid "{SETTINGS_KEY}" settings: {exc}') from exc
