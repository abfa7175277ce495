"""Schema validation for consumed and produced manifests."""

from __future__ import annotations

import json
from functools import cache
from importlib import resources

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError, best_match

from bundle_builder.errors import ManifestError

# --- Schema loaders ---------------------------------------------------------


@cache
def _load_schema(package: str, resource_name: str) -> dict:
    with resources.files(package).joinpath(resource_name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _package_schema() -> dict:
    return _load_schema("bundle_builder.schema", "package.schema.json")


def _publish_schema() -> dict:
    return _load_schema("bundle_builder.schema", "publish.schema.json")


def _describe(error: ValidationError) -> str:
    location = "/".join(str(p) for p in error.absolute_path) or "<root>"
    return f'"{location}": {error.message}'


# --- Public validators ------------------------------------------------------


def validate_package_manifest(data: dict, source: str = "package.json") -> None:
    """Raise :class:`ManifestError` naming the first offending field."""
    error = best_match(Draft202012Validator(_package_schema()).iter_errors(data))
    if error is not None:
        raise ManifestError(f"Invalid {source} - {_describe(error)}")


def validate_publish_manifest(data: dict) -> None:
    try:
        Draft202012Validator(_publish_schema()).validate(data)
    except ValidationError as exc:
        raise ManifestError(f"Generated package.json is invalid - {_describe(exc)}") from exc
