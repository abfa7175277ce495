from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from bundle_builder.detect.node_pkg import parse_manifest, read_package_json
from bundle_builder.errors import ManifestError


def _valid(**overrides) -> dict:
    data = {"name": "pkg", "version": "1.0.0", "type": "module", "exports": "./src/index.ts"}
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


@pytest.mark.timeout(10)
def test_reads_and_validates(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps(_valid(license="MIT", devDependencies={"tsx": "^4.0.0"})), encoding="utf-8"
    )
    manifest = asyncio.run(read_package_json(tmp_path))

    assert manifest.name == "pkg"
    assert manifest.exports == "./src/index.ts"
    assert manifest.dev_dependencies == {"tsx": "^4.0.0"}
    assert manifest.directory == tmp_path
    # unknown keys survive for the publish manifest
    assert manifest.raw()["license"] == "MIT"
    assert "directory" not in manifest.raw()


@pytest.mark.timeout(10)
def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ManifestError, match="No package.json found"):
        asyncio.run(read_package_json(tmp_path))


@pytest.mark.timeout(10)
def test_invalid_json(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{ not json", encoding="utf-8")
    with pytest.raises(ManifestError, match="Cannot parse"):
        asyncio.run(read_package_json(tmp_path))


@pytest.mark.timeout(10)
def test_unreadable_manifest(tmp_path: Path) -> None:
    (tmp_path / "package.json").mkdir()
    with pytest.raises(ManifestError, match="Cannot read"):
        asyncio.run(read_package_json(tmp_path))


@pytest.mark.timeout(10)
def test_manifest_not_utf8(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_bytes(b'{"name": "\xff\xfe"}')
    with pytest.raises(ManifestError, match="Cannot read"):
        asyncio.run(read_package_json(tmp_path))


@pytest.mark.parametrize("value", ["commonjs", None])
def test_type_must_be_module(value) -> None:
    data = _valid()
    data.pop("type")
    if value is not None:
        data["type"] = value
    with pytest.raises(ManifestError, match='"type" in package.json should be "module"'):
        parse_manifest(data)


@pytest.mark.parametrize("field", ["name", "version"])
def test_required_fields(field: str) -> None:
    data = _valid()
    data.pop(field)
    with pytest.raises(ManifestError, match=f'"{field}" in package.json should be defined'):
        parse_manifest(data)


def test_structural_errors_name_the_field() -> None:
    with pytest.raises(ManifestError, match='"bin"'):
        parse_manifest(_valid(bin=42))
    with pytest.raises(ManifestError, match='"dependencies/react"'):
        parse_manifest(_valid(dependencies={"react": 18}))


def test_typings_is_rejected() -> None:
    with pytest.raises(ManifestError, match='"typings"'):
        parse_manifest(_valid(typings="./index.d.ts"))


@pytest.mark.parametrize("bin_field", [None, {"cli": "./src/bin/cli.ts"}])
def test_exports_is_required(bin_field) -> None:
    data = _valid(bin=bin_field)
    data.pop("exports")
    with pytest.raises(ManifestError, match='"exports" in package.json should be defined'):
        parse_manifest(data)


def test_non_object_manifest() -> None:
    with pytest.raises(ManifestError):
        parse_manifest(["not", "an", "object"])
