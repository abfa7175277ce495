from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from bundle_builder.detect.workspace import expand_package_globs, load_workspace


def _package(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name}), encoding="utf-8")
    return directory


@pytest.mark.timeout(10)
def test_single_package_without_globs(tmp_path: Path) -> None:
    _package(tmp_path, "solo")
    workspace = asyncio.run(load_workspace(tmp_path))
    assert workspace.type == "single-package"
    assert workspace.path == tmp_path
    assert workspace.package_globs == []
    assert workspace.package_locations == []


@pytest.mark.timeout(10)
def test_pnpm_workspace_file(tmp_path: Path) -> None:
    (tmp_path / "pnpm-workspace.yaml").write_text(
        "packages:\n  - 'packages/*'\n  - '!packages/private'\n", encoding="utf-8"
    )
    b = _package(tmp_path / "packages" / "b", "b")
    a = _package(tmp_path / "packages" / "a", "a")
    _package(tmp_path / "packages" / "private", "private")
    (tmp_path / "packages" / "no-manifest").mkdir()

    workspace = asyncio.run(load_workspace(tmp_path))

    assert workspace.type == "multiple-packages"
    assert workspace.package_globs == ["packages/*", "!packages/private"]
    assert workspace.package_locations == [a, b]


@pytest.mark.timeout(10)
def test_manifest_workspaces_object(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "root", "workspaces": {"packages": ["apps/*"]}}), encoding="utf-8"
    )
    web = _package(tmp_path / "apps" / "web", "web")

    workspace = asyncio.run(load_workspace(tmp_path))

    assert workspace.type == "multiple-packages"
    assert workspace.package_locations == [web]


@pytest.mark.timeout(10)
def test_invalid_yaml_falls_back_to_manifest(tmp_path: Path) -> None:
    (tmp_path / "pnpm-workspace.yaml").write_text("packages: [unclosed\n", encoding="utf-8")
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "root", "workspaces": ["libs/*"]}), encoding="utf-8"
    )
    lib = _package(tmp_path / "libs" / "core", "core")

    workspace = asyncio.run(load_workspace(tmp_path))

    assert workspace.package_globs == ["libs/*"]
    assert workspace.package_locations == [lib]


def test_expand_skips_node_modules(tmp_path: Path) -> None:
    kept = _package(tmp_path / "tools", "tools")
    _package(tmp_path / "node_modules", "dep")
    assert expand_package_globs(tmp_path, ["*"]) == [kept]
