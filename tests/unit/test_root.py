from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from bundle_builder.detect import root as root_mod
from bundle_builder.detect.root import candidate_jobs, locate_root, first_by_priority


def _mark(directory: Path, marker: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / marker
    if marker == ".git":
        target.mkdir()
    else:
        target.write_text("", encoding="utf-8")


@pytest.mark.timeout(10)
def test_grandparent_marker_is_found(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _mark(repo, ".git")
    start = repo / "a" / "b"
    start.mkdir(parents=True)

    assert asyncio.run(locate_root(start)) == repo.resolve()


@pytest.mark.timeout(10)
def test_start_directory_has_priority(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _mark(repo, ".git")
    start = repo / "a" / "b"
    _mark(start, "package-lock.json")

    assert asyncio.run(locate_root(start)) == start.resolve()


@pytest.mark.timeout(10)
def test_packages_segment_beats_grandparent(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _mark(repo, "pnpm-workspace.yaml")
    app = repo / "packages" / "app"
    _mark(app, "yarn.lock")
    start = app / "src" / "deep"
    start.mkdir(parents=True)

    assert asyncio.run(locate_root(start)) == repo.resolve()


@pytest.mark.timeout(10)
def test_node_modules_segment(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    _mark(repo, "pnpm-lock.yaml")
    start = repo / "node_modules" / "@scope" / "dep" / "dist"
    start.mkdir(parents=True)

    assert asyncio.run(locate_root(start)) == repo.resolve()


@pytest.mark.timeout(10)
def test_falls_back_to_start_directory(tmp_path: Path) -> None:
    start = tmp_path / "lonely" / "x" / "y"
    start.mkdir(parents=True)
    assert asyncio.run(locate_root(start)) == start.resolve()


def test_candidate_jobs_order() -> None:
    start = Path("/work/repo/packages/app")
    assert candidate_jobs(start) == [
        [start],
        [Path("/work/repo")],
        [Path("/work/repo/packages")],
        [Path("/work/repo")],
    ]


def test_candidate_jobs_at_filesystem_root() -> None:
    assert candidate_jobs(Path("/")) == [[Path("/")], [Path("/")]]


@pytest.mark.timeout(10)
def test_priority_not_completion_order(monkeypatch) -> None:
    delays = {"first": 0.05, "second": 0.1, "third": 0.0}
    hits = {"second", "third"}

    async def fake_find(directories, markers):
        name = directories[0].name
        await asyncio.sleep(delays[name])
        return directories[0] if name in hits else None

    monkeypatch.setattr(root_mod, "find_marker", fake_find)
    jobs = [[Path("/x/first")], [Path("/x/second")], [Path("/x/third")]]

    assert asyncio.run(first_by_priority(jobs)) == Path("/x/second")
