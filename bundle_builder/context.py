"""Process-scoped build context and its memo cells."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Generic, TypeVar

from bundle_builder.config import BuildSettings
from bundle_builder.detect.node_pkg import read_package_json
from bundle_builder.detect.root import locate_root
from bundle_builder.detect.workspace import load_workspace
from bundle_builder.types import PackageManifest, WorkspaceRoot

T = TypeVar("T")


class AsyncOnceCell(Generic[T]):
    """Compute a value once; concurrent callers await the in-flight task.

    A computation that raises is not cached, the next caller retries.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._task: asyncio.Future[T] | None = None
        self._done = False
        self._value: T | None = None

    async def get(self) -> T:
        if self._done:
            return self._value  # type: ignore[return-value]
        if self._task is None or self._task.cancelled():
            self._task = asyncio.ensure_future(self._factory())
        task = self._task
        try:
            # a cancelled caller must not cancel the computation for the others
            value = await asyncio.shield(task)
        except BaseException:
            if task.done() and self._task is task:
                self._task = None
            raise
        self._value = value
        self._done = True
        return value


class AsyncMemo(Generic[T]):
    """Keyed collection of :class:`AsyncOnceCell`."""

    def __init__(self, factory: Callable[[str], Awaitable[T]]) -> None:
        self._factory = factory
        self._cells: dict[str, AsyncOnceCell[T]] = {}

    async def get(self, key: str) -> T:
        cell = self._cells.get(key)
        if cell is None:
            cell = AsyncOnceCell(lambda: self._factory(key))
            self._cells[key] = cell
        return await cell.get()


class BuildContext:
    """Holds the state shared by every component during one process run.

    Only the workspace root and manifest reads are cached; everything derived
    from them is recomputed per build.
    """

    def __init__(
        self,
        cwd: Path | None = None,
        settings: BuildSettings | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> None:
        self.cwd = (cwd or Path.cwd()).resolve()
        # explicit settings replace the manifest ones, overrides are layered on top
        self.settings = settings
        self.overrides = dict(overrides or {})
        self._root = AsyncOnceCell(self._compute_workspace_root)
        self._manifests: AsyncMemo[PackageManifest] = AsyncMemo(
            lambda key: read_package_json(Path(key))
        )

    async def _compute_workspace_root(self) -> WorkspaceRoot:
        root = await locate_root(self.cwd)
        return await load_workspace(root)

    async def workspace_root(self) -> WorkspaceRoot:
        return await self._root.get()

    async def read_manifest(self, directory: Path | None = None) -> PackageManifest:
        key = str((directory or self.cwd).resolve())
        return await self._manifests.get(key)
