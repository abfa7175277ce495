"""Flatten a package ``exports`` declaration into concrete entry points.

The raw JSON is first decoded into an :data:`ExportsNode` tree, then walked:

- a leaf is an entry point named after the subpath it was found under,
- subpath keys (``"./cli"``) recurse,
- glob keys (``"./configs/*"``) and conditions nested under a subpath are not
  bundled; they are kept verbatim in ``ignored`` so the publish manifest still
  carries them,
- explicit ``null`` entries are dropped.

A conditions-only object at the top level (``{"types": ..., "node": ...}``)
describes the primary entry point and is resolved through the condition
preference list.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from bundle_builder.config import BuildSettings
from bundle_builder.errors import ExportsError
from bundle_builder.logging import get_logger
from bundle_builder.resolve.conditions import (
    is_conditions_only,
    is_subpath,
    quote_keys,
    resolve_export_entry,
)
from bundle_builder.types import (
    EntryPoint,
    ExportsGroup,
    ExportsLeaf,
    ExportsNode,
    ResolvedExports,
)

log = get_logger(__name__)

PRIMARY = "."
MAIN_CHUNK = "main"


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def decode_exports(value: Any) -> ExportsNode:
    """Decode raw JSON into the exports tree; ``null`` is only legal inside objects."""
    if isinstance(value, str):
        return ExportsLeaf(value)
    if isinstance(value, dict):
        return ExportsGroup(
            {
                str(key): None if child is None else decode_exports(child)
                for key, child in value.items()
            }
        )
    raise ExportsError(f'Expected "string" or "object" as exports entry - got "{_kind(value)}"')


def encode_exports(node: ExportsNode | None) -> Any:
    if node is None:
        return None
    if isinstance(node, ExportsLeaf):
        return node.path
    return {key: encode_exports(child) for key, child in node.entries.items()}


def derive_chunk_name(entry_point: str) -> str:
    if entry_point == PRIMARY:
        return MAIN_CHUNK
    name = re.sub(r"^\./", "", entry_point)
    name = re.sub(r"/\*?$", "", name)
    return name.replace("*", "").replace("/", "_")


def chunk_output_path(chunk_name: str, settings: BuildSettings) -> str:
    """Where a chunk lives relative to the published package root."""
    directory = settings.entry_output_dir.strip("/")
    return f"./{directory}/{chunk_name}.js" if directory else f"./{chunk_name}.js"


def _suggestion(key: str) -> str:
    expected = re.sub(r"/$", "", re.sub(r"^\.?/", "", key.replace("*", "")))
    return f"./{expected or 'something'}"


class _Resolution:
    def __init__(self, settings: BuildSettings) -> None:
        self.settings = settings
        self.entries: dict[str, EntryPoint] = {}
        self.ignored: dict[str, Any] = {}

    def add(self, entry_point: str, source_path: str) -> None:
        chunk_name = derive_chunk_name(entry_point)
        if chunk_name in self.entries:
            return
        self.entries[chunk_name] = EntryPoint(
            entry_point=entry_point,
            source_path=source_path,
            output_path=chunk_output_path(chunk_name, self.settings),
            chunk_name=chunk_name,
        )

    def ignore(self, key: str, node: ExportsNode, reason: str) -> None:
        log.warning('"exports" entry "%s" is not bundled: %s', key, reason)
        self.ignored[key] = encode_exports(node)

    def ignore_condition(self, subpath: str, condition: str, node: ExportsNode) -> None:
        log.warning(
            '"exports" entry "%s" has condition "%s" which is not supported, '
            'expected something like "%s" or "."; the entry is kept as is',
            subpath,
            condition,
            _suggestion(condition),
        )
        owner = self.ignored.setdefault(subpath, {})
        owner[condition] = encode_exports(node)

    def walk(self, node: ExportsNode, subpath: str) -> None:
        if derive_chunk_name(subpath) in self.entries:
            return
        if isinstance(node, ExportsLeaf):
            self.add(subpath, node.path)
            return
        for key, child in node.entries.items():
            if child is None or child == ExportsLeaf(""):
                continue
            if not is_subpath(key):
                self.ignore_condition(subpath, key, child)
            elif "*" in key:
                reason = f'globs are passed through, expected something like "{_suggestion(key)}"'
                self.ignore(key, child, reason)
            else:
                self.walk(child, key)


def _resolve_top_level_conditions(
    state: _Resolution, root: ExportsGroup, conditions: Sequence[str]
) -> None:
    raw = encode_exports(root)
    selected = resolve_export_entry(raw, conditions)
    if selected is None:
        state.ignore(PRIMARY, root, f"none of the conditions {quote_keys(conditions)} matched")
        return
    state.add(PRIMARY, selected)


def resolve_exports(declaration: Any, settings: BuildSettings | None = None) -> ResolvedExports:
    """Resolve *declaration* (the ``exports`` field) into entry points.

    Raises :class:`ExportsError` for values that are neither string nor object,
    and for condition keys found where subpaths were expected.
    """
    settings = settings or BuildSettings()
    root = decode_exports(declaration)
    state = _Resolution(settings)

    if isinstance(root, ExportsGroup) and root.entries:
        condition_keys = [key for key in root.entries if not is_subpath(key)]
        subpath_keys = [key for key in root.entries if is_subpath(key)]
        if condition_keys and subpath_keys:
            raise ExportsError(
                f'"exports" in package.json mixes conditions {quote_keys(condition_keys)} '
                f"with subpaths {quote_keys(subpath_keys)}, conditions should be nested "
                f'under a subpath, ie "."'
            )

    if is_conditions_only(declaration):
        _resolve_top_level_conditions(state, root, settings.export_conditions)
    else:
        state.walk(root, PRIMARY)
    return ResolvedExports(entry_points=list(state.entries.values()), ignored=state.ignored)
