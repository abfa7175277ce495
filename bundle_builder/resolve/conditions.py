"""Conditional export resolution (``"types"``, ``"node"``, ``"default"``, ...)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from bundle_builder.errors import ExportsError

DEFAULT_CONDITIONS = ("types", "node", "default")

CONDITIONS_URL = "https://nodejs.org/api/packages.html#conditional-exports"


def is_subpath(key: str) -> bool:
    return key.startswith(".")


def is_conditions_only(entry: Any) -> bool:
    if not isinstance(entry, dict) or not entry:
        return False
    return not any(is_subpath(key) for key in entry)


def quote_keys(keys: Sequence[str]) -> str:
    return ", ".join(f'"{key}"' for key in keys)


def resolve_export_entry(entry: Any, conditions: Sequence[str] = DEFAULT_CONDITIONS) -> str | None:
    """Pick the path an entry resolves to under the preferred *conditions*.

    Conditions are tried in preference order, the first one present wins and is
    resolved recursively. Subpath keys are not allowed here.
    """
    if isinstance(entry, str):
        return entry
    if not isinstance(entry, dict) or not entry:
        return None

    subpaths = [key for key in entry if is_subpath(key)]
    if subpaths:
        raise ExportsError(
            f'Unexpected "exports" entry - found {quote_keys(subpaths)} but expected only '
            f'conditions, ie "types", "node", "browser", "default", ... etc. See '
            f"{CONDITIONS_URL} for more information"
        )

    for condition in conditions:
        if condition in entry:
            return resolve_export_entry(entry[condition], conditions)
    return None
