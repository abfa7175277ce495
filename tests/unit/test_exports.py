from __future__ import annotations

import pytest

from bundle_builder.config import BuildSettings
from bundle_builder.errors import ExportsError
from bundle_builder.resolve.exports import (
    decode_exports,
    derive_chunk_name,
    encode_exports,
    resolve_exports,
)
from bundle_builder.types import ExportsGroup, ExportsLeaf


def _chunks(declaration) -> list[str]:
    return [e.chunk_name for e in resolve_exports(declaration).entry_points]


@pytest.mark.parametrize(
    "entry_point, expected",
    [
        (".", "main"),
        ("./cli", "cli"),
        ("./utils/", "utils"),
        ("./configs/*", "configs"),
        ("./nested/deep/mod", "nested_deep_mod"),
        ("./a*b", "ab"),
    ],
)
def test_derive_chunk_name(entry_point: str, expected: str) -> None:
    assert derive_chunk_name(entry_point) == expected


def test_single_string_is_the_main_entry_point() -> None:
    result = resolve_exports("./src/index.ts")
    assert len(result.entry_points) == 1
    entry = result.entry_points[0]
    assert entry.entry_point == "."
    assert entry.source_path == "./src/index.ts"
    assert entry.chunk_name == "main"
    assert entry.output_path == "./dist/main.js"
    assert result.ignored == {}


def test_main_and_cli_subpaths() -> None:
    result = resolve_exports({".": "./src/index.ts", "./cli": "./src/cli.ts"})
    assert [e.chunk_name for e in result.entry_points] == ["main", "cli"]
    assert [e.output_path for e in result.entry_points] == ["./dist/main.js", "./dist/cli.js"]
    assert [e.source_path for e in result.entry_points] == ["./src/index.ts", "./src/cli.ts"]


def test_nested_subpaths_yield_one_entry_per_leaf() -> None:
    declaration = {
        ".": "./src/index.ts",
        "./utils": {
            "./utils/strings": "./src/utils/strings.ts",
            "./utils/paths": {"./utils/paths/posix": "./src/utils/posix.ts"},
        },
        "./cli": "./src/cli.ts",
    }
    chunks = _chunks(declaration)
    assert chunks == ["main", "utils_strings", "utils_paths_posix", "cli"]
    assert len(set(chunks)) == len(chunks)


def test_resolution_is_repeatable() -> None:
    declaration = {".": "./src/index.ts", "./cli": "./src/cli.ts", "./configs/*": "./c/*.json"}
    first = resolve_exports(declaration)
    second = resolve_exports(declaration)
    assert first.model_dump_json() == second.model_dump_json()


def test_first_chunk_name_wins() -> None:
    result = resolve_exports({"./a/": "./src/a1.ts", "./a": "./src/a2.ts"})
    assert len(result.entry_points) == 1
    assert result.entry_points[0].source_path == "./src/a1.ts"


def test_null_entries_are_dropped() -> None:
    result = resolve_exports({".": "./src/index.ts", "./legacy": None})
    assert [e.chunk_name for e in result.entry_points] == ["main"]
    assert result.ignored == {}


def test_glob_keys_are_passed_through() -> None:
    result = resolve_exports({".": "./src/index.ts", "./configs/*": "./configs/*.json"})
    assert [e.chunk_name for e in result.entry_points] == ["main"]
    assert result.ignored == {"./configs/*": "./configs/*.json"}


def test_conditions_under_subpath_are_kept_verbatim() -> None:
    result = resolve_exports(
        {".": "./src/index.ts", "./styles": {"style": "./src/styles.css"}}
    )
    assert [e.chunk_name for e in result.entry_points] == ["main"]
    assert result.ignored == {"./styles": {"style": "./src/styles.css"}}


def test_top_level_conditions_select_by_preference() -> None:
    settings = BuildSettings(export_conditions=["node", "default"])
    result = resolve_exports(
        {"browser": "./src/browser.ts", "node": "./src/node.ts"}, settings
    )
    assert [(e.entry_point, e.source_path) for e in result.entry_points] == [
        (".", "./src/node.ts")
    ]


def test_top_level_conditions_without_match_are_ignored() -> None:
    declaration = {"browser": "./src/browser.ts"}
    result = resolve_exports(declaration)
    assert result.entry_points == []
    assert result.ignored == {".": declaration}


def test_condition_wrapping_subpaths_is_fatal() -> None:
    with pytest.raises(ExportsError) as excinfo:
        resolve_exports({"node": {".": "./src/index.ts", "./cli": "./src/cli.ts"}})
    assert '"."' in str(excinfo.value)
    assert '"./cli"' in str(excinfo.value)


def test_mixed_top_level_keys_are_fatal() -> None:
    with pytest.raises(ExportsError) as excinfo:
        resolve_exports({".": "./src/index.ts", "node": "./src/node.ts"})
    assert '"node"' in str(excinfo.value)


@pytest.mark.parametrize(
    "value, kind", [(None, "null"), (42, "number"), (True, "boolean"), (["./a.ts"], "array")]
)
def test_unsupported_values_are_fatal(value, kind: str) -> None:
    with pytest.raises(ExportsError, match=f'got "{kind}"'):
        resolve_exports(value)


def test_unsupported_nested_value_is_fatal() -> None:
    with pytest.raises(ExportsError, match='got "array"'):
        resolve_exports({".": "./src/index.ts", "./cli": ["./src/cli.ts"]})


def test_custom_entry_output_dir() -> None:
    settings = BuildSettings(entry_output_dir="lib")
    result = resolve_exports({"./cli": "./src/cli.ts"}, settings)
    assert result.entry_points[0].output_path == "./lib/cli.js"


def test_decode_keeps_nulls_inside_groups() -> None:
    node = decode_exports({".": "./a.ts", "./b": None})
    assert node == ExportsGroup({".": ExportsLeaf("./a.ts"), "./b": None})
    assert encode_exports(node) == {".": "./a.ts", "./b": None}
