from __future__ import annotations

from bundle_builder.buildpacks.virtual_modules import (
    bin_path_content,
    dev_jump_content,
    dev_module_id,
    mirror_module_id,
    mirrored_bin_content,
    package_root_url,
)


def test_package_root_url() -> None:
    assert package_root_url(0) == "./"
    assert package_root_url(1) == "../"
    assert package_root_url(3) == "../../../"


def test_bin_path_helper_walks_node_modules() -> None:
    source = bin_path_content(2)
    assert "iterateNodeModules" in source
    assert "join(current, 'node_modules', path)" in source
    assert 'new URL("../../", import.meta.url)' in source


def test_mirrored_bin_forwards_arguments_and_exit_code() -> None:
    source = mirrored_bin_content("eslint", "eslint/bin/eslint.js")
    assert source.startswith("import { spawn } from 'node:child_process';")
    assert 'binPath("eslint", "eslint/bin/eslint.js")' in source
    assert "process.argv.slice(2)" in source
    assert "process.exitCode = code;" in source


def test_dev_jump_through_tsx() -> None:
    source = dev_jump_content("cli", "./src/bin/cli.ts", depth=1, via_tsx=True)
    assert "binPath('tsx', \"tsx/dist/cli.mjs\")" in source
    assert 'new URL("../src/bin/cli.ts", import.meta.url)' in source


def test_dev_jump_through_node() -> None:
    source = dev_jump_content("run", "scripts/run.mjs", depth=1, via_tsx=False)
    assert "binPath" not in source
    assert 'new URL("../scripts/run.mjs", import.meta.url)' in source


def test_module_ids() -> None:
    assert dev_module_id("cli") == "virtual:bin-dev/cli"
    assert mirror_module_id("tsc") == "virtual:bin-mirror/tsc"
