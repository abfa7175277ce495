"""Source text of the virtual modules injected into bin bundles.

These modules never exist on disk; the build tool receives them as
``virtual_modules`` keyed by the id used in a target's ``inputs``.
"""

from __future__ import annotations

import json

DEV_MODULE_PREFIX = "virtual:bin-dev/"
MIRROR_MODULE_PREFIX = "virtual:bin-mirror/"

TSX_SCRIPT = "tsx/dist/cli.mjs"


def _js(value: str) -> str:
    return json.dumps(value)


def package_root_url(depth: int) -> str:
    """Relative URL from an output directory *depth* levels deep to the package root."""
    return "../" * depth if depth > 0 else "./"


def bin_path_content(depth: int = 1) -> str:
    """Helper locating an installed script by walking ``node_modules`` upwards."""
    return f"""import {{ stat }} from 'node:fs/promises';
import {{ dirname, join, sep }} from 'node:path';
import {{ fileURLToPath }} from 'node:url';

const isFile = async (file) => {{
  return await stat(file)
    .then((result) => result.isFile())
    .catch(() => false);
}};

async function* iterateNodeModules(startWith, path) {{
  let current = startWith;
  while (current !== sep && current !== '~/') {{
    const candidate = join(current, 'node_modules', path);
    if (await isFile(candidate)) {{
      yield candidate;
    }}
    if (current === dirname(current)) {{
      break;
    }}
    current = dirname(current);
  }}
}}

async function findBinScript(startWith, binScriptPath) {{
  for await (const path of iterateNodeModules(startWith, binScriptPath)) {{
    return path;
  }}
  return undefined;
}}

async function binPath(binName, binScriptPath) {{
  const root = fileURLToPath(new URL({_js(package_root_url(depth))}, import.meta.url));
  const result = await findBinScript(root, binScriptPath);
  if (result) {{
    return result;
  }}
  throw new Error(`Cannot find bin ${{binName}}`);
}}
"""


_SPAWN_TAIL = """  cp.on('error', onError);
  cp.on('close', (code, signal) => {
    if (typeof code === 'number') {
      process.exitCode = code;
    } else if (typeof signal === 'string') {
      console.error('Failed to start', %(label)s, signal);
    }
  });
}, onError);
"""

_ON_ERROR = """
const onError = (err) => {
  console.error(err);
  process.exitCode = 1;
};
"""


def mirrored_bin_content(bin_name: str, bin_script_path: str, depth: int = 1) -> str:
    """Re-run a dependency's own executable with the current arguments."""
    return (
        "import { spawn } from 'node:child_process';\n"
        + bin_path_content(depth)
        + _ON_ERROR
        + f"\nbinPath({_js(bin_name)}, {_js(bin_script_path)}).then((result) => {{\n"
        + "  const cp = spawn(result, process.argv.slice(2), { stdio: 'inherit' });\n"
        + _SPAWN_TAIL % {"label": "result"}
    )


def dev_jump_content(bin_name: str, source_path: str, depth: int = 1, via_tsx: bool = True) -> str:
    """Route a dev-time bin straight to its source file.

    TypeScript sources run through the locally installed ``tsx``; plain
    JavaScript sources run through the current ``node`` executable.
    """
    source = source_path[2:] if source_path.startswith("./") else source_path
    source_url = _js(package_root_url(depth) + source)
    if via_tsx:
        return (
            "import { spawn } from 'node:child_process';\n"
            + bin_path_content(depth)
            + _ON_ERROR
            + f"\nbinPath('tsx', {_js(TSX_SCRIPT)}).then((result) => {{\n"
            + "  const cp = spawn(\n"
            + "    process.execPath,\n"
            + "    [\n"
            + "      result,\n"
            + f"      fileURLToPath(new URL({source_url}, import.meta.url)),\n"
            + "      ...process.argv.slice(2),\n"
            + "    ],\n"
            + "    { stdio: 'inherit' }\n"
            + "  );\n"
            + _SPAWN_TAIL % {"label": _js(bin_name)}
        )
    return (
        "import { spawn } from 'node:child_process';\n"
        "import { fileURLToPath } from 'node:url';\n"
        + _ON_ERROR
        + "\nPromise.resolve().then(() => {\n"
        + "  const cp = spawn(\n"
        + "    process.execPath,\n"
        + f"    [fileURLToPath(new URL({source_url}, import.meta.url)), ...process.argv.slice(2)],\n"
        + "    { stdio: 'inherit' }\n"
        + "  );\n"
        + _SPAWN_TAIL % {"label": _js(bin_name)}
    )


def dev_module_id(bin_name: str) -> str:
    return f"{DEV_MODULE_PREFIX}{bin_name}"


def mirror_module_id(bin_name: str) -> str:
    return f"{MIRROR_MODULE_PREFIX}{bin_name}"
