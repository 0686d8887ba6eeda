from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .compiler import CompiledTemplate, compile_template, load_and_compile_template
from .config import load_config_file, load_locals_file
from .errors import TemplateError
from .evaluator import PythonEvaluator
from .version import tool_version


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="shtml",
        description="Static HTML template compiler",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_render = sub.add_parser("render", help="Render a template to stdout or a file")
    sp_render.add_argument(
        "template",
        help="template name resolved against --base/--ext, or '-' to read template text from stdin",
    )
    sp_render.add_argument("--config", metavar="FILE", help="YAML file with base, ext and delimiters")
    sp_render.add_argument("--locals", metavar="FILE", help="YAML/JSON mapping of template variables")
    sp_render.add_argument(
        "-D", "--define",
        action="append",
        metavar="NAME=EXPR",
        help="set a template variable to a Python expression (can be repeated)",
    )
    sp_render.add_argument("--base", metavar="DIR", help="directory templates are loaded from")
    sp_render.add_argument("--ext", metavar="EXT", help="extension appended to template names (without dot)")
    sp_render.add_argument("-o", "--output", metavar="FILE", help="write the result here instead of stdout")
    sp_render.add_argument("--verbose", action="store_true", help="debug logging to stderr")

    return p


def _options(ns: argparse.Namespace) -> Dict[str, Any]:
    opts: Dict[str, Any] = {}
    if ns.config:
        opts.update(load_config_file(Path(ns.config)))
    if ns.base is not None:
        opts["base"] = Path(ns.base)
    if ns.ext is not None:
        opts["ext"] = ns.ext.lstrip(".")
    return opts


def _locals(ns: argparse.Namespace) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if ns.locals:
        values.update(load_locals_file(Path(ns.locals)))

    evaluator = PythonEvaluator()
    for definition in _parse_defines(ns.define):
        name, expr = definition
        values[name] = evaluator.evaluate(expr, dict(values))
    return values


def _parse_defines(defines: Optional[List[str]]) -> List[tuple[str, str]]:
    """Parses NAME=EXPR pairs."""
    result = []
    for item in defines or []:
        if "=" not in item:
            raise TemplateError(f"Invalid define '{item}'. Expected 'NAME=EXPR'")
        name, expr = item.split("=", 1)
        name = name.strip()
        if not name.isidentifier():
            raise TemplateError(f"Invalid variable name '{name}' in define '{item}'")
        result.append((name, expr))
    return result


async def _compile(ns: argparse.Namespace) -> CompiledTemplate:
    opts = _options(ns)
    if ns.template == "-":
        return await compile_template(sys.stdin.read(), opts)
    return await load_and_compile_template(ns.template, opts)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)

    if getattr(ns, "verbose", False):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        if ns.cmd == "render":
            compiled = asyncio.run(_compile(ns))
            result = compiled.render(_locals(ns))
            if ns.output:
                Path(ns.output).write_text(result, encoding="utf-8")
            else:
                sys.stdout.write(result)
            return 0

    except TemplateError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
