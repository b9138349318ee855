"""Command-line renderer for Quill templates.

Usage:
    quill render page.lt -D title=Home -d data.json
    quill show page.lt
    python -m quill render page.lt --debug

Templates are looked up in ``custom/`` first, then the current directory,
unless ``-p`` search paths are given.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from quill import __version__
from quill.environment import Environment, FileSystemLoader, TemplateError
from quill.environment.terminal import strip_colors
from quill.escape import EscapeMode

DEFAULT_SEARCH_PATH = ["custom", "."]


def _parse_define(value: str) -> tuple[str, str]:
    key, sep, rest = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, rest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quill", description="Compile and render Quill templates")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler activity")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("name", help="Template name")
    common.add_argument(
        "-p",
        "--path",
        action="append",
        dest="paths",
        metavar="PATH",
        help="Template search path, first match wins (default: custom, .)",
    )
    common.add_argument(
        "--escape",
        choices=[mode.value for mode in EscapeMode],
        default=EscapeMode.NONE.value,
        help="Initial escape mode",
    )
    common.add_argument("--debug", action="store_true", help="Report template line numbers")

    commands = parser.add_subparsers(dest="command", required=True)
    render = commands.add_parser("render", parents=[common], help="Render a template to stdout")
    render.add_argument("-d", "--data", metavar="JSON_FILE", help="Variables from a JSON object")
    render.add_argument(
        "-D",
        "--define",
        action="append",
        type=_parse_define,
        default=[],
        metavar="KEY=VALUE",
        help="Set a string variable",
    )
    commands.add_parser("show", parents=[common], help="Print the generated code units")
    return parser


def _variables(args: argparse.Namespace) -> dict[str, Any]:
    variables: dict[str, Any] = {}
    if args.data:
        with open(args.data, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{args.data}: expected a JSON object")
        variables.update(data)
    variables.update(args.define)
    return variables


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    env = Environment(
        FileSystemLoader(args.paths or DEFAULT_SEARCH_PATH),
        debug=args.debug,
        escape=args.escape,
    )

    try:
        if args.command == "show":
            generated = env.generate(args.name)
            for unit in generated.units:
                sys.stdout.write(f"-- {unit.kind} --\n{unit.source}")
            return 0

        variables = _variables(args)
        env.get_template(args.name)
        env.render_into(env.render_environment(sys.stdout.write, variables), args.name)
    except TemplateError as e:
        message = e.format_compact()
        # Colour follows stdout; keep redirected stderr plain
        if not sys.stderr.isatty():
            message = strip_colors(message)
        print(message, file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"quill: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
