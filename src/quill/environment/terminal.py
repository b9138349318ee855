"""ANSI colours for terminal diagnostics.

Colours are used only by ``format_compact()`` and source snippets; plain
``str(exc)`` messages stay uncoloured. Colour is on when stdout is a TTY,
``NO_COLOR`` turns it off and ``FORCE_COLOR`` forces it on.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

_CODES = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "yellow": "\033[33m",
    "green": "\033[32m",
    "bright_red": "\033[91m",
}

Style = Literal["reset", "bold", "dim", "cyan", "yellow", "green", "bright_red"]

_ANSI_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def _colors_enabled() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


_USE_COLORS = _colors_enabled()


def colorize(text: str, *styles: Style) -> str:
    """Wrap ``text`` in the given styles when colour output is enabled."""
    if not _USE_COLORS or not styles:
        return text
    prefix = "".join(_CODES[style] for style in styles)
    return f"{prefix}{text}{_CODES['reset']}"


def strip_colors(text: str) -> str:
    return _ANSI_RE.sub("", text)


def location(text: str) -> str:
    return colorize(text, "cyan")


def hint(text: str) -> str:
    return colorize(text, "green")


def dim_text(text: str) -> str:
    return colorize(text, "dim")


def error_line(text: str) -> str:
    return colorize(text, "bright_red")


def format_error_header(code: str | None, message: str) -> str:
    """Prefix ``message`` with a highlighted error code, if any."""
    if code:
        return f"{colorize(code, 'bright_red', 'bold')}: {message}"
    return message


def format_source_line(lineno: int, content: str, is_error: bool = False) -> str:
    """Format one numbered source line; the error line gets a ``>`` marker."""
    marker = ">" if is_error else " "
    number = colorize(f"{marker}{lineno:>3}", "yellow")
    body = error_line(content) if is_error else dim_text(content)
    return f"{number} | {body}"
