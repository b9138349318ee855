"""Escape tables for context-sensitive expression output.

Each escape mode is a small ordered table of ``(char, replacement)`` pairs.
Generated code never sees the tables directly: it calls one of the
``escape_<mode>`` wrappers bound into the render environment, which apply the
table to the already-formatted string.

Modes:
- ``none``: no substitution
- ``html``: ``& < > " '``
- ``xml``: as html, with named entities for quotes
- ``latex``: characters with special meaning to TeX
- ``url``: reserved and unsafe URL characters, percent-encoded

Lookup:
``escape_char()`` is the reference lookup (linear scan, first match wins).
``escape()`` substitutes a whole string in a single pass via
``str.translate()`` using tables derived from the same pairs.

Thread-Safety:
All tables are built once at import and never mutated.

"""

from __future__ import annotations

from enum import Enum
from typing import Any


class EscapeMode(Enum):
    """Escape policy applied to expression output."""

    NONE = "none"
    HTML = "html"
    XML = "xml"
    LATEX = "latex"
    URL = "url"

    @classmethod
    def from_keyword(cls, keyword: str) -> EscapeMode:
        """Resolve a template keyword (``html``, ``url``, ...) to a mode.

        Raises:
            ValueError: If the keyword names no escape mode
        """
        try:
            return cls(keyword)
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown escape mode '{keyword}' (expected one of: {valid})") from None


HTML_ESCAPES: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&#034;"),
    ("'", "&#039;"),
)

XML_ESCAPES: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)

LATEX_ESCAPES: tuple[tuple[str, str], ...] = (
    ("&", "\\&"),
    ("$", "\\$"),
    ("\\", "$\\backslash$"),
    ("_", "\\_"),
    ("<", "$<$"),
    (">", "$>$"),
    ("%", "\\%"),
    ("#", "\\#"),
    ("^", "$^$"),
)

URL_ESCAPES: tuple[tuple[str, str], ...] = (
    (" ", "%20"),
    ("<", "%3C"),
    (">", "%3E"),
    ("#", "%23"),
    ("%", "%25"),
    ("{", "%7B"),
    ("}", "%7D"),
    ("|", "%7C"),
    ("\\", "%5C"),
    ("^", "%5E"),
    ("~", "%7E"),
    ("[", "%5B"),
    ("]", "%5D"),
    ("`", "%60"),
    (";", "%3B"),
    ("/", "%2F"),
    ("?", "%3F"),
    (":", "%3A"),
    ("@", "%40"),
    ("=", "%3D"),
    ("&", "%26"),
    ("$", "%24"),
)

ESCAPE_TABLES: dict[EscapeMode, tuple[tuple[str, str], ...]] = {
    EscapeMode.NONE: (),
    EscapeMode.HTML: HTML_ESCAPES,
    EscapeMode.XML: XML_ESCAPES,
    EscapeMode.LATEX: LATEX_ESCAPES,
    EscapeMode.URL: URL_ESCAPES,
}


def _translation(table: tuple[tuple[str, str], ...]) -> dict[int, str]:
    # Reversed so the first pair for a character wins, matching escape_char().
    return {ord(char): replacement for char, replacement in reversed(table)}


_TRANSLATIONS: dict[EscapeMode, dict[int, str]] = {
    mode: _translation(table) for mode, table in ESCAPE_TABLES.items()
}


def escape_char(mode: EscapeMode, char: str) -> str | None:
    """Return the replacement for a single character, or None.

    Example:
        >>> escape_char(EscapeMode.HTML, "<")
        '&lt;'
        >>> escape_char(EscapeMode.HTML, "a") is None
        True
    """
    for candidate, replacement in ESCAPE_TABLES[mode]:
        if candidate == char:
            return replacement
    return None


def escape(mode: EscapeMode, value: Any) -> str:
    """Convert ``value`` to a string and apply the table for ``mode``."""
    text = value if isinstance(value, str) else str(value)
    if mode is EscapeMode.NONE:
        return text
    return text.translate(_TRANSLATIONS[mode])


def escape_html(value: Any) -> str:
    return escape(EscapeMode.HTML, value)


def escape_xml(value: Any) -> str:
    return escape(EscapeMode.XML, value)


def escape_latex(value: Any) -> str:
    return escape(EscapeMode.LATEX, value)


def escape_url(value: Any) -> str:
    return escape(EscapeMode.URL, value)


# Name of the wrapper generated code calls for each mode; None means no wrapper.
ESCAPE_FUNCTION_NAMES: dict[EscapeMode, str | None] = {
    EscapeMode.NONE: None,
    EscapeMode.HTML: "escape_html",
    EscapeMode.XML: "escape_xml",
    EscapeMode.LATEX: "escape_latex",
    EscapeMode.URL: "escape_url",
}

ESCAPE_FUNCTIONS: dict[str, Any] = {
    "escape_html": escape_html,
    "escape_xml": escape_xml,
    "escape_latex": escape_latex,
    "escape_url": escape_url,
}
