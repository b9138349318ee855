"""Indentation-aware source accumulator for generated code units."""

from __future__ import annotations

from quill.debug import LineMap

INDENT = "    "

# Suite kinds. Structural suites are opened by the generator itself (the
# ``main`` function, block definitions and their guards); code suites are
# opened by template code tags ending in ``:``.
STRUCTURE = "structure"
CODE = "code"


class CodeBuilder:
    """Accumulate lines of Python source for one code unit.

    Tracks the open suites so that an empty suite can be closed with ``pass``
    and so the generator can tell template code suites from its own.

    Attributes:
        line_map: Optional LineMap receiving one record per template newline
    """

    __slots__ = ("_lines", "_suites", "line_map")

    def __init__(self, line_map: LineMap | None = None):
        self._lines: list[str] = []
        # (kind, line count when opened) per open suite
        self._suites: list[tuple[str, int]] = []
        self.line_map = line_map

    @property
    def next_lineno(self) -> int:
        """1-based number of the next line to be emitted."""
        return len(self._lines) + 1

    @property
    def depth(self) -> int:
        return len(self._suites)

    @property
    def code_depth(self) -> int:
        """Number of open suites opened by template code tags."""
        return sum(1 for kind, _ in self._suites if kind == CODE)

    @property
    def innermost(self) -> str | None:
        return self._suites[-1][0] if self._suites else None

    def add_line(self, line: str) -> None:
        self._lines.append(INDENT * self.depth + line)

    def add_statement(self, text: str) -> None:
        """Add a statement that may span lines inside brackets.

        Only the first line is indented; continuation lines are kept as
        written so string literals spanning lines stay intact.
        """
        first, *rest = text.split("\n")
        self.add_line(first)
        self._lines.extend(rest)

    def insert_line(self, lineno: int, line: str, depth: int) -> None:
        """Insert ``line`` at ``depth`` so it becomes line ``lineno``.

        Later lines, their line map records and suites opened after the
        insertion point move down by one.
        """
        index = lineno - 1
        self._lines.insert(index, INDENT * depth + line)
        self._suites = [
            (kind, opened + 1 if opened > index else opened) for kind, opened in self._suites
        ]
        if self.line_map is not None:
            self.line_map.shift(lineno)

    def text_from(self, lineno: int) -> str:
        """Source from line ``lineno`` to the end, shifted to column zero.

        The indentation of line ``lineno`` is removed from every line that
        carries it; bracket continuation lines are kept as written.
        """
        lines = self._lines[lineno - 1 :]
        prefix = lines[0][: len(lines[0]) - len(lines[0].lstrip())]
        return "\n".join(
            line[len(prefix) :] if line.startswith(prefix) else line for line in lines
        ) + "\n"

    def indent(self, kind: str = STRUCTURE) -> None:
        self._suites.append((kind, len(self._lines)))

    def dedent(self) -> str:
        """Close the innermost suite, adding ``pass`` if it has no statements.

        Returns:
            The kind of the suite that was closed
        """
        kind, opened_at = self._suites[-1]
        if all(line.lstrip().startswith("#") for line in self._lines[opened_at:]):
            self.add_line("pass")
        self._suites.pop()
        return kind

    def record_newline(self, template_line: int, generated_line: int) -> None:
        """Record a consumed template newline against the generated line."""
        if self.line_map is not None:
            self.line_map.record(generated_line, template_line)

    def reset(self) -> None:
        self._lines.clear()
        self._suites.clear()
        if self.line_map is not None:
            self.line_map.reset()

    def source(self) -> str:
        if not self._lines:
            return ""
        return "\n".join(self._lines) + "\n"
