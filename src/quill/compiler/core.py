"""Quill Code Generator — single-pass state machine over template source.

Turns template text into two Python code units:

- **body**: ``def main(env, _t)`` holding the sequential rendering logic
- **blocks**: definitions of named block procedures stored into ``blocks``

plus the ordered list of templates the source depends on.

Tag Syntax:
    ```
    text            copied verbatim, emitted as print('<literal>')
    <% code %>      Python statements, copied verbatim
    <%= expr %>     print(expr), escaped with the current escape mode
    <%=html expr %> escape mode for this expression only (html|xml|latex|url|none)
    <%=%.2f expr %> printf-style format applied before escaping
    <%! directive %>  include | extends | block | endblock | escape
    ```

State Machine:
    ```
    TEXT ──"<%="──► EXPRESSION ──"%>"──► TEXT
    TEXT ──"<%!"──► INSTRUCTION ─"%>"──► TEXT
    TEXT ──"<%"───► CODE ────────"%>"──► TEXT
    TEXT ──end of input──► DONE
    ```
Running out of input inside a tag raises TemplateSyntaxError; nothing is
recovered.

Code Suites:
Python needs indentation where the template has none. A code tag whose last
token is ``:`` (comments aside) opens a suite; ``<% end %>`` closes it; a tag starting
with ``else``/``elif``/``except``/``finally`` closes the current suite and
opens the next one:
    ```
    <% for item in items: %>
      <li><%=html item %></li>
    <% end %>
    ```

Render Scope:
Names bound by code tags are declared ``global`` at the top of the procedure
holding them, so they land in the per-render globals and reach blocks and
included templates. Loop and ``with``/``except`` targets stay local.

Block Inheritance:
A non-extending template guards each block definition so the first
definition of a name wins, and renders the block in place through
``render_block(env, _t, name)``, which picks up overrides from the template
originally requested (``_t``). An extending template contributes block
definitions only; its body is ``main = None``.

"""

from __future__ import annotations

import io
import re
import textwrap
import tokenize
from enum import Enum, auto

from quill.compiler.builder import CODE, CodeBuilder
from quill.compiler.scope import assigned_names
from quill.compiler.units import BLOCKS, BODY, CodeUnit, GeneratedTemplate
from quill.debug import LineMap
from quill.environment.exceptions import ErrorCode, TemplateSyntaxError
from quill.escape import ESCAPE_FUNCTION_NAMES, EscapeMode

OPEN_TAG = "<%"
CLOSE_TAG = "%>"

# Tried in this order as a prefix immediately after "<%="
_EXPRESSION_MODIFIERS: tuple[tuple[str, EscapeMode], ...] = (
    ("html", EscapeMode.HTML),
    ("xml", EscapeMode.XML),
    ("latex", EscapeMode.LATEX),
    ("url", EscapeMode.URL),
    ("none", EscapeMode.NONE),
)

_WHITESPACE_RE = re.compile(r"\s*")
_FORMAT_RE = re.compile(r"%\S*")
_KEYWORD_RE = re.compile(r"[A-Za-z_]+")
_BARE_ARGUMENT_RE = re.compile(r"(?:(?!%>)\S)+")
_CONTINUATION_RE = re.compile(r"(else|elif|except|finally)\b")
_NON_IDENTIFIER_RE = re.compile(r"\W")
_TRIVIA_TOKENS = frozenset(
    {
        tokenize.COMMENT,
        tokenize.NL,
        tokenize.NEWLINE,
        tokenize.INDENT,
        tokenize.DEDENT,
        tokenize.ENDMARKER,
    }
)

# O(1) directive dispatch: keyword → handler method name
_DIRECTIVES: dict[str, str] = {
    "include": "_directive_include",
    "extends": "_directive_extends",
    "block": "_directive_block",
    "endblock": "_directive_endblock",
    "escape": "_directive_escape",
}


def _significant_tokens(code: str) -> list[str] | None:
    """Token strings of ``code`` without comments and layout.

    Returns None when ``code`` does not tokenize on its own, e.g. a bracket
    left open across tags.
    """
    try:
        return [
            token.string
            for token in tokenize.generate_tokens(io.StringIO(code).readline)
            if token.type not in _TRIVIA_TOKENS
        ]
    except (tokenize.TokenError, SyntaxError, ValueError):
        return None


class State(Enum):
    TEXT = auto()
    CODE = auto()
    EXPRESSION = auto()
    INSTRUCTION = auto()
    DONE = auto()


class CodeGenerator:
    """Generate Python code units from template source.

    A generator instance can be reused; all scan state is reset by
    ``generate()``. It is not safe to share one instance between threads.

    Example:
            >>> gen = CodeGenerator("hello.lt")
            >>> result = gen.generate("Hello, <%= name %>!")
            >>> print(result.body.source)
            def main(env, _t):
                print('Hello, ')
                print(name)
                print('!')

    Attributes:
        name: Template name used in generated code and diagnostics
        escape: Persistent escape mode at the start of every template
        debug: Record line maps for diagnostics
    """

    __slots__ = (
        "_active",
        "_block",
        "_block_def_lineno",
        "_block_lineno",
        "_blocks",
        "_body",
        "_dependencies",
        "_escape",
        "_extends",
        "_lineno",
        "_pos",
        "_source",
        "_state",
        "_tag_lineno",
        "_text",
        "debug",
        "escape",
        "filename",
        "name",
    )

    def __init__(
        self,
        name: str,
        *,
        escape: EscapeMode = EscapeMode.NONE,
        debug: bool = False,
        filename: str | None = None,
    ):
        self.name = name
        self.escape = escape
        self.debug = debug
        self.filename = filename

    def generate(self, source: str) -> GeneratedTemplate:
        """Scan ``source`` once and return the generated units.

        Raises:
            TemplateSyntaxError: Unterminated tag or malformed directive
        """
        self._source = source
        self._pos = 0
        self._lineno = 1
        self._tag_lineno = 1
        self._block_lineno = 1
        self._block_def_lineno = 1
        self._state = State.TEXT
        self._escape = self.escape
        self._extends: str | None = None
        self._block: str | None = None
        self._text: list[str] = []
        self._dependencies: list[str] = []
        self._body = CodeBuilder(LineMap() if self.debug else None)
        self._blocks = CodeBuilder(LineMap() if self.debug else None)
        self._active = self._body

        self._body.add_line("def main(env, _t):")
        self._body.indent()

        handlers = {
            State.TEXT: self._scan_text,
            State.CODE: self._scan_code,
            State.EXPRESSION: self._scan_expression,
            State.INSTRUCTION: self._scan_instruction,
        }
        while self._state is not State.DONE:
            handlers[self._state]()

        return self._finish()

    # -- states ---------------------------------------------------------------

    def _scan_text(self) -> None:
        src = self._source
        start = self._pos
        idx = src.find(OPEN_TAG, start)
        end = len(src) if idx == -1 else idx
        if end > start:
            self._add_text(src[start:end])
        if idx == -1:
            self._pos = end
            self._state = State.DONE
            return

        self._flush_text()
        self._tag_lineno = self._lineno
        self._pos = idx + len(OPEN_TAG)
        modifier = src[self._pos : self._pos + 1]
        if modifier == "=":
            self._pos += 1
            self._state = State.EXPRESSION
        elif modifier == "!":
            self._pos += 1
            self._state = State.INSTRUCTION
        else:
            self._state = State.CODE

    def _scan_expression(self) -> None:
        src = self._source
        mode = self._escape
        for keyword, candidate in _EXPRESSION_MODIFIERS:
            if src.startswith(keyword, self._pos):
                mode = candidate
                self._pos += len(keyword)
                break

        fmt = None
        if src.startswith("%", self._pos) and not src.startswith(CLOSE_TAG, self._pos):
            match = _FORMAT_RE.match(src, self._pos)
            fmt = match.group()
            self._pos = match.end()

        self._skip_whitespace()
        close = self._find_close()
        raw = src[self._pos : close]
        expression = raw.rstrip()
        if not expression:
            raise self._error("Empty expression tag")

        wrappers = ["print("]
        function = ESCAPE_FUNCTION_NAMES[mode]
        if function is not None:
            wrappers.append(f"{function}(")
        if fmt is not None:
            wrappers.append(f"sprintf({fmt!r}, ")
        statement = "".join(wrappers) + expression + ")" * len(wrappers)

        first_line = self._active.next_lineno
        if self._emitting:
            self._active.add_statement(statement)
        self._advance_lines(raw.count("\n"), first_line, span=statement.count("\n") + 1)
        self._pos = close + len(CLOSE_TAG)
        self._state = State.TEXT

    def _scan_code(self) -> None:
        src = self._source
        start = self._pos
        close = self._find_close()
        column = start - (src.rfind("\n", 0, start) + 1)
        self._emit_code(src[start:close], column)
        self._pos = close + len(CLOSE_TAG)
        self._state = State.TEXT

    def _scan_instruction(self) -> None:
        src = self._source
        self._find_close()
        self._skip_whitespace()
        match = _KEYWORD_RE.match(src, self._pos)
        keyword = match.group() if match else ""
        handler = _DIRECTIVES.get(keyword)
        if handler is None:
            shown = keyword or src[self._pos : self._pos + 12].split(CLOSE_TAG)[0]
            raise self._error(f"Unknown directive '{shown}'", ErrorCode.INVALID_DIRECTIVE)
        self._pos = match.end()
        getattr(self, handler)()

        self._skip_whitespace()
        if not src.startswith(CLOSE_TAG, self._pos):
            self._find_close()
            raise self._error(
                f"Unexpected text after '{keyword}' directive", ErrorCode.INVALID_DIRECTIVE
            )
        self._pos += len(CLOSE_TAG)
        self._state = State.TEXT

    # -- directives -----------------------------------------------------------

    def _directive_include(self) -> None:
        name = self._read_argument("template name")
        self._add_dependency(name)
        if self._emitting:
            self._active.add_line(f"render_template(env, {name!r})")

    def _directive_extends(self) -> None:
        if self._extends is not None:
            raise self._error(
                f"Template already extends '{self._extends}'", ErrorCode.INVALID_DIRECTIVE
            )
        if self._block is not None:
            raise self._error(
                f"'extends' inside block '{self._block}'", ErrorCode.INVALID_DIRECTIVE
            )
        name = self._read_argument("template name")
        self._extends = name
        # Override-only from here on: whatever the body emitted is dropped.
        self._text.clear()
        self._body.reset()
        self._body.add_line("main = None")
        self._add_dependency(name)

    def _directive_block(self) -> None:
        if self._block is not None:
            raise self._error(
                f"Nested block inside block '{self._block}'", ErrorCode.INVALID_DIRECTIVE
            )
        name = self._read_argument("block name")
        self._block = name
        self._block_lineno = self._tag_lineno
        self._active = self._blocks
        if self._extends is None:
            # First definition of a name in a base template wins.
            self._blocks.add_line(f"if {name!r} not in blocks:")
            self._blocks.indent()
        self._block_def_lineno = self._blocks.next_lineno
        self._blocks.add_line(f"def {self._block_function(name)}(env):")
        self._blocks.indent()

    def _directive_endblock(self) -> None:
        # A label after endblock ("endblock content") is ignored
        close = self._find_close()
        self._advance_lines(self._source.count("\n", self._pos, close), self._active.next_lineno)
        self._pos = close

        name = self._block
        if name is None:
            raise self._error("'endblock' without an open block", ErrorCode.INVALID_DIRECTIVE)
        if self._blocks.code_depth:
            raise self._error(
                f"Unclosed code suite in block '{name}'", ErrorCode.UNBALANCED_CODE
            )
        self._declare_globals(self._blocks, self._block_def_lineno)
        self._blocks.dedent()
        self._blocks.add_line(f"blocks[{name!r}] = {self._block_function(name)}")
        if self._extends is None:
            self._blocks.dedent()
        self._block = None
        self._active = self._body
        if self._extends is None:
            self._body.add_line(f"render_block(env, _t, {name!r})")

    def _directive_escape(self) -> None:
        keyword = self._read_argument("escape mode")
        try:
            self._escape = EscapeMode.from_keyword(keyword)
        except ValueError as e:
            raise self._error(str(e), ErrorCode.INVALID_DIRECTIVE) from None

    # -- helpers --------------------------------------------------------------

    @property
    def _emitting(self) -> bool:
        """Output outside block regions is dropped once the template extends."""
        return self._extends is None or self._block is not None

    def _add_text(self, text: str) -> None:
        if self._emitting:
            self._text.append(text)
        self._advance_lines(text.count("\n"), self._active.next_lineno)

    def _flush_text(self) -> None:
        if self._text:
            literal = "".join(self._text)
            self._text.clear()
            self._active.add_line(f"print({literal!r})")

    def _emit_code(self, content: str, column: int) -> None:
        builder = self._active
        # Pad the first line back to its source column so dedent keeps the
        # relative indentation of multi-line code tags.
        lines = [line.rstrip() for line in textwrap.dedent(" " * column + content).split("\n")]
        statements = [line for line in lines if line.strip()]
        newlines = len(lines) - 1

        if not statements or not self._emitting:
            self._advance_lines(newlines, builder.next_lineno)
            return

        head = statements[0].strip()
        tokens = _significant_tokens("\n".join(lines))
        if tokens is None:
            is_end = len(statements) == 1 and head == "end"
            opens_suite = statements[-1].endswith(":")
        else:
            is_end = tokens == ["end"]
            opens_suite = tokens[-1:] == [":"]

        if is_end:
            if builder.innermost != CODE:
                raise self._error("'end' without an open code suite", ErrorCode.UNBALANCED_CODE)
            builder.dedent()
            self._advance_lines(newlines, builder.next_lineno)
            return

        continuation = _CONTINUATION_RE.match(head)
        if continuation:
            if builder.innermost != CODE:
                raise self._error(
                    f"'{continuation.group(1)}' without an open code suite",
                    ErrorCode.UNBALANCED_CODE,
                )
            builder.dedent()

        emitted = False
        for i, line in enumerate(lines):
            if line.strip():
                builder.add_line(line)
                emitted = True
            if i < newlines:
                generated = builder.next_lineno - 1 if emitted else builder.next_lineno
                builder.record_newline(self._lineno, generated)
                self._lineno += 1

        if opens_suite:
            builder.indent(CODE)

    def _declare_globals(self, builder: CodeBuilder, def_lineno: int) -> None:
        """Declare the names bound by a procedure's code tags ``global``.

        The procedure starts at ``def_lineno`` and runs to the end of
        ``builder``; the declaration becomes its first statement.
        """
        names = assigned_names(builder.text_from(def_lineno))
        if names:
            builder.insert_line(def_lineno + 1, f"global {', '.join(names)}", builder.depth)

    def _read_argument(self, what: str) -> str:
        self._skip_whitespace()
        src = self._source
        quote = src[self._pos : self._pos + 1]
        if quote in ('"', "'"):
            end = src.find(quote, self._pos + 1)
            newline = src.find("\n", self._pos + 1)
            if end == -1 or -1 < newline < end:
                raise self._error(f"Unterminated quoted {what}", ErrorCode.INVALID_DIRECTIVE)
            value = src[self._pos + 1 : end]
            self._pos = end + 1
        else:
            match = _BARE_ARGUMENT_RE.match(src, self._pos)
            value = match.group() if match else ""
            if match:
                self._pos = match.end()
        if not value:
            raise self._error(f"Missing {what}", ErrorCode.INVALID_DIRECTIVE)
        return value

    def _add_dependency(self, name: str) -> None:
        if name not in self._dependencies:
            self._dependencies.append(name)

    @staticmethod
    def _block_function(name: str) -> str:
        return "_block_" + _NON_IDENTIFIER_RE.sub("_", name)

    def _skip_whitespace(self) -> None:
        match = _WHITESPACE_RE.match(self._source, self._pos)
        self._advance_lines(match.group().count("\n"), self._active.next_lineno)
        self._pos = match.end()

    def _advance_lines(self, count: int, first_generated: int, span: int = 1) -> None:
        for i in range(count):
            self._active.record_newline(self._lineno, first_generated + min(i, span - 1))
            self._lineno += 1

    def _find_close(self) -> int:
        close = self._source.find(CLOSE_TAG, self._pos)
        if close == -1:
            raise self._error(
                "Unterminated tag: missing '%>'", ErrorCode.UNCLOSED_TAG, lineno=self._tag_lineno
            )
        return close

    def _error(
        self,
        message: str,
        code: ErrorCode | None = None,
        *,
        lineno: int | None = None,
    ) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message,
            lineno=lineno or self._tag_lineno,
            name=self.name,
            filename=self.filename,
            source=self._source,
            code=code,
        )

    def _finish(self) -> GeneratedTemplate:
        self._flush_text()
        if self._block is not None:
            raise self._error(
                f"Unclosed block '{self._block}'",
                ErrorCode.UNCLOSED_BLOCK,
                lineno=self._block_lineno,
            )
        if self._body.code_depth:
            raise self._error(
                "Unclosed code suite at end of template",
                ErrorCode.UNBALANCED_CODE,
                lineno=self._lineno,
            )
        if self._extends is None:
            self._declare_globals(self._body, 1)
            self._body.dedent()

        for builder in (self._body, self._blocks):
            if builder.line_map is not None:
                builder.line_map.last_template_line = self._lineno

        return GeneratedTemplate(
            name=self.name,
            blocks=CodeUnit(self.name, BLOCKS, self._blocks.source(), self._blocks.line_map),
            body=CodeUnit(self.name, BODY, self._body.source(), self._body.line_map),
            dependencies=tuple(self._dependencies),
            extends=self._extends,
        )


def generate(
    source: str,
    name: str,
    *,
    escape: EscapeMode = EscapeMode.NONE,
    debug: bool = False,
    filename: str | None = None,
) -> GeneratedTemplate:
    """Generate code units for ``source`` with a fresh CodeGenerator."""
    return CodeGenerator(name, escape=escape, debug=debug, filename=filename).generate(source)
