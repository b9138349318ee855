"""Exceptions for the Quill template compiler.

Exception Hierarchy:
TemplateError (base)
├── SourceUnavailableError      # Loader could not produce the source
│   └── TemplateNotFoundError   # No loader knows the template name
├── TemplateSyntaxError         # Unterminated tag or malformed directive
├── CircularDependencyError     # include/extends cycle on the active path
├── CodeGenerationError         # Executor rejected a generated code unit
└── TemplateRuntimeError        # Failure while rendering

Every failure aborts only the compile or render call that raised it. A failed
compile never publishes anything to the registry.

Debug Diagnostics:
When line maps are available, errors carry the template line and expose a
``diagnostic`` string in the ``[template "<name>"]:<line>:<message>`` form.

Example:
    ```
    Runtime Error: division by zero
      Location: page.lt:4
       |
     3 | <p>
    >4 | <%= 1 / count %>
     5 | </p>
       |
    ```

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from quill.debug import format_diagnostic
from quill.environment import terminal


class ErrorCode(Enum):
    """Searchable error codes.

    Format: Q-{CATEGORY}-{NUMBER}
    Categories: LEX (code generator), TPL (template loading), RUN (rendering)
    """

    # Code generator errors (Q-LEX-xxx)
    UNCLOSED_TAG = "Q-LEX-001"
    UNCLOSED_BLOCK = "Q-LEX-002"
    INVALID_DIRECTIVE = "Q-LEX-003"
    UNBALANCED_CODE = "Q-LEX-004"

    # Template loading errors (Q-TPL-xxx)
    TEMPLATE_NOT_FOUND = "Q-TPL-001"
    SYNTAX_ERROR = "Q-TPL-002"
    CIRCULAR_DEPENDENCY = "Q-TPL-003"
    CODE_GENERATION = "Q-TPL-004"

    # Runtime errors (Q-RUN-xxx)
    RUNTIME_ERROR = "Q-RUN-001"
    RENDER_DEPTH = "Q-RUN-002"
    TEMPLATE_NOT_COMPILED = "Q-RUN-003"

    @property
    def category(self) -> str:
        """Error category ('lexer', 'template' or 'runtime')."""
        prefix = self.value.split("-")[1]
        return {
            "LEX": "lexer",
            "TPL": "template",
            "RUN": "runtime",
        }.get(prefix, "unknown")


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source lines around an error line.

    Attributes:
        lines: ``(line_number, content)`` pairs around the error
        error_line: 1-based line where the error occurred
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int

    def format(self) -> str:
        parts = [terminal.dim_text("   |")]
        for lineno, content in self.lines:
            parts.append(
                terminal.format_source_line(lineno, content, is_error=lineno == self.error_line)
            )
        parts.append(terminal.dim_text("   |"))
        return "\n".join(parts)


def build_source_snippet(source: str, error_line: int, *, context_lines: int = 2) -> SourceSnippet:
    """Build a SourceSnippet showing ``context_lines`` around ``error_line``."""
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line)


class TemplateError(Exception):
    """Base exception for all Quill template errors.

        >>> try:
        ...     env.render("page.lt")
        ... except TemplateError as e:
        ...     log.error("template failed: %s", e)

    Attributes:
        code: ErrorCode identifying the failure kind
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format the error for terminal display, without traceback noise."""
        header = str(self)
        if self.code and self.code.value not in header:
            return terminal.format_error_header(self.code.value, header)
        return header


class SourceUnavailableError(TemplateError):
    """A loader failed to produce template source."""

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateNotFoundError(SourceUnavailableError):
    """No configured loader knows the template name.

    Example:
            >>> env.compile("missing.lt")
        TemplateNotFoundError: Template 'missing.lt' not found in: templates
    """


class TemplateSyntaxError(TemplateError):
    """Unterminated tag or malformed directive in template source.

    When ``source`` and ``lineno`` are known the message shows the offending
    line.
    """

    code: ErrorCode | None = ErrorCode.SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        filename: str | None = None,
        source: str | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.name = name
        self.filename = filename
        self.source = source
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    @property
    def diagnostic(self) -> str:
        return format_diagnostic(self.name or "<template>", self.lineno, self.message)

    def _format_message(self) -> str:
        location = self.filename or self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
        header = f"Syntax Error: {self.message}\n  --> {location}"

        if self.source and self.lineno:
            lines = self.source.splitlines()
            if 0 < self.lineno <= len(lines):
                return header + f"\n   |\n{self.lineno:>3} | {lines[self.lineno - 1]}"
        return header

    def format_compact(self) -> str:
        parts = [terminal.format_error_header(self.code.value if self.code else None, self.message)]
        location = self.filename or self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
        parts.append(f"  --> {terminal.location(location)}")
        if self.source and self.lineno:
            parts.append(build_source_snippet(self.source, self.lineno).format())
        return "\n".join(parts)


class CircularDependencyError(TemplateError):
    """An include/extends chain leads back to a template still being compiled.

    Attributes:
        cycle: Template names forming the cycle, first name repeated last
    """

    code: ErrorCode | None = ErrorCode.CIRCULAR_DEPENDENCY

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        self.name = self.cycle[-1] if self.cycle else None
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")


class CodeGenerationError(TemplateError):
    """The executor failed to load a generated code unit.

    Attributes:
        template_name: Template the unit was generated from
        unit: Unit kind, ``"blocks"`` or ``"body"``
        message: Executor diagnostic
        lineno: Template line, when a line map could translate it
    """

    code: ErrorCode | None = ErrorCode.CODE_GENERATION

    def __init__(
        self,
        message: str,
        *,
        template_name: str,
        unit: str,
        lineno: int | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.unit = unit
        self.lineno = lineno
        super().__init__(
            f"Code generation failed for {unit} of '{template_name}': {self.diagnostic}"
        )

    @property
    def diagnostic(self) -> str:
        return format_diagnostic(self.template_name, self.lineno, self.message)


class TemplateRuntimeError(TemplateError):
    """Render-time error with template context.

    Output Format:
            ```
            Runtime Error: ZeroDivisionError: division by zero
              Location: page.lt:4
               |
            >4 | <%= 1 / count %>
               |
              Suggestion: ...
            ```

    Attributes:
        message: Error description
        template_name: Template whose procedure failed
        lineno: Template line, when a line map could translate it
        suggestion: Actionable fix suggestion
        source_snippet: Source lines around ``lineno``
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        source_snippet: SourceSnippet | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.source_snippet = source_snippet
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    @property
    def diagnostic(self) -> str:
        return format_diagnostic(self.template_name or "<template>", self.lineno, self.message)

    def _location(self) -> str:
        loc = self.template_name or "<template>"
        if self.lineno:
            loc += f":{self.lineno}"
        return loc

    def _format_message(self) -> str:
        headline = self.diagnostic if self.lineno else self.message
        parts = [f"Runtime Error: {headline}"]
        if self.template_name or self.lineno:
            parts.append(f"  Location: {self._location()}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        if self.suggestion:
            parts.append(f"  Suggestion: {self.suggestion}")
        return "\n".join(parts)

    def format_compact(self) -> str:
        parts = [terminal.format_error_header(self.code.value if self.code else None, self.message)]
        parts.append(f"  Location: {terminal.location(self._location())}")
        if self.source_snippet:
            parts.append(self.source_snippet.format())
        if self.suggestion:
            parts.append(f"  {terminal.hint('Hint:')} {self.suggestion}")
        return "\n".join(parts)
