"""Quill RenderEnvironment — per-render state passed to every procedure.

Generated procedures take the render environment as their first argument
and resolve every free name against ``env.globals``: render variables, the
output primitives and the dispatch functions. The procedures stored in the
registry are compiled once; each render environment rebinds them to its
own globals before calling them, so concurrent renders never share mutable
state.

Primitives visible to templates:
    print(value)          write str(value) to the sink, no newline
    sprintf(fmt, *args)   printf-style formatting (``fmt % args``)
    escape_html(value)    and escape_xml, escape_latex, escape_url
    render_template(env, name)
    render_block(env, leaf_name, block_name)

"""

from __future__ import annotations

import builtins
import sys
import traceback
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from types import FunctionType
from typing import Any

from quill import dispatch
from quill.environment.exceptions import (
    ErrorCode,
    TemplateError,
    TemplateRuntimeError,
    build_source_snippet,
)
from quill.escape import ESCAPE_FUNCTIONS
from quill.template import CompiledTemplate

Sink = Callable[[str], Any]


def sprintf(fmt: str, *args: Any) -> str:
    return fmt % args


class RenderEnvironment:
    """State for one render: sink, variables, registry view and call depth.

    Not thread-safe; create one per render.

    Attributes:
        registry: Registry snapshot taken when the environment was created
        sink: Callable receiving each output fragment
        globals: Namespace procedures run in
        max_depth: Maximum nesting of render_template calls
        template_stack: Templates currently being rendered, outermost first
    """

    __slots__ = ("_bound", "globals", "max_depth", "registry", "sink", "template_stack")

    def __init__(
        self,
        registry: Mapping[str, CompiledTemplate],
        sink: Sink | None = None,
        variables: Mapping[str, Any] | None = None,
        *,
        max_depth: int = 50,
    ):
        self.registry = registry
        self.sink = sink if sink is not None else sys.stdout.write
        self.max_depth = max_depth
        self.template_stack: list[str] = []
        self._bound: dict[Callable[..., Any], FunctionType] = {}
        # Primitives win over render variables of the same name.
        self.globals: dict[str, Any] = {
            "__builtins__": builtins,
            **(variables or {}),
            "print": self.write,
            "sprintf": sprintf,
            **ESCAPE_FUNCTIONS,
            "render_template": dispatch.render_template,
            "render_block": dispatch.render_block,
        }

    @property
    def depth(self) -> int:
        return len(self.template_stack)

    @property
    def current_template(self) -> str | None:
        return self.template_stack[-1] if self.template_stack else None

    def write(self, value: Any) -> None:
        """Write ``str(value)`` to the sink."""
        self.sink(str(value))

    def call(self, procedure: Callable[..., Any], *args: Any) -> Any:
        """Call a compiled procedure with this environment as its globals."""
        bound = self._bound.get(procedure)
        if bound is None:
            bound = FunctionType(
                procedure.__code__,
                self.globals,
                procedure.__name__,
                procedure.__defaults__,
                procedure.__closure__,
            )
            self._bound[procedure] = bound
        return bound(self, *args)

    @contextmanager
    def rendering(self, name: str) -> Iterator[None]:
        """Track ``name`` on the template stack for the duration of a render.

        Raises:
            TemplateRuntimeError: Nesting would exceed ``max_depth``
        """
        if self.depth >= self.max_depth:
            raise TemplateRuntimeError(
                f"Maximum render depth exceeded ({self.max_depth}) when rendering '{name}'",
                template_name=self.current_template,
                suggestion="Check for templates that render themselves: A → B → A",
                code=ErrorCode.RENDER_DEPTH,
            )
        self.template_stack.append(name)
        try:
            yield
        finally:
            self.template_stack.pop()

    def enhance_error(self, error: Exception) -> Exception:
        """Convert an exception raised by a procedure into TemplateRuntimeError.

        The innermost traceback frame that belongs to a generated unit names
        the template; in debug mode its line map gives the template line.
        TemplateErrors are returned unchanged.
        """
        if isinstance(error, TemplateError):
            return error

        template: CompiledTemplate | None = None
        lineno = None
        units = {
            unit.filename: (entry, unit) for entry in self.registry.values() for unit in entry.units
        }
        for frame in traceback.extract_tb(error.__traceback__):
            found = units.get(frame.filename)
            if found is not None:
                template, unit = found
                lineno = unit.template_line(frame.lineno)

        message = f"{type(error).__name__}: {error}"
        suggestion = None
        if isinstance(error, NameError) and error.name:
            suggestion = (
                f"Pass '{error.name}' as a render variable, or assign it in a code tag "
                "that runs before this point"
            )

        snippet = None
        if template is not None and template.source and lineno:
            snippet = build_source_snippet(template.source, lineno)

        return TemplateRuntimeError(
            message,
            template_name=template.name if template else self.current_template,
            lineno=lineno,
            suggestion=suggestion,
            source_snippet=snippet,
        )
