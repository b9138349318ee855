"""Executors turn generated code units into callable procedures.

The code generator only produces text. An executor compiles a unit and runs
it against a namespace, which is how ``main`` and the block procedures come
into existence. Failures are reported as CodeGenerationError carrying the
executor's diagnostic, translated to a template line when the unit has a
line map.

"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Protocol

from quill.compiler.units import CodeUnit
from quill.environment.exceptions import CodeGenerationError

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Load a generated unit into a namespace, or raise CodeGenerationError."""

    def load(self, unit: CodeUnit, namespace: dict[str, Any]) -> None: ...


class PythonExecutor:
    """Executor for Python code units: ``compile()`` then ``exec()``.

    Each unit is compiled under its synthetic filename (see
    ``CodeUnit.filename``) so tracebacks from rendering can be traced back to
    the unit that produced them.
    """

    __slots__ = ()

    def load(self, unit: CodeUnit, namespace: dict[str, Any]) -> None:
        try:
            code = compile(unit.source, unit.filename, "exec")
        except SyntaxError as e:
            raise CodeGenerationError(
                e.msg,
                template_name=unit.template_name,
                unit=unit.kind,
                lineno=unit.template_line(e.lineno),
            ) from e

        try:
            exec(code, namespace)
        except Exception as e:
            raise CodeGenerationError(
                f"{type(e).__name__}: {e}",
                template_name=unit.template_name,
                unit=unit.kind,
                lineno=unit.template_line(_generated_line(e, unit.filename)),
            ) from e

        logger.debug("loaded %s unit of %s", unit.kind, unit.template_name)


def _generated_line(error: BaseException, filename: str) -> int | None:
    """Innermost traceback line that belongs to ``filename``."""
    lineno = None
    for frame in traceback.extract_tb(error.__traceback__):
        if frame.filename == filename:
            lineno = frame.lineno
    return lineno
