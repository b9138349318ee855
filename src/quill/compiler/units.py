"""Generated code units and the code generator's result."""

from __future__ import annotations

from dataclasses import dataclass

from quill.debug import LineMap

BLOCKS = "blocks"
BODY = "body"


@dataclass(frozen=True, slots=True)
class CodeUnit:
    """One generated Python source unit.

    The generator makes no assumption about how the source is executed; it
    hands units to an executor (see ``quill.executor``).

    Attributes:
        template_name: Template the unit was generated from
        kind: ``"blocks"`` (block definitions) or ``"body"`` (``main``)
        source: Generated Python source
        line_map: Template line records, present in debug mode
    """

    template_name: str
    kind: str
    source: str
    line_map: LineMap | None = None

    @property
    def filename(self) -> str:
        """Synthetic filename given to the interpreter for this unit."""
        return f"<quill {self.kind}: {self.template_name}>"

    def template_line(self, generated_line: int | None) -> int | None:
        """Translate a generated line to a template line, if mapped."""
        if self.line_map is None or generated_line is None:
            return None
        return self.line_map.template_line(generated_line)


@dataclass(frozen=True, slots=True)
class GeneratedTemplate:
    """Everything the code generator produces for one template.

    Attributes:
        name: Template name
        blocks: Unit defining block procedures into a ``blocks`` mapping
        body: Unit defining ``main`` (or ``main = None`` when extending)
        dependencies: include/extends targets, in encounter order, deduplicated
        extends: Parent template name, if any
    """

    name: str
    blocks: CodeUnit
    body: CodeUnit
    dependencies: tuple[str, ...]
    extends: str | None = None

    @property
    def units(self) -> tuple[CodeUnit, CodeUnit]:
        return (self.blocks, self.body)
