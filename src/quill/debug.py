"""Debug line mapping between generated code and template source.

When an Environment is created with ``debug=True`` the code generator threads
a LineMap through each generated unit. Every newline consumed from the
template records the generated line being emitted at that moment, so a
generated-code line number reported by the interpreter can be translated back
to the template line that produced it.

Lookup scans forward for the first record whose generated line is at or past
the reported one; the template line is that record's line. Errors reported
after the last recorded newline belong to the final template line.

Line maps are a diagnostics aid only. Rendering never consults them.

"""

from __future__ import annotations

from dataclasses import dataclass, field


def format_diagnostic(template_name: str, template_line: int | None, message: str) -> str:
    """Format a diagnostic in the ``[template "<name>"]:<line>:<message>`` form.

    Example:
        >>> format_diagnostic("page.lt", 3, "name 'x' is not defined")
        '[template "page.lt"]:3:name \\'x\\' is not defined'
    """
    line = "?" if template_line is None else str(template_line)
    return f'[template "{template_name}"]:{line}:{message}'


@dataclass(slots=True)
class LineMap:
    """Template-line records for one generated code unit.

    Attributes:
        records: ``(generated_line, template_line)`` pairs in emission order
        last_template_line: Template line the generator finished on
    """

    records: list[tuple[int, int]] = field(default_factory=list)
    last_template_line: int = 1

    def record(self, generated_line: int, template_line: int) -> None:
        """Record that ``template_line`` ended while emitting ``generated_line``."""
        self.records.append((generated_line, template_line))

    def shift(self, from_line: int) -> None:
        """Move records at or after ``from_line`` down by one generated line."""
        self.records = [
            (generated + 1 if generated >= from_line else generated, template_line)
            for generated, template_line in self.records
        ]

    def reset(self) -> None:
        self.records.clear()

    def template_line(self, generated_line: int) -> int:
        """Translate a 1-based generated line into a 1-based template line."""
        for recorded, template_line in self.records:
            if recorded >= generated_line:
                return template_line
        if self.records:
            return self.records[-1][1] + 1
        return self.last_template_line

    def __len__(self) -> int:
        return len(self.records)
