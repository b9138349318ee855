"""Quill code generator: template source → Python code units."""

from quill.compiler.builder import CodeBuilder
from quill.compiler.core import CodeGenerator, State, generate
from quill.compiler.units import BLOCKS, BODY, CodeUnit, GeneratedTemplate

__all__ = [
    "BLOCKS",
    "BODY",
    "CodeBuilder",
    "CodeGenerator",
    "CodeUnit",
    "GeneratedTemplate",
    "State",
    "generate",
]
