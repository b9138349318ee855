"""Compiled templates as stored in the registry."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from quill.compiler.units import BLOCKS, CodeUnit, GeneratedTemplate
from quill.executor import Executor


@dataclass(frozen=True, slots=True)
class CompiledTemplate:
    """A template whose units have been loaded by an executor.

    Instances are immutable and shared between threads through the registry.

    Attributes:
        name: Template name
        main: ``main(env, leaf_name)`` procedure, None for extending templates
        blocks: Block name → ``block(env)`` procedure, read-only
        extends: Parent template name, if any
        dependencies: include/extends targets in encounter order
        source_version: Loader version token at compile time (None if unknown)
        units: Generated code units, blocks first
        source: Template source, kept for error snippets
        filename: Source filename reported by the loader
    """

    name: str
    main: Callable[..., Any] | None
    blocks: Mapping[str, Callable[..., Any]]
    extends: str | None
    dependencies: tuple[str, ...]
    source_version: object | None = None
    units: tuple[CodeUnit, ...] = ()
    source: str | None = None
    filename: str | None = None


def assemble(
    generated: GeneratedTemplate,
    executor: Executor,
    *,
    source: str | None = None,
    source_version: object | None = None,
    filename: str | None = None,
) -> CompiledTemplate:
    """Load both units of ``generated`` and bundle them as a CompiledTemplate.

    The blocks unit runs first, filling ``blocks``; the body unit then
    defines ``main``.

    Raises:
        CodeGenerationError: The executor rejected a unit
    """
    namespace: dict[str, Any] = {BLOCKS: {}}
    executor.load(generated.blocks, namespace)
    executor.load(generated.body, namespace)
    return CompiledTemplate(
        name=generated.name,
        main=namespace.get("main"),
        blocks=MappingProxyType(dict(namespace[BLOCKS])),
        extends=generated.extends,
        dependencies=generated.dependencies,
        source_version=source_version,
        units=generated.units,
        source=source,
        filename=filename,
    )
