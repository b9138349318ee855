"""Dependency resolution for template compiles.

Compiling a template means compiling everything it includes or extends, and
everything those reference in turn. The resolver walks that graph depth
first, keeping the chain of templates currently being resolved on an active
stack:

- a name already on the stack is a cycle (``a -> b -> a``, or ``a -> a``)
- a name already staged in this compile is done
- a name in the registry with a current source version is only walked, to
  catch cycles through it, and not recompiled
- anything else is loaded, generated, executed and staged

Staged templates are published to the registry in a single swap once the
whole graph has resolved. Any error leaves the registry untouched.

"""

from __future__ import annotations

import logging

from quill.compiler.core import CodeGenerator
from quill.compiler.units import GeneratedTemplate
from quill.environment.exceptions import CircularDependencyError
from quill.environment.loaders import Loader, TemplateSource, source_version
from quill.environment.registry import TemplateRegistry
from quill.escape import EscapeMode
from quill.executor import Executor
from quill.template import CompiledTemplate, assemble

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Resolve and compile a template together with its dependencies.

    Attributes:
        loader: Source of template text and version tokens
        registry: Where resolved templates are published
        executor: Loads generated units
        escape: Initial escape mode of every generated template
        debug: Generate line maps
    """

    __slots__ = ("debug", "escape", "executor", "loader", "registry")

    def __init__(
        self,
        loader: Loader,
        registry: TemplateRegistry,
        executor: Executor,
        *,
        escape: EscapeMode = EscapeMode.NONE,
        debug: bool = False,
    ):
        self.loader = loader
        self.registry = registry
        self.executor = executor
        self.escape = escape
        self.debug = debug

    def is_stale(self, entry: CompiledTemplate) -> bool:
        current = source_version(self.loader, entry.name)
        if current is None or current == entry.source_version:
            return False
        logger.debug("%s is stale", entry.name)
        return True

    def is_outdated(self, entry: CompiledTemplate) -> bool:
        """True if ``entry`` or any template it reaches needs compiling.

        A dependency missing from the registry counts as outdated.
        """
        pending = [entry]
        seen = {entry.name}
        while pending:
            current = pending.pop()
            if self.is_stale(current):
                return True
            for dependency in current.dependencies:
                if dependency in seen:
                    continue
                seen.add(dependency)
                found = self.registry.get(dependency)
                if found is None:
                    return True
                pending.append(found)
        return False

    def resolve(self, name: str) -> dict[str, CompiledTemplate]:
        """Bring ``name`` and its transitive dependencies up to date.

        Returns:
            The templates that were (re)compiled, already published

        Raises:
            TemplateNotFoundError: A template source could not be found
            TemplateSyntaxError: A template failed to generate
            CodeGenerationError: The executor rejected a unit
            CircularDependencyError: A dependency leads back onto the stack
        """
        staged: dict[str, CompiledTemplate] = {}
        self._visit(name, [], staged, set())
        self.registry.publish(staged)
        return staged

    def _visit(
        self,
        name: str,
        stack: list[str],
        staged: dict[str, CompiledTemplate],
        walked: set[str],
    ) -> None:
        if name in stack:
            raise CircularDependencyError(stack[stack.index(name) :] + [name])
        if name in staged or name in walked:
            return

        entry = self.registry.get(name)
        if entry is not None and not self.is_stale(entry):
            walked.add(name)
            self._visit_all(name, entry.dependencies, stack, staged, walked)
            return

        compiled = self.compile_one(name)
        self._visit_all(name, compiled.dependencies, stack, staged, walked)
        staged[name] = compiled

    def _visit_all(
        self,
        name: str,
        dependencies: tuple[str, ...],
        stack: list[str],
        staged: dict[str, CompiledTemplate],
        walked: set[str],
    ) -> None:
        stack.append(name)
        try:
            for dependency in dependencies:
                self._visit(dependency, stack, staged, walked)
        finally:
            stack.pop()

    def load(self, name: str) -> TemplateSource:
        return self.loader.get_source(name)

    def generate(self, name: str, source: TemplateSource | None = None) -> GeneratedTemplate:
        """Generate the code units for ``name`` without executing them."""
        if source is None:
            source = self.load(name)
        generator = CodeGenerator(
            name, escape=self.escape, debug=self.debug, filename=source.filename
        )
        generated = generator.generate(source.source)
        for unit in generated.units:
            logger.debug("%s unit of %s:\n%s", unit.kind, name, unit.source)
        return generated

    def compile_one(self, name: str) -> CompiledTemplate:
        """Load, generate and execute ``name`` alone. Nothing is published."""
        logger.debug("processing template %s", name)
        source = self.load(name)
        version = source.version
        if version is None:
            version = source_version(self.loader, name)
        return assemble(
            self.generate(name, source),
            self.executor,
            source=source.source,
            source_version=version,
            filename=source.filename,
        )
