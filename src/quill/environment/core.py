"""Quill Environment — the host binding for compiling and rendering templates.

The Environment owns the configuration (loader, escape mode, debug line
maps), the registry of compiled templates and the per-name compile locks.

Compile:
    ``env.compile(name)`` brings ``name`` and everything it includes or
    extends up to date. Compiling an unchanged template again does nothing.

Render:
    ``env.render(name, **variables)`` compiles if needed and returns the
    output; ``env.render_into(render_env, name)`` writes into the sink of an
    existing RenderEnvironment.

Thread-Safety:
Registry reads are lock-free. Compiles of the same name are serialized; the
lock table itself is guarded by a lock. Published CompiledTemplates are
immutable, and each render gets its own RenderEnvironment.

"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from quill.compiler.units import GeneratedTemplate
from quill.dispatch import render_template
from quill.environment.exceptions import TemplateError, TemplateNotFoundError
from quill.environment.loaders import Loader
from quill.environment.registry import TemplateRegistry
from quill.environment.resolver import DependencyResolver
from quill.escape import EscapeMode
from quill.executor import Executor, PythonExecutor
from quill.render_environment import RenderEnvironment, Sink
from quill.template import CompiledTemplate

logger = logging.getLogger(__name__)


class Environment:
    """Central configuration and cache for Quill templates.

    Example:
            >>> env = Environment(loader=DictLoader({"hello.lt": "Hello, <%= name %>!"}))
            >>> env.render("hello.lt", name="World")
            'Hello, World!'

    Attributes:
        loader: Template source provider (None: nothing can be compiled)
        debug: Generate line maps so errors report template lines
        escape: Initial escape mode of every compiled template
        max_render_depth: Maximum nesting of render_template calls
        executor: Loads generated code units
        registry: Compiled templates by name
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        debug: bool = False,
        escape: EscapeMode | str = EscapeMode.NONE,
        max_render_depth: int = 50,
        executor: Executor | None = None,
        registry: TemplateRegistry | None = None,
    ):
        if isinstance(escape, str):
            escape = EscapeMode.from_keyword(escape)
        if max_render_depth < 1:
            raise ValueError(f"max_render_depth must be positive, got {max_render_depth}")
        self.loader = loader
        self.debug = debug
        self.escape = escape
        self.max_render_depth = max_render_depth
        self.executor = executor if executor is not None else PythonExecutor()
        self.registry = registry if registry is not None else TemplateRegistry()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_lock = threading.Lock()

    def _resolver(self) -> DependencyResolver:
        if self.loader is None:
            raise TemplateNotFoundError("No loader configured for this environment")
        return DependencyResolver(
            self.loader,
            self.registry,
            self.executor,
            escape=self.escape,
            debug=self.debug,
        )

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_lock:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    # -- compile --------------------------------------------------------------

    def generate(self, name: str) -> GeneratedTemplate:
        """Generate the code units for ``name`` without compiling or publishing.

        Raises:
            TemplateNotFoundError: No loader has the template
            TemplateSyntaxError: The template failed to generate
        """
        return self._resolver().generate(name)

    def compile(self, name: str) -> None:
        """Compile ``name`` and its dependencies, recompiling stale entries.

        Raises:
            TemplateNotFoundError: A template source could not be found
            TemplateSyntaxError: A template failed to generate
            CodeGenerationError: The executor rejected a generated unit
            CircularDependencyError: include/extends chain leads back to itself
        """
        resolver = self._resolver()
        with self._lock_for(name):
            compiled = resolver.resolve(name)
        if compiled:
            logger.debug("compiled %s: %s", name, ", ".join(compiled))

    def get_template(self, name: str) -> CompiledTemplate:
        """Return the current CompiledTemplate for ``name``, compiling as needed.

        A published entry is returned as is unless it, or anything it
        includes or extends, has gone stale or been evicted.
        """
        resolver = self._resolver()
        return self.registry.get_or_compile(name, self.compile, resolver.is_outdated)

    def is_current(self, name: str) -> bool:
        """True if ``name`` is compiled and its source has not changed since."""
        entry = self.registry.get(name)
        if entry is None:
            return False
        if self.loader is None:
            return True
        return not self._resolver().is_stale(entry)

    def invalidate(self, name: str) -> bool:
        """Drop ``name`` from the registry. Returns True if it was compiled."""
        return self.registry.evict(name)

    def clear(self) -> None:
        """Drop every compiled template."""
        self.registry.clear()

    # -- render ---------------------------------------------------------------

    def render_environment(
        self,
        sink: Sink | None = None,
        variables: Mapping[str, Any] | None = None,
    ) -> RenderEnvironment:
        """Create a RenderEnvironment over the current registry.

        Without a sink, output goes to ``sys.stdout``.
        """
        return RenderEnvironment(
            self.registry.snapshot(),
            sink,
            variables,
            max_depth=self.max_render_depth,
        )

    def render_into(self, env: RenderEnvironment, name: str) -> None:
        """Render ``name`` into ``env``'s sink.

        ``name`` must already be compiled.

        Raises:
            TemplateRuntimeError: A procedure failed, or ``name`` is not compiled
        """
        try:
            render_template(env, name)
        except TemplateError:
            raise
        except Exception as e:
            raise env.enhance_error(e) from e

    def render(self, name: str, /, *args: Any, **kwargs: Any) -> str:
        """Compile ``name`` if needed and return its output.

        Variables are passed as a single dict, keyword arguments, or both:
            >>> env.render("page.lt", {"title": "Home"}, user=user)

        ``name`` is positional-only, so a render variable may be called
        ``name`` too.

        Raises:
            TypeError: More than one positional argument, or a non-dict one
        """
        variables: dict[str, Any] = {}
        if args:
            if len(args) == 1 and isinstance(args[0], Mapping):
                variables.update(args[0])
            else:
                raise TypeError(
                    f"render() takes at most 1 positional argument (a dict), got {len(args)}"
                )
        variables.update(kwargs)

        self.get_template(name)
        buffer: list[str] = []
        self.render_into(self.render_environment(buffer.append, variables), name)
        return "".join(buffer)
