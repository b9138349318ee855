"""Quill — a template compiler with block inheritance, includes and escaping.

Templates are text with embedded tags. Each template compiles into Python
procedures: a ``main`` that renders the template top to bottom, and one
procedure per named block. Derived templates override blocks of their
ancestors without the ancestor's code changing.

Quickstart:
    >>> from quill import DictLoader, Environment
    >>> env = Environment(loader=DictLoader({"hello.lt": "Hello, <%= name %>!"}))
    >>> env.render("hello.lt", name="World")
    'Hello, World!'

Inheritance:
    >>> env = Environment(loader=DictLoader({
    ...     "base.lt": "<title><%!block title%>Site<%!endblock%></title>",
    ...     "page.lt": "<%!extends base.lt%><%!block title%>Page<%!endblock%>",
    ... }))
    >>> env.render("page.lt")
    '<title>Page</title>'

Architecture:
Template Source → CodeGenerator → code units (Python source) → Executor → Registry

Pipeline stages:
1. **CodeGenerator**: single-pass state machine producing a "blocks" unit and
   a "body" unit plus the include/extends dependencies
2. **DependencyResolver**: compiles the template and its dependencies,
   detecting cycles, and publishes them to the registry in one swap
3. **Dispatch**: ``render_template``/``render_block`` follow the extends
   chain at render time so the most derived block definition wins

Debug Mode:
``Environment(debug=True)`` records line maps; errors then report template
lines as ``[template "<name>"]:<line>:<message>``.

"""

# Environment first: the compiler imports its exceptions from there.
from quill.environment import (
    ChoiceLoader,
    CircularDependencyError,
    CodeGenerationError,
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FunctionLoader,
    SourceSnippet,
    SourceUnavailableError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRegistry,
    TemplateRuntimeError,
    TemplateSource,
    TemplateSyntaxError,
    build_source_snippet,
)
from quill.compiler import CodeGenerator, CodeUnit, GeneratedTemplate, generate
from quill.debug import LineMap, format_diagnostic
from quill.dispatch import render_block, render_template
from quill.escape import EscapeMode, escape
from quill.executor import PythonExecutor
from quill.render_environment import RenderEnvironment
from quill.template import CompiledTemplate

__version__ = "0.1.0"

__all__ = [
    "ChoiceLoader",
    "CircularDependencyError",
    "CodeGenerationError",
    "CodeGenerator",
    "CodeUnit",
    "CompiledTemplate",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "EscapeMode",
    "FileSystemLoader",
    "FunctionLoader",
    "GeneratedTemplate",
    "LineMap",
    "PythonExecutor",
    "RenderEnvironment",
    "SourceSnippet",
    "SourceUnavailableError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRegistry",
    "TemplateRuntimeError",
    "TemplateSource",
    "TemplateSyntaxError",
    "__version__",
    "build_source_snippet",
    "escape",
    "format_diagnostic",
    "generate",
    "render_block",
    "render_template",
]
