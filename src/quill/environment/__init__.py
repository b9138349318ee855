"""Environment, loaders, registry and exceptions for Quill."""

from quill.environment.exceptions import (
    CircularDependencyError,
    CodeGenerationError,
    ErrorCode,
    SourceSnippet,
    SourceUnavailableError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    build_source_snippet,
)
from quill.environment.loaders import (
    ChoiceLoader,
    DictLoader,
    FileSystemLoader,
    FunctionLoader,
    Loader,
    TemplateSource,
)
from quill.environment.registry import TemplateRegistry
from quill.environment.resolver import DependencyResolver
from quill.environment.core import Environment

__all__ = [
    "ChoiceLoader",
    "CircularDependencyError",
    "CodeGenerationError",
    "DependencyResolver",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "FunctionLoader",
    "Loader",
    "SourceSnippet",
    "SourceUnavailableError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRegistry",
    "TemplateRuntimeError",
    "TemplateSource",
    "TemplateSyntaxError",
    "build_source_snippet",
]
