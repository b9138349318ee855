"""Template loaders for the Quill environment.

Loaders provide template source to the Environment. They implement
``get_source(name)`` returning a TemplateSource, and optionally
``get_version(name)`` returning a version token used to detect stale
registry entries.

Built-in Loaders:
- `FileSystemLoader`: Load from filesystem directories, first match wins
- `DictLoader`: Load from an in-memory dictionary (testing/embedded)
- `ChoiceLoader`: Try multiple loaders in order (override fallback)
- `FunctionLoader`: Wrap a callable as a loader (quick one-offs)

Custom Loaders:
Implement the Loader protocol:
    ```python
    class DatabaseLoader:
        def get_source(self, name: str) -> TemplateSource:
            row = db.query("SELECT source, updated FROM templates WHERE name = ?", name)
            if not row:
                raise TemplateNotFoundError(f"Template '{name}' not found")
            return TemplateSource(row.source, f"db://{name}", row.updated)

        def get_version(self, name: str) -> object | None:
            return db.query("SELECT updated FROM templates WHERE name = ?", name)
    ```

Versions:
A registry entry is stale when the loader reports a version different from
the one recorded at compile time. A loader that returns None cannot tell,
and its entries are never considered stale.

"""

from __future__ import annotations

import hashlib
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from difflib import get_close_matches
from pathlib import Path
from typing import Protocol, Union

from quill.environment.exceptions import SourceUnavailableError, TemplateNotFoundError


@dataclass(frozen=True, slots=True)
class TemplateSource:
    """Template text plus where it came from.

    Attributes:
        source: Template text
        filename: Path or pseudo-path for error messages
        version: Version token at load time (None if unknown)
    """

    source: str
    filename: str | None = None
    version: object | None = None


class Loader(Protocol):
    def get_source(self, name: str) -> TemplateSource: ...


def source_version(loader: Loader, name: str) -> object | None:
    """Current version token for ``name``, or None if the loader can't tell.

    Templates that have disappeared report None as well; the compile that
    follows surfaces the missing source.
    """
    get_version = getattr(loader, "get_version", None)
    if get_version is None:
        return None
    try:
        return get_version(name)
    except TemplateNotFoundError:
        return None


def _text_version(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class FileSystemLoader:
    """Load templates from filesystem directories.

    Directories are searched in order and the first matching file wins, so a
    leading override directory shadows the defaults:
        ```python
        loader = FileSystemLoader(["custom", "."])
        # custom/page.lt is used in place of ./page.lt when it exists
        ```

    The version token is the file's ``st_mtime_ns``.

    Raises:
        TemplateNotFoundError: Template not found in any search path
        SourceUnavailableError: File exists but could not be read
    """

    __slots__ = ("_encoding", "_paths")

    def __init__(
        self,
        paths: str | Path | list[str | Path],
        encoding: str = "utf-8",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._encoding = encoding

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def _find(self, name: str) -> Path:
        for base in self._paths:
            path = base / name
            if path.is_file():
                return path
        raise TemplateNotFoundError(
            f"Template '{name}' not found in: {', '.join(str(p) for p in self._paths)}"
        )

    def get_source(self, name: str) -> TemplateSource:
        path = self._find(name)
        try:
            version = os.stat(path).st_mtime_ns
            text = path.read_text(self._encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailableError(f"Cannot read template '{name}' from {path}: {e}") from e
        return TemplateSource(text, str(path), version)

    def get_version(self, name: str) -> int:
        """Modification time of the file ``name`` currently resolves to."""
        return os.stat(self._find(name)).st_mtime_ns

    def list_templates(self) -> list[str]:
        templates = set()
        for base in self._paths:
            if base.is_dir():
                for path in base.rglob("*"):
                    if path.is_file():
                        templates.add(path.relative_to(base).as_posix())
        return sorted(templates)


class DictLoader:
    """Load templates from an in-memory dictionary.

    The mapping is read on every call, so replacing an entry in it makes the
    compiled template stale. The version token is a digest of the text.

    Example:
            >>> loader = DictLoader({
            ...     "base.lt": "<html><%!block body%>base<%!endblock%></html>",
            ...     "page.lt": "<%!extends base.lt%><%!block body%>page<%!endblock%>",
            ... })
            >>> Environment(loader=loader).render("page.lt")
            '<html>page</html>'

    Raises:
        TemplateNotFoundError: Template name not in mapping
    """

    __slots__ = ("_mapping",)

    def __init__(self, mapping: Mapping[str, str]):
        self._mapping = mapping

    def get_source(self, name: str) -> TemplateSource:
        if name not in self._mapping:
            available = sorted(self._mapping.keys())
            msg = f"Template '{name}' not found"
            matches = get_close_matches(name, available, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            elif available:
                msg += f". Available: {', '.join(available[:10])}"
                if len(available) > 10:
                    msg += f" ... ({len(available)} total)"
            raise TemplateNotFoundError(msg)
        text = self._mapping[name]
        return TemplateSource(text, None, _text_version(text))

    def get_version(self, name: str) -> str | None:
        text = self._mapping.get(name)
        return None if text is None else _text_version(text)

    def list_templates(self) -> list[str]:
        return sorted(self._mapping.keys())


class ChoiceLoader:
    """Try multiple loaders in order, returning the first match.

    Example:
            >>> custom = DictLoader({"nav.lt": "<nav>Custom</nav>"})
            >>> default = DictLoader({"nav.lt": "<nav>Default</nav>", "footer.lt": "<footer/>"})
            >>> env = Environment(loader=ChoiceLoader([custom, default]))
            >>> env.render("nav.lt")
            '<nav>Custom</nav>'

    Raises:
        TemplateNotFoundError: No loader can find the template
    """

    __slots__ = ("_loaders",)

    def __init__(self, loaders: list[Loader]):
        self._loaders = loaders

    def get_source(self, name: str) -> TemplateSource:
        for loader in self._loaders:
            try:
                return loader.get_source(name)
            except TemplateNotFoundError:
                continue
        raise TemplateNotFoundError(
            f"Template '{name}' not found in any of {len(self._loaders)} loaders"
        )

    def get_version(self, name: str) -> object | None:
        for loader in self._loaders:
            version = source_version(loader, name)
            if version is not None:
                return version
        return None

    def list_templates(self) -> list[str]:
        templates: set[str] = set()
        for loader in self._loaders:
            if hasattr(loader, "list_templates"):
                templates.update(loader.list_templates())
        return sorted(templates)


LoadResult = Union[str, bytes, TemplateSource, tuple[str, Union[str, None]], None]


class FunctionLoader:
    """Wrap a callable as a template loader.

    The function takes a template name and returns:
        - ``str``: Template source (filename will be ``"<function>"``)
        - ``bytes``: UTF-8 encoded template source
        - ``tuple[str, str | None]``: ``(source, filename)``
        - ``TemplateSource``: used as is, including its version
        - ``None``: Template not found

    Versions come from the function's result, so a FunctionLoader only
    reports staleness when it returns TemplateSource objects with versions.

    Raises:
        TemplateNotFoundError: ``load_func`` returned None
        SourceUnavailableError: ``load_func`` returned bytes that are not UTF-8
    """

    __slots__ = ("_load_func",)

    def __init__(self, load_func: Callable[[str], LoadResult]):
        self._load_func = load_func

    def get_source(self, name: str) -> TemplateSource:
        result = self._load_func(name)

        if result is None:
            raise TemplateNotFoundError(f"Template '{name}' not found")
        if isinstance(result, TemplateSource):
            return result
        if isinstance(result, bytes):
            try:
                return TemplateSource(result.decode("utf-8"), "<function>")
            except UnicodeDecodeError as e:
                raise SourceUnavailableError(f"Cannot decode template '{name}': {e}") from e
        if isinstance(result, str):
            return TemplateSource(result, "<function>")

        source, filename = result
        return TemplateSource(source, filename)

    def get_version(self, name: str) -> object | None:
        result = self._load_func(name)
        if isinstance(result, TemplateSource):
            return result.version
        return None

    def list_templates(self) -> list[str]:
        """FunctionLoader cannot enumerate templates."""
        return []
