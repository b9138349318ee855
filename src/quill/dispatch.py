"""Inheritance dispatch shared by every generated procedure.

``render_template(env, name)`` follows the ``extends`` chain from ``name``
to its root and runs the root's ``main`` with ``name`` as the leaf. The root
renders each block in place through ``render_block(env, leaf, block)``,
which walks the chain again from the leaf and runs the first definition it
finds, so the most derived override wins:

    ```
    page.lt ──extends──► layout.lt ──extends──► base.lt (main)
    render_block(env, "page.lt", "title")
        page.lt has "title"?    yes → run it
        layout.lt has "title"?  ...
        base.lt has "title"?    ...
        none                    → nothing is rendered
    ```

Chains are followed with an explicit loop over parent names; nothing is
shared between renders.

"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from quill.environment.exceptions import (
    CircularDependencyError,
    ErrorCode,
    TemplateRuntimeError,
)

if TYPE_CHECKING:
    from quill.render_environment import RenderEnvironment
    from quill.template import CompiledTemplate


def _lookup(env: RenderEnvironment, name: str) -> CompiledTemplate:
    entry = env.registry.get(name)
    if entry is None:
        raise TemplateRuntimeError(
            f"Template '{name}' is not compiled",
            template_name=env.current_template,
            suggestion=(
                "Compile it before rendering, or reference it with "
                "<%!include%> / <%!extends%> so it compiles as a dependency"
            ),
            code=ErrorCode.TEMPLATE_NOT_COMPILED,
        )
    return entry


def _chain(env: RenderEnvironment, leaf: str) -> Iterator[CompiledTemplate]:
    """Yield ``leaf`` and its ancestors, most derived first."""
    seen: list[str] = []
    name: str | None = leaf
    while name is not None:
        if name in seen:
            raise CircularDependencyError(seen[seen.index(name) :] + [name])
        seen.append(name)
        entry = _lookup(env, name)
        yield entry
        name = entry.extends


def render_template(env: RenderEnvironment, name: str) -> None:
    """Render ``name`` into ``env.sink``."""
    with env.rendering(name):
        root = None
        for root in _chain(env, name):
            pass
        if root is not None and root.main is not None:
            env.call(root.main, name)


def render_block(env: RenderEnvironment, leaf: str, block: str) -> None:
    """Render the most derived definition of ``block`` for ``leaf``, if any."""
    for entry in _chain(env, leaf):
        procedure = entry.blocks.get(block)
        if procedure is not None:
            env.call(procedure)
            return
