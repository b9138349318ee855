"""Render-scope analysis for generated procedures.

Names bound by plain statements in code tags (``x = ...``, ``x += ...``,
``def f``, ``class C``, ``import m``) belong to the render environment rather
than to the procedure that happens to contain them, so a block or an included
template sees what the body assigned. The generator declares them ``global``
at the top of each procedure; the render environment's globals dict is the
shared scope.

Loop targets, ``with ... as`` and ``except ... as`` names, annotated
assignments and walrus targets stay local to the procedure.
"""

from __future__ import annotations

import ast


class AssignedNames(ast.NodeVisitor):
    """Collect names a function body binds at its own scope level.

    Nested functions, classes, lambdas and comprehensions are not entered:
    their bodies have scopes of their own.
    """

    def __init__(self) -> None:
        self.names: list[str] = []
        # Annotated names cannot be declared global
        self.annotated: set[str] = set()

    def _add(self, name: str) -> None:
        if name not in self.names:
            self.names.append(name)

    def _add_targets(self, target: ast.AST) -> None:
        if isinstance(target, ast.Name):
            self._add(target.id)
        elif isinstance(target, (ast.Tuple, ast.List)):
            for element in target.elts:
                self._add_targets(element)
        elif isinstance(target, ast.Starred):
            self._add_targets(target.value)

    def visit_Assign(self, node: ast.Assign) -> None:
        for target in node.targets:
            self._add_targets(target)
        self.visit(node.value)

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        self._add_targets(node.target)
        self.visit(node.value)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        if isinstance(node.target, ast.Name):
            self.annotated.add(node.target.id)
        if node.value is not None:
            self.visit(node.value)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._add(node.name)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._add(node.name)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self._add(alias.asname or alias.name.partition(".")[0])

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name != "*":
                self._add(alias.asname or alias.name)

    def visit_Lambda(self, node: ast.Lambda) -> None:
        pass

    def visit_ListComp(self, node: ast.AST) -> None:
        pass

    visit_SetComp = visit_DictComp = visit_GeneratorExp = visit_ListComp


def assigned_names(procedure: str) -> list[str]:
    """Names the procedure defined by ``procedure`` binds for the render scope.

    ``procedure`` is the source of a single ``def``. Parameters are excluded.
    Source that does not parse yields no names; the executor reports the
    syntax error with its template line.
    """
    try:
        tree = ast.parse(procedure)
    except (SyntaxError, ValueError):
        return []
    function = tree.body[0]
    if not isinstance(function, ast.FunctionDef):
        return []

    collector = AssignedNames()
    for statement in function.body:
        collector.visit(statement)
    parameters = {arg.arg for arg in function.args.args}
    declared = {
        name
        for node in ast.walk(function)
        if isinstance(node, ast.Nonlocal)
        for name in node.names
    }
    excluded = parameters | declared | collector.annotated
    return [name for name in collector.names if name not in excluded]
