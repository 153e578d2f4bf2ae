"""matcher.py - Classify ast nodes as traceable functions.

Each node the rewriter visits is classified once into one of three shapes:

    NamedDefinition     A ``def`` / ``async def`` statement. The name is read
                        from the header text, right after the ``def`` keyword.
    FunctionExpression  A ``lambda``. Its name comes from the binding that
                        encloses it (``name = lambda: ...``); anonymous
                        lambdas keep an empty name.
    Unmatched           Everything else, including methods defined directly
                        in a class body and lambdas inside f-strings.

The rewriter dispatches on the shape; unmatched nodes are skipped without
complaint.
"""

import ast
import re
from typing import List, Optional

from .source import SourceTree

_DEF_NAME = re.compile(r"(?:async\s+)?def\s+(\w+)")
_SCOPES = (ast.Module, ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)


class Unmatched:
    """A node that is not a traceable function."""

    __slots__ = ("node",)

    def __init__(self, node: ast.AST) -> None:
        self.node = node


class NamedDefinition:
    """A ``def`` statement together with the pieces needed to rewrite it.

    Attributes:
        node: The ``FunctionDef`` / ``AsyncFunctionDef`` node.
        name (str): Function name as written after ``def``.
        depth (int): Value of the rewriter's depth counter at visit time.
        header (str): Source from the ``def`` keyword up to the first body
            statement (decorators excluded).
        body_text (str): Source from the first body statement to the end of
            the last one.
        docstring: The docstring ``Expr`` node, or None.
        statements (list): Body statements after the docstring.
        is_empty (bool): True when ``statements`` is empty or a lone ``pass``.
    """

    __slots__ = (
        "node",
        "name",
        "depth",
        "header",
        "body_text",
        "docstring",
        "statements",
        "is_empty",
    )

    def __init__(self, node, name, depth, header, body_text, docstring, statements):
        self.node = node
        self.name = name
        self.depth = depth
        self.header = header
        self.body_text = body_text
        self.docstring = docstring
        self.statements = statements
        self.is_empty = not statements or (
            len(statements) == 1 and isinstance(statements[0], ast.Pass)
        )


class FunctionExpression:
    """A ``lambda`` and the name it is bound to (possibly empty)."""

    __slots__ = ("node", "name", "depth", "body")

    def __init__(self, node: ast.Lambda, name: str, depth: int) -> None:
        self.node = node
        self.name = name
        self.depth = depth
        self.body = node.body


def first_line(stmt: ast.stmt) -> int:
    """Line on which ``stmt`` starts, counting its decorators."""
    decorators = getattr(stmt, "decorator_list", None) or []
    return min([stmt.lineno] + [d.lineno for d in decorators])


def _docstring(body: List[ast.stmt]) -> Optional[ast.stmt]:
    first = body[0]
    if (
        isinstance(first, ast.Expr)
        and isinstance(first.value, ast.Constant)
        and isinstance(first.value.value, str)
    ):
        return first
    return None


def _binding_name(tree: SourceTree, node: ast.Lambda) -> str:
    parent = tree.parent(node)
    if isinstance(parent, ast.Assign) and parent.value is node:
        targets = parent.targets
        if len(targets) == 1 and isinstance(targets[0], ast.Name):
            return targets[0].id
    elif isinstance(parent, (ast.AnnAssign, ast.NamedExpr)) and parent.value is node:
        if isinstance(parent.target, ast.Name):
            return parent.target.id
    return ""


def _enclosing_scope(tree: SourceTree, node: ast.AST) -> Optional[ast.AST]:
    for ancestor in tree.ancestors(node):
        if isinstance(ancestor, _SCOPES):
            return ancestor
    return None


def _classify_definition(tree: SourceTree, node, depth: int) -> NamedDefinition:
    body = node.body
    start = tree.start(node)
    body_start = tree.start(body[0])
    header = tree.source[start:body_start]

    match = _DEF_NAME.match(header)
    name = match.group(1) if match else node.name

    docstring = _docstring(body)
    statements = body[1:] if docstring is not None else list(body)
    body_text = tree.source[body_start:tree.end(body[-1])]
    return NamedDefinition(node, name, depth, header, body_text, docstring, statements)


def classify(tree: SourceTree, node: ast.AST, depth: int = 0):
    """Classify ``node`` as a traceable function shape.

    Args:
        tree: The SourceTree that owns ``node``.
        node: Any node of ``tree``.
        depth: The rewriter's depth counter at the time of the visit; it is
            stored on the match as-is.

    Returns:
        A NamedDefinition, FunctionExpression or Unmatched instance.
    """
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        if isinstance(_enclosing_scope(tree, node), ast.ClassDef):
            return Unmatched(node)
        return _classify_definition(tree, node, depth)

    if isinstance(node, ast.Lambda):
        # Positions inside f-strings are unreliable before Python 3.12.
        if any(isinstance(a, ast.JoinedStr) for a in tree.ancestors(node)):
            return Unmatched(node)
        return FunctionExpression(node, _binding_name(tree, node), depth)

    return Unmatched(node)
