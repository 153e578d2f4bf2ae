"""rewriter.py - Splice Entering/Leaving statements into every function body.

The rewrite is a source-to-source transformation driven by one top-down
traversal of the module's ast:

    1. Every node is classified by ``matcher.classify``.
    2. For each matched function the traversal records ``SourceEdit`` objects
       against *original* offsets: an ``Entering`` statement and ``try:`` in
       front of the body, one extra indentation unit at the start of every
       body line, and ``finally:`` plus a ``Leaving`` statement after it.
    3. The edits of the whole module are applied once, in offset order, to the
       original text. Because nothing is rewritten in place, an outer
       function's body automatically carries its inner functions' rewritten
       text, and no edit invalidates another's positions.

A module rewritten this way computes exactly what the original does. The body
runs inside ``try/finally``, so the ``Leaving`` line is written on every way
out of the function, and results and exceptions pass through untouched.

Example:
    >>> print(rewrite_source("def f():\\n    return 1\\n"))  # doctest: +SKIP
    def f():
        __import__('tracehook.runtime').runtime.emit('Entering f')
        try:
            return 1
        finally:
            __import__('tracehook.runtime').runtime.emit('Leaving f')
"""

import ast
import logging
from typing import List

from .context import DepthCounter
from .matcher import FunctionExpression, NamedDefinition, classify, first_line
from .source import SourceTree

logger = logging.getLogger(__name__)

# Expression the injected statements use to reach the runtime module. It needs
# no name in the rewritten module's globals.
RUNTIME = "__import__('tracehook.runtime').runtime"

# Edits sharing an offset: closing text first (innermost function first),
# then opening text (outermost first), then indentation.
_CLOSE, _OPEN, _SHIFT = 0, 1, 2


class SourceEdit:
    """Replace ``source[start:end]`` with ``text``.

    A zero-width edit (``start == end``) is an insertion. ``order`` breaks ties
    between edits at the same offset.
    """

    __slots__ = ("start", "end", "text", "order")

    def __init__(self, start: int, end: int, text: str, order=(_OPEN, 0)) -> None:
        self.start = start
        self.end = end
        self.text = text
        self.order = order

    def __repr__(self) -> str:  # pragma: no cover
        return f"SourceEdit({self.start}, {self.end}, {self.text!r})"


def apply_edits(source: str, edits: List[SourceEdit]) -> str:
    """Apply ``edits`` to ``source`` in a single pass.

    Raises:
        ValueError: If two edits overlap.
    """
    out = []
    pos = 0
    for edit in sorted(edits, key=lambda e: (e.start, e.order)):
        if edit.start < pos:
            raise ValueError(f"overlapping edit at offset {edit.start}")
        out.append(source[pos:edit.start])
        out.append(edit.text)
        pos = edit.end
    out.append(source[pos:])
    return "".join(out)


class Rewriter:
    """Rewrites module source so every function reports entry and exit.

    Args:
        indent_unit: Text repeated ``depth`` times in front of each trace
            line. Defaults to two spaces.
        monotonic_depth: Count depth in visit order instead of nesting order
            (see context.py).
        trace_lambdas: Also instrument ``lambda`` expressions. Off by default.

    Example:
        >>> rw = Rewriter()
        >>> "Entering f" in rw.rewrite("def f():\\n    pass\\n")
        True
    """

    def __init__(
        self,
        indent_unit: str = "  ",
        monotonic_depth: bool = False,
        trace_lambdas: bool = False,
    ) -> None:
        self.indent_unit = indent_unit
        self.monotonic_depth = monotonic_depth
        self.trace_lambdas = trace_lambdas

    def rewrite(self, source: str, filename: str = "<unknown>") -> str:
        """Return ``source`` with trace statements spliced into each function.

        Depth restarts at zero on every call. A module without any matched
        function comes back unchanged.

        Args:
            source: Module source text.
            filename: File identifier, used only for syntax errors and logs.

        Raises:
            SyntaxError: If ``source`` does not parse.
        """
        text = source
        if text and not text.endswith(("\n", "\r")):
            text += "\n"

        tree = SourceTree(text, filename)
        rewrite_pass = _RewritePass(self, tree)
        rewrite_pass.visit(tree.tree)

        if not rewrite_pass.edits:
            return source
        logger.debug("instrumented %d function(s) in %s", rewrite_pass.count, filename)
        return apply_edits(text, rewrite_pass.edits)

    def entering(self, name: str, depth: int) -> str:
        return f"{self.indent_unit * depth}Entering {name}"

    def leaving(self, name: str, depth: int) -> str:
        return f"{self.indent_unit * depth}Leaving {name}"


def rewrite_source(source: str, filename: str = "<unknown>", **options) -> str:
    """Shortcut for ``Rewriter(**options).rewrite(source, filename)``."""
    return Rewriter(**options).rewrite(source, filename)


def _statement(line: str) -> str:
    return f"{RUNTIME}.emit({line!r})"


class _RewritePass(ast.NodeVisitor):
    """One traversal of one module; collects the edits for it."""

    def __init__(self, rewriter: Rewriter, tree: SourceTree) -> None:
        self.rewriter = rewriter
        self.tree = tree
        self.depth = DepthCounter(monotonic=rewriter.monotonic_depth)
        self.edits: List[SourceEdit] = []
        self.count = 0
        # Indentation units added by the enclosing rewritten functions.
        self._prefixes: List[str] = []

    # ---------------------------------------------------------------------- #
    # Traversal
    # ---------------------------------------------------------------------- #

    def visit_FunctionDef(self, node) -> None:
        match = classify(self.tree, node, self.depth.get_depth())
        if not isinstance(match, NamedDefinition):
            self.generic_visit(node)
            return

        # Decorators, defaults and annotations run outside the function.
        self._visit_fields(node, skip="body")
        unit = self._rewrite_definition(match)
        self._descend(node.body, unit)

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> None:
        match = classify(self.tree, node, self.depth.get_depth())
        if not self.rewriter.trace_lambdas or not isinstance(match, FunctionExpression):
            self.generic_visit(node)
            return

        self._visit_fields(node, skip="body")
        self._rewrite_expression(match)
        self._descend([node.body], "")

    def _descend(self, children, unit: str) -> None:
        self.depth.increase_depth()
        self._prefixes.append(unit)
        for child in children:
            self.visit(child)
        self._prefixes.pop()
        self.depth.decrease_depth()

    def _visit_fields(self, node: ast.AST, skip: str) -> None:
        for name, value in ast.iter_fields(node):
            if name == skip:
                continue
            if isinstance(value, list):
                for item in value:
                    if isinstance(item, ast.AST):
                        self.visit(item)
            elif isinstance(value, ast.AST):
                self.visit(value)

    # ---------------------------------------------------------------------- #
    # Edits
    # ---------------------------------------------------------------------- #

    def _insert(self, offset: int, text: str, order) -> None:
        self.edits.append(SourceEdit(offset, offset, text, order))

    def _rewrite_definition(self, match: NamedDefinition) -> str:
        """Record the edits for one ``def``.

        Returns:
            The indentation unit added to the body's lines, or ``""`` when the
            body is not re-indented.
        """
        tree = self.tree
        node = match.node
        level = len(self._prefixes)
        opening = (_OPEN, level)
        closing = (_CLOSE, -level)

        def_indent = tree.indent_of(node.lineno)
        first = node.body[0]
        inline = not tree.at_line_start(first)
        if inline:
            # def f(): return 1
            unit = "\t" if "\t" in def_indent else "    "
            indent = def_indent + unit
        else:
            indent = tree.indent_of(first_line(first))
            if indent.startswith(def_indent) and len(indent) > len(def_indent):
                unit = indent[len(def_indent):]
            else:
                unit = "\t" if "\t" in indent else "    "

        pad = "".join(self._prefixes) + indent
        enter = _statement(self.rewriter.entering(match.name, match.depth))
        leave = _statement(self.rewriter.leaving(match.name, match.depth))
        self.count += 1

        docstring = match.docstring
        if docstring is not None and inline:
            self._insert(tree.start(docstring), "\n" + pad, opening)

        if match.is_empty:
            if match.statements:
                stmt = match.statements[0]
                lead = "" if tree.at_line_start(stmt) else "\n" + pad
                self.edits.append(
                    SourceEdit(
                        tree.start(stmt),
                        tree.end(stmt),
                        f"{lead}{enter}\n{pad}{leave}",
                        opening,
                    )
                )
            else:
                self._insert(tree.end(docstring), f"\n{pad}{enter}\n{pad}{leave}", opening)
            return ""

        head = match.statements[0]
        last = match.statements[-1]

        if not tree.at_line_start(head):
            self._insert(
                tree.start(head),
                f"\n{pad}{enter}\n{pad}try:\n{pad}{unit}",
                opening,
            )
            self._insert(tree.end(last), f"\n{pad}finally:\n{pad}{unit}{leave}", closing)
            return ""

        start_line = first_line(head)
        self._insert(tree.line_start(start_line), f"{pad}{enter}\n{pad}try:\n", opening)

        strings = tree.string_lines()
        for lineno in range(start_line, last.end_lineno + 1):
            if lineno in strings or tree.is_blank(lineno):
                continue
            self._insert(tree.shift_point(lineno), unit, (_SHIFT, 0))

        self._insert(
            tree.line_start(last.end_lineno + 1),
            f"{pad}finally:\n{pad}{unit}{leave}\n",
            closing,
        )
        return unit

    def _rewrite_expression(self, match: FunctionExpression) -> None:
        level = len(self._prefixes)
        enter = self.rewriter.entering(match.name, match.depth)
        leave = self.rewriter.leaving(match.name, match.depth)
        self.count += 1

        self._insert(
            self.tree.start(match.body),
            f"{RUNTIME}.emit_through({leave!r}, ({RUNTIME}.emit({enter!r}), (",
            (_OPEN, level),
        )
        self._insert(self.tree.end(match.body), "))[1])", (_CLOSE, -level))
