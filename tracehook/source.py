"""source.py - Read-only view over a parsed module for text-range editing.

SourceTree wraps ``ast.parse`` with the bookkeeping the rewriter needs to turn
node positions into offsets of the original text:

    Line table:     Start offset of every physical line, split the same way
                    the tokenizer splits them (``\\n``, ``\\r\\n``, ``\\r``), so
                    form feeds and other exotic separators never shift lines.

    Offsets:        ``ast`` reports columns as UTF-8 byte offsets. ``offset()``
                    converts (lineno, col_offset) pairs into character offsets
                    of the source string.

    Parent links:   Built once at parse time. The tree itself is never
                    mutated; edits are collected separately and applied in one
                    pass (see rewriter.py).

    String lines:   Lines that begin inside a multi-line string literal. These
                    must never be re-indented, or the string's value changes.
"""

import ast
import re
from typing import Dict, List, Optional, Set

_LINE_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+$")
_INDENT_RE = re.compile(r"[ \t\f]*")
_STRING_NODES = tuple(
    cls
    for cls in (ast.Constant, ast.JoinedStr, getattr(ast, "TemplateStr", None))
    if cls is not None
)


def split_lines(source: str) -> List[str]:
    """Split ``source`` into physical lines, keeping line endings."""
    return _LINE_RE.findall(source)


class SourceTree:
    """A parsed module together with its original text.

    Attributes:
        source (str): The exact text that was parsed.
        filename (str): File identifier used for syntax errors.
        tree (ast.Module): The parsed module.

    Example:
        >>> st = SourceTree("def f():\\n    return 1\\n")
        >>> fn = st.tree.body[0]
        >>> st.segment(fn.body[0])
        'return 1'
    """

    def __init__(self, source: str, filename: str = "<unknown>") -> None:
        self.source = source
        self.filename = filename
        self.tree = ast.parse(source, filename)
        self._lines = split_lines(source)

        self._starts: List[int] = []
        pos = 0
        for line in self._lines:
            self._starts.append(pos)
            pos += len(line)

        self._parents: Dict[ast.AST, ast.AST] = {}
        for parent in ast.walk(self.tree):
            for child in ast.iter_child_nodes(parent):
                self._parents[child] = parent

        self._string_lines: Optional[Set[int]] = None

    # ---------------------------------------------------------------------- #
    # Lines
    # ---------------------------------------------------------------------- #

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, lineno: int) -> str:
        """Return physical line ``lineno`` (1-based) including its ending."""
        if 1 <= lineno <= len(self._lines):
            return self._lines[lineno - 1]
        return ""

    def line_start(self, lineno: int) -> int:
        """Return the offset where line ``lineno`` begins.

        Lines past the end of the text map to ``len(source)`` so that
        insertions "after the last line" land at the end of the buffer.
        """
        if lineno > len(self._lines):
            return len(self.source)
        return self._starts[lineno - 1]

    def indent_of(self, lineno: int) -> str:
        """Return the leading whitespace of a line, without form feeds."""
        return _INDENT_RE.match(self.line(lineno)).group().replace("\f", "")

    def shift_point(self, lineno: int) -> int:
        """Offset at which extra indentation can be inserted into a line.

        The tokenizer resets the column count at a form feed, so indentation
        added in front of one would be ignored.
        """
        text = self.line(lineno)
        return self.line_start(lineno) + len(text) - len(text.lstrip("\f"))

    def is_blank(self, lineno: int) -> bool:
        return not self.line(lineno).strip()

    def string_lines(self) -> Set[int]:
        """Return the line numbers that begin inside a string literal.

        For a literal spanning lines ``a..b``, lines ``a+1..b`` start inside
        it. f-strings are covered by their ``JoinedStr`` node.
        """
        if self._string_lines is None:
            lines: Set[int] = set()
            for node in ast.walk(self.tree):
                if isinstance(node, _STRING_NODES):
                    end = getattr(node, "end_lineno", None)
                    if end is not None and end > node.lineno:
                        lines.update(range(node.lineno + 1, end + 1))
            self._string_lines = lines
        return self._string_lines

    # ---------------------------------------------------------------------- #
    # Nodes
    # ---------------------------------------------------------------------- #

    def offset(self, lineno: int, col_offset: int) -> int:
        """Convert an ``ast`` position into an offset of ``source``.

        Args:
            lineno: 1-based line number.
            col_offset: UTF-8 byte offset into that line, as reported by ast.

        Returns:
            Character offset into ``source``.
        """
        text = self.line(lineno)
        chars = len(text.encode("utf-8")[:col_offset].decode("utf-8"))
        return self.line_start(lineno) + chars

    def start(self, node: ast.AST) -> int:
        return self.offset(node.lineno, node.col_offset)

    def end(self, node: ast.AST) -> int:
        return self.offset(node.end_lineno, node.end_col_offset)

    def segment(self, node: ast.AST) -> str:
        """Return the original text covered by ``node``."""
        return self.source[self.start(node):self.end(node)]

    def at_line_start(self, node: ast.AST) -> bool:
        """True when only whitespace precedes ``node`` on its first line."""
        return not self.source[self.line_start(node.lineno):self.start(node)].strip()

    def parent(self, node: ast.AST) -> Optional[ast.AST]:
        return self._parents.get(node)

    def ancestors(self, node: ast.AST):
        """Yield the parents of ``node`` from the innermost outwards."""
        parent = self._parents.get(node)
        while parent is not None:
            yield parent
            parent = self._parents.get(parent)
