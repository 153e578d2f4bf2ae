"""context.py - Depth bookkeeping for one rewrite pass.

DepthCounter holds the integer that decides how far each synthesized
``Entering`` / ``Leaving`` line is indented. The rewriter creates a fresh
counter for every module it rewrites, so depth never leaks from one module
into the next.

Two disciplines are supported:

    Nesting depth (default):
        ``increase_depth()`` on entering a matched function's body,
        ``decrease_depth()`` after leaving it. Sibling functions share a
        level; a nested function sits one level below its parent.

    Visit-order depth (``monotonic=True``):
        ``decrease_depth()`` is a no-op, so every matched function visited
        lands one level deeper than the previous one, siblings included.
"""


class DepthCounter:
    """Tracks the indentation depth during one traversal.

    Attributes:
        monotonic (bool): When True the counter only ever grows.

    Example:
        >>> depth = DepthCounter()
        >>> depth.increase_depth()
        >>> depth.get_depth()
        1
        >>> depth.decrease_depth()
        >>> depth.get_depth()
        0
    """

    def __init__(self, monotonic: bool = False) -> None:
        self.monotonic = monotonic
        self._depth = 0

    def get_depth(self) -> int:
        """Return the current depth. 0 means module level."""
        return self._depth

    def increase_depth(self) -> None:
        """Increment the depth by one before descending into a function body."""
        self._depth += 1

    def decrease_depth(self) -> None:
        """Decrement the depth by one, clamped at zero.

        Ignored in monotonic mode.
        """
        if self.monotonic:
            return
        if self._depth > 0:
            self._depth -= 1
