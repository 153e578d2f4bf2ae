"""registry.py - Explicit, name-keyed tracing of individual callables.

A Tracer keeps a mapping from a name to a TraceDescriptor holding the
original callable and its before/after hooks. The first registration of a
name wins; later registrations of the same name are skipped with a notice.

Two styles are supported:

    One-shot:   ``create_trace(name, fn)`` registers ``fn`` and immediately
                runs it between its hooks, before returning. An invalid name
                is reported through the return value, not an exception.

    Split:      ``register(name, fn, before, after)`` only records the entry
                (raising on invalid input); ``invoke(name, *args)`` runs
                before → fn → after and returns fn's result.

Usage:
    from tracehook import Tracer

    def job():
        print("running")

    Tracer(job)            # writes "before", runs job, writes "after"
"""

import logging
from typing import Callable, Dict, Optional

from . import runtime

logger = logging.getLogger(__name__)


class InvalidTraceName(ValueError):
    """Raised by ``Tracer.register`` for a name that is not a non-empty str."""


def _before(descriptor: "TraceDescriptor") -> None:
    runtime.emit("before")


def _after(descriptor: "TraceDescriptor") -> None:
    runtime.emit("after")


def _get_name(fn) -> str:
    """Name a callable: its qualified name, else its repr.

    Lambdas count as unnamed. Their repr includes the object id, so two
    lambdas passed together get two entries.
    """
    if getattr(fn, "__name__", None) == "<lambda>":
        return repr(fn)
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return repr(fn)


class TraceDescriptor:
    """A registry entry. Created once per name and never replaced.

    Attributes:
        name (str): Registry key.
        original (Callable): The traced callable.
        before (Callable): Hook called with this descriptor before ``original``.
        after (Callable): Hook called with this descriptor after ``original``.
    """

    __slots__ = ("name", "original", "before", "after")

    def __init__(self, name: str, original: Callable, before: Callable, after: Callable) -> None:
        self.name = name
        self.original = original
        self.before = before
        self.after = after

    def __repr__(self) -> str:  # pragma: no cover
        return f"TraceDescriptor({self.name!r}, {self.original!r})"


class Tracer:
    """Registry of explicitly traced callables.

    Args:
        *functions: Callables to trace right away. Each is named with
            ``__qualname__`` (its repr for lambdas) and passed to
            ``create_trace``.

    Attributes:
        tracers (dict[str, TraceDescriptor]): Registered entries by name.

    Example:
        >>> calls = []
        >>> tracer = Tracer()
        >>> tracer.create_trace("job", lambda: calls.append(1))  # doctest: +SKIP
        >>> calls                                                 # doctest: +SKIP
        [1]
    """

    def __init__(self, *functions: Callable) -> None:
        self.tracers: Dict[str, TraceDescriptor] = {}
        for fn in functions:
            self.create_trace(_get_name(fn), fn)

    def __contains__(self, name) -> bool:
        return name in self.tracers

    def __len__(self) -> int:
        return len(self.tracers)

    # ---------------------------------------------------------------------- #
    # One-shot interface
    # ---------------------------------------------------------------------- #

    def create_trace(self, name, fn) -> Optional[str]:
        """Register ``fn`` under ``name`` and run it once between its hooks.

        Args:
            name: Registry key. Must be a non-empty str.
            fn: The callable to trace. Called with no arguments.

        Returns:
            None on success or when the call was skipped. For an invalid name,
            the string ``"function name must be a non-empty string"``; nothing
            is registered in that case.
        """
        if not isinstance(name, str) or not name:
            return "function name must be a non-empty string"
        if not callable(fn):
            logger.warning("%s is not callable, skipping.", name)
            return None
        if self.register(name, fn):
            self.invoke(name)
        return None

    # ---------------------------------------------------------------------- #
    # Split interface
    # ---------------------------------------------------------------------- #

    def register(
        self,
        name: str,
        fn: Callable,
        before: Optional[Callable] = None,
        after: Optional[Callable] = None,
    ) -> bool:
        """Record ``fn`` under ``name`` without running it.

        Returns:
            True if a new entry was stored, False if ``name`` was already
            registered (the existing entry is left as it is).

        Raises:
            InvalidTraceName: If ``name`` is not a non-empty str.
            TypeError: If ``fn`` is not callable.
        """
        if not isinstance(name, str) or not name:
            raise InvalidTraceName(f"function name must be a non-empty string, got {name!r}")
        if not callable(fn):
            raise TypeError(f"{name} is not callable: {fn!r}")
        if name in self.tracers:
            logger.warning("%s already traced, skipping.", name)
            return False

        self.tracers[name] = TraceDescriptor(name, fn, before or _before, after or _after)
        return True

    def invoke(self, name: str, *args, **kwargs):
        """Run the callable registered as ``name`` between its hooks.

        The after-hook runs even if the callable raises; the exception is
        re-raised unchanged.

        Returns:
            Whatever the callable returns.

        Raises:
            KeyError: If ``name`` is not registered.
        """
        try:
            descriptor = self.tracers[name]
        except KeyError:
            raise KeyError(f"{name!r} is not traced") from None

        descriptor.before(descriptor)
        try:
            return descriptor.original(*args, **kwargs)
        finally:
            descriptor.after(descriptor)
