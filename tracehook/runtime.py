"""runtime.py - Functions called by instrumented code.

Rewritten modules reach this module through
``__import__('tracehook.runtime').runtime`` so they need no import of their
own. They run on every entry and exit of every instrumented function.
"""

import contextvars
from typing import Optional

from .sink import StreamSink, TraceSink

_sink: Optional[TraceSink] = None

# Set while a sink is writing. Lines emitted from inside a sink (for example by
# an instrumented helper it calls) are dropped instead of recursing.
_emitting: contextvars.ContextVar = contextvars.ContextVar("tracehook_emitting", default=False)


def get_sink() -> TraceSink:
    """Return the process-wide sink, creating the stderr default on first use."""
    global _sink
    if _sink is None:
        _sink = StreamSink()
    return _sink


def set_sink(sink: Optional[TraceSink]) -> Optional[TraceSink]:
    """Replace the process-wide sink.

    Args:
        sink: The new sink. None restores the stderr default on next use.

    Returns:
        The previously installed sink (None if the default was never created),
        so callers can put it back.
    """
    global _sink
    previous, _sink = _sink, sink
    return previous


def emit(line: str) -> None:
    """Write one trace line to the current sink.

    Calls made while the sink itself is writing are ignored.
    """
    if _emitting.get():
        return
    token = _emitting.set(True)
    try:
        get_sink().write(line)
    finally:
        _emitting.reset(token)


def emit_through(line: str, value):
    """Write ``line`` and return ``value`` unchanged (used inside lambdas)."""
    emit(line)
    return value
