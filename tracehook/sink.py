"""sink.py - Pluggable destination for trace lines.

Instrumented code hands every ``Entering`` / ``Leaving`` line (and the
``before`` / ``after`` lines of the Trace Registry) to the process-wide sink
held by runtime.py. Two implementations are provided:

    StreamSink   : writes each line to a stream and flushes (default: stderr).
    LoggingSink  : forwards each line to a ``logging.Logger``.

Lines are written as they happen; sinks never buffer or store them.

Typical usage::

    import logging
    from tracehook import LoggingSink, set_sink

    set_sink(LoggingSink(logging.getLogger("myapp.calls")))
"""

import logging
import sys
from abc import ABC, abstractmethod


class TraceSink(ABC):
    """Abstract base class for all trace line destinations.

    Example:
        >>> class ListSink(TraceSink):
        ...     def __init__(self):
        ...         self.lines = []
        ...     def write(self, line: str) -> None:
        ...         self.lines.append(line)
    """

    @abstractmethod
    def write(self, line: str) -> None:
        """Emit one trace line (without a trailing newline)."""


class StreamSink(TraceSink):
    """Write trace lines to a stream, one per line, flushing after each.

    Attributes:
        _stream: The writable file-like object, or None to use whatever
            ``sys.stderr`` is at the moment of writing. Resolving stderr late
            keeps redirections (``contextlib.redirect_stderr``, pytest's
            ``capsys``) effective.

    Example:
        >>> import io
        >>> buf = io.StringIO()
        >>> StreamSink(buf).write("Entering f")
        >>> buf.getvalue()
        'Entering f\\n'
    """

    def __init__(self, stream=None) -> None:
        self._stream = stream

    def write(self, line: str) -> None:
        stream = self._stream or sys.stderr
        print(line, file=stream, flush=True)


class LoggingSink(TraceSink):
    """Forward trace lines to a logger.

    Args:
        logger: Target logger. Defaults to ``logging.getLogger("tracehook.trace")``.
        level: Level used for every line. Defaults to ``logging.DEBUG``.
    """

    def __init__(self, logger=None, level: int = logging.DEBUG) -> None:
        self._logger = logger or logging.getLogger("tracehook.trace")
        self._level = level

    def write(self, line: str) -> None:
        self._logger.log(self._level, line)
