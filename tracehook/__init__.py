"""tracehook/__init__.py - Public API for the tracehook package.

tracehook writes an ``Entering <name>`` line when a function starts and a
``Leaving <name>`` line when it finishes, without any change to the functions
themselves. Lines are indented two spaces per nesting level.

Quick start:
    # 1. Trace every function of every module imported from now on
    import tracehook.auto
    import myapp                      # myapp's functions are instrumented

    # 2. Or install with a narrower scope
    from tracehook import InstrumentationContext, Rewriter
    InstrumentationContext(Rewriter(monotonic_depth=True), roots=["src"]).install()

    # 3. Trace a few callables explicitly, once
    from tracehook import Tracer
    Tracer(job_a, job_b)              # before / job_a() / after, then job_b

    # 4. Send trace lines somewhere other than stderr
    import logging
    from tracehook import LoggingSink, set_sink
    set_sink(LoggingSink(logging.getLogger("calls")))

From the command line:
    python -m tracehook run script.py [args...]

Exported names:
    Rewriter:               Source-to-source instrumentation of one module.
    rewrite_source:         Shortcut for ``Rewriter(**options).rewrite(...)``.
    InstrumentationContext: Owns the load hook and its scope.
    install / is_installed: Default load hook helpers.
    Tracer:                 Explicit name → hooks registry.
    TraceDescriptor:        A registry entry.
    InvalidTraceName:       Raised by ``Tracer.register`` for bad names.
    TraceSink, StreamSink, LoggingSink: Trace line destinations.
    get_sink / set_sink:    Access the process-wide sink.
"""

from .hook import InstrumentationContext, install, is_installed
from .registry import InvalidTraceName, TraceDescriptor, Tracer
from .rewriter import Rewriter, rewrite_source
from .runtime import get_sink, set_sink
from .sink import LoggingSink, StreamSink, TraceSink

__all__ = [
    "Rewriter",
    "rewrite_source",
    "InstrumentationContext",
    "install",
    "is_installed",
    "Tracer",
    "TraceDescriptor",
    "InvalidTraceName",
    "TraceSink",
    "StreamSink",
    "LoggingSink",
    "get_sink",
    "set_sink",
]
__version__ = "0.1.0"
