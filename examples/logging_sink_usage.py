"""examples/logging_sink_usage.py - Route trace lines through logging.

Trace lines normally go straight to stderr. A LoggingSink sends them to a
logger instead, so they share the application's formatting and handlers.
"""

import logging

from tracehook import InstrumentationContext, LoggingSink, Rewriter, set_sink

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

set_sink(LoggingSink(logging.getLogger("calls")))
InstrumentationContext(Rewriter(indent_unit="    "), roots=["."]).install()

import shapes  # noqa: E402

if __name__ == "__main__":
    shapes.area(2, 5)
