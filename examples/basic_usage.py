"""examples/basic_usage.py - Explicit tracing with the Trace Registry.

Demonstrates both registry styles:
    One-shot: Tracer(fn) / create_trace(name, fn) run fn once between
               "before" and "after" lines.
    Split:    register() then invoke() as often as needed.
"""

from tracehook import Tracer


def load_config():
    print("loading config")


def warm_cache():
    print("warming cache")


def add(a, b):
    return a + b


if __name__ == "__main__":
    # before / loading config / after / before / warming cache / after
    tracer = Tracer(load_config, warm_cache)

    # Second registration of the same name is skipped with a warning.
    tracer.create_trace("load_config", load_config)

    # Invalid names are reported, not raised.
    print(tracer.create_trace(42, load_config))

    tracer.register("add", add)
    print(tracer.invoke("add", 2, 3))
