"""test_registry.py - Tests for the explicit Trace Registry.

Covers:
    - create_trace runs before → fn → after synchronously, once
    - First registration wins; duplicates are skipped with a notice
    - Invalid names are reported through the return value, unregistered
    - Non-callables are skipped with their own notice
    - Tracer(*functions) traces each function on construction, lambdas included
    - register / invoke split: validation, return values, hooks, errors
"""

import logging

import pytest

from tracehook import runtime
from tracehook.registry import InvalidTraceName, TraceDescriptor, Tracer
from tracehook.sink import TraceSink


class _EventSink(TraceSink):
    """Records trace lines into a shared event list."""

    def __init__(self, events):
        self.events = events

    def write(self, line: str) -> None:
        self.events.append(line)


class _RegistryTest:
    def setup_method(self):
        self.events = []
        self._previous = runtime.set_sink(_EventSink(self.events))

    def teardown_method(self):
        runtime.set_sink(self._previous)

    def _fn(self, label: str):
        def fn():
            self.events.append(label)
            return label

        return fn


# ---------------------------------------------------------------------------
# create_trace
# ---------------------------------------------------------------------------


class TestCreateTrace(_RegistryTest):
    def test_create_trace_runs_function_between_hooks(self):
        tracer = Tracer()
        assert tracer.create_trace("job", self._fn("job ran")) is None
        assert self.events == ["before", "job ran", "after"]
        assert "job" in tracer

    def test_duplicate_name_first_registration_wins(self, caplog):
        """fnA runs exactly once; fnB never runs."""
        tracer = Tracer()
        fn_a, fn_b = self._fn("A"), self._fn("B")

        with caplog.at_level(logging.WARNING, logger="tracehook.registry"):
            tracer.create_trace("dup", fn_a)
            tracer.create_trace("dup", fn_b)

        assert self.events.count("A") == 1
        assert "B" not in self.events
        assert tracer.tracers["dup"].original is fn_a
        assert "dup already traced, skipping." in caplog.text

    def test_non_string_name_returns_message(self):
        tracer = Tracer()
        result = tracer.create_trace(42, self._fn("A"))
        assert result == "function name must be a non-empty string"
        assert 42 not in tracer
        assert "42" not in tracer
        assert self.events == []

    def test_empty_name_returns_message(self):
        tracer = Tracer()
        assert isinstance(tracer.create_trace("", self._fn("A")), str)
        assert len(tracer) == 0

    def test_non_callable_is_skipped_with_notice(self, caplog):
        tracer = Tracer()
        with caplog.at_level(logging.WARNING, logger="tracehook.registry"):
            assert tracer.create_trace("thing", 123) is None
        assert "thing" not in tracer
        assert "thing is not callable, skipping." in caplog.text
        assert self.events == []


# ---------------------------------------------------------------------------
# Constructor
# ---------------------------------------------------------------------------


class TestTracerConstructor(_RegistryTest):
    def test_constructor_traces_each_function_in_order(self):
        def first():
            self.events.append("first")

        def second():
            self.events.append("second")

        tracer = Tracer(first, second)
        assert self.events == ["before", "first", "after", "before", "second", "after"]
        assert len(tracer) == 2

    def test_constructor_names_by_qualname(self):
        def job():
            pass

        tracer = Tracer(job)
        assert job.__qualname__ in tracer

    def test_constructor_traces_each_lambda(self):
        """Lambdas are named by repr, so two of them never collide."""
        first = lambda: self.events.append("a")  # noqa: E731
        second = lambda: self.events.append("b")  # noqa: E731

        tracer = Tracer(first, second)
        assert self.events == ["before", "a", "after", "before", "b", "after"]
        assert len(tracer) == 2
        assert repr(first) in tracer

    def test_constructor_without_functions_is_empty(self):
        assert len(Tracer()) == 0
        assert self.events == []


# ---------------------------------------------------------------------------
# register / invoke
# ---------------------------------------------------------------------------


class TestRegisterInvoke(_RegistryTest):
    def test_register_does_not_run(self):
        tracer = Tracer()
        assert tracer.register("job", self._fn("job")) is True
        assert self.events == []
        assert isinstance(tracer.tracers["job"], TraceDescriptor)

    def test_register_rejects_bad_name(self):
        tracer = Tracer()
        with pytest.raises(InvalidTraceName):
            tracer.register(42, self._fn("A"))
        with pytest.raises(ValueError):
            tracer.register("", self._fn("A"))

    def test_register_rejects_non_callable(self):
        with pytest.raises(TypeError):
            Tracer().register("x", "not callable")

    def test_register_duplicate_returns_false(self):
        tracer = Tracer()
        fn_a = self._fn("A")
        tracer.register("dup", fn_a)
        assert tracer.register("dup", self._fn("B")) is False
        assert tracer.tracers["dup"].original is fn_a

    def test_invoke_passes_arguments_and_returns_result(self):
        tracer = Tracer()
        tracer.register("add", lambda a, b=1: a + b)
        assert tracer.invoke("add", 2, b=5) == 7
        assert self.events == ["before", "after"]

    def test_invoke_runs_after_hook_on_exception(self):
        def fail():
            raise RuntimeError("broken")

        tracer = Tracer()
        tracer.register("fail", fail)
        with pytest.raises(RuntimeError, match="broken"):
            tracer.invoke("fail")
        assert self.events == ["before", "after"]

    def test_invoke_custom_hooks_receive_descriptor(self):
        seen = []
        tracer = Tracer()
        tracer.register(
            "job",
            self._fn("job"),
            before=lambda d: seen.append(("before", d.name)),
            after=lambda d: seen.append(("after", d.name)),
        )
        tracer.invoke("job")
        assert seen == [("before", "job"), ("after", "job")]
        assert self.events == ["job"]

    def test_invoke_unknown_name(self):
        with pytest.raises(KeyError):
            Tracer().invoke("missing")

    def test_descriptor_uses_slots(self):
        descriptor = TraceDescriptor("n", print, print, print)
        with pytest.raises(AttributeError):
            descriptor.unexpected = True  # type: ignore[attr-defined]
