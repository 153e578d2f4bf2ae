"""test_hook.py - Tests for the load hook and its installation guard.

Covers:
    - install() puts one finder in sys.meta_path and refuses a second one
    - Imported modules in scope are rewritten, each with a fresh depth counter
    - Modules outside the configured roots are left alone
    - Packages (__init__.py) are rewritten too
    - Rewritten bytecode is never written to __pycache__
    - get_source() still returns the file's original text
    - The tracehook package and the standard library are out of scope
    - Importing tracehook.auto installs the default hook
"""

import importlib
import logging
import os
import sys
import uuid

import pytest

from tracehook import hook, runtime
from tracehook.hook import InstrumentationContext, InstrumentingLoader, installed_hook
from tracehook.rewriter import Rewriter
from tracehook.sink import TraceSink


class _ListSink(TraceSink):
    def __init__(self):
        self.lines = []

    def write(self, line: str) -> None:
        self.lines.append(line)


def _module_name(prefix: str = "thmod") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def _remove_hooks():
    for finder in list(sys.meta_path):
        if getattr(finder, "_tracehook_load_hook", False):
            sys.meta_path.remove(finder)


@pytest.fixture
def workspace(tmp_path):
    """A directory on sys.path; hooks and imported modules are cleaned up."""
    names_before = set(sys.modules)
    sys.path.insert(0, str(tmp_path))
    sink = _ListSink()
    previous = runtime.set_sink(sink)
    try:
        yield tmp_path, sink
    finally:
        runtime.set_sink(previous)
        _remove_hooks()
        sys.path.remove(str(tmp_path))
        for name in set(sys.modules) - names_before:
            if name.startswith("thmod_") or name.startswith("thpkg_"):
                del sys.modules[name]
        importlib.invalidate_caches()


def _write(directory, name: str, source: str) -> str:
    path = os.path.join(str(directory), f"{name}.py")
    with open(path, "w", encoding="utf-8") as f:
        f.write(source)
    importlib.invalidate_caches()
    return path


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------


class TestInstall:
    def test_install_inserts_finder_first(self, workspace):
        ctx = InstrumentationContext(roots=[str(workspace[0])])
        assert ctx.install() is True
        assert sys.meta_path[0] is ctx.finder
        assert ctx.is_installed()
        assert installed_hook() is ctx.finder

    def test_second_install_is_refused(self, workspace, caplog):
        """A second hook would wrap the compile step twice; it is refused."""
        first = InstrumentationContext(roots=[str(workspace[0])])
        second = InstrumentationContext(roots=[str(workspace[0])])
        assert first.install() is True

        with caplog.at_level(logging.WARNING, logger="tracehook.hook"):
            assert first.install() is False
            assert second.install() is False

        assert not second.is_installed()
        hooks = [f for f in sys.meta_path if getattr(f, "_tracehook_load_hook", False)]
        assert hooks == [first.finder]
        assert "already installed" in caplog.text

    def test_module_level_is_installed(self, workspace):
        assert not hook.is_installed()
        InstrumentationContext(roots=[str(workspace[0])]).install()
        assert hook.is_installed()

    def test_import_auto_installs_default_hook(self, workspace):
        sys.modules.pop("tracehook.auto", None)
        importlib.import_module("tracehook.auto")
        assert hook.is_installed()


# ---------------------------------------------------------------------------
# Rewriting on import
# ---------------------------------------------------------------------------


class TestLoading:
    def test_imported_module_is_traced(self, workspace):
        directory, sink = workspace
        name = _module_name()
        _write(
            directory,
            name,
            "def outer():\n"
            "    def inner():\n"
            "        return 1\n"
            "    return inner()\n",
        )
        InstrumentationContext(roots=[str(directory)]).install()

        module = importlib.import_module(name)
        assert isinstance(module.__loader__, InstrumentingLoader)
        assert module.outer() == 1
        assert sink.lines == [
            "Entering outer",
            "  Entering inner",
            "  Leaving inner",
            "Leaving outer",
        ]

    def test_each_module_starts_at_depth_zero(self, workspace):
        """Depth never leaks from one loaded module into the next."""
        directory, sink = workspace
        first, second = _module_name(), _module_name()
        _write(directory, first, "def a1():\n    pass\ndef a2():\n    pass\n")
        _write(directory, second, "def b1():\n    pass\n")
        InstrumentationContext(Rewriter(monotonic_depth=True), roots=[str(directory)]).install()

        mod_a = importlib.import_module(first)
        mod_b = importlib.import_module(second)
        mod_a.a1()
        mod_a.a2()
        mod_b.b1()
        assert sink.lines == [
            "Entering a1",
            "Leaving a1",
            "  Entering a2",
            "  Leaving a2",
            "Entering b1",
            "Leaving b1",
        ]

    def test_module_outside_roots_is_not_rewritten(self, workspace):
        directory, sink = workspace
        inside = directory / "inside"
        inside.mkdir()
        name = _module_name()
        _write(directory, name, "def f():\n    return 3\n")
        InstrumentationContext(roots=[str(inside)]).install()

        module = importlib.import_module(name)
        assert not isinstance(module.__loader__, InstrumentingLoader)
        assert module.f() == 3
        assert sink.lines == []

    def test_package_init_is_rewritten(self, workspace):
        directory, sink = workspace
        name = _module_name("thpkg")
        package = directory / name
        package.mkdir()
        (package / "__init__.py").write_text("def hello():\n    return 'hi'\n", encoding="utf-8")
        importlib.invalidate_caches()
        InstrumentationContext(roots=[str(directory)]).install()

        module = importlib.import_module(name)
        assert module.hello() == "hi"
        assert sink.lines == ["Entering hello", "Leaving hello"]

    def test_no_bytecode_is_cached(self, workspace):
        directory, _ = workspace
        name = _module_name()
        _write(directory, name, "def f():\n    return 1\n")
        InstrumentationContext(roots=[str(directory)]).install()

        importlib.import_module(name)
        cache = directory / "__pycache__"
        assert not cache.exists() or not any(p.name.startswith(name) for p in cache.iterdir())

    def test_get_source_returns_original_text(self, workspace):
        directory, _ = workspace
        name = _module_name()
        source = "def f():\n    return 1\n"
        _write(directory, name, source)
        InstrumentationContext(roots=[str(directory)]).install()

        module = importlib.import_module(name)
        assert module.__loader__.get_source(name) == source

    def test_syntax_error_in_module_propagates(self, workspace):
        directory, _ = workspace
        name = _module_name()
        _write(directory, name, "def broken(:\n    pass\n")
        InstrumentationContext(roots=[str(directory)]).install()

        with pytest.raises(SyntaxError):
            importlib.import_module(name)


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class TestScope:
    def test_tracehook_package_is_never_wanted(self):
        ctx = InstrumentationContext()
        assert not ctx.wants("tracehook")
        assert not ctx.wants("tracehook.runtime")
        assert ctx.wants("tracehookery")
        assert ctx.wants("myapp.models")

    def test_standard_library_is_not_covered(self, tmp_path):
        ctx = InstrumentationContext()
        assert not ctx.covers(os.__file__)
        assert ctx.covers(str(tmp_path / "app.py"))

    def test_roots_restrict_coverage(self, tmp_path):
        ctx = InstrumentationContext(roots=[str(tmp_path / "src")])
        assert ctx.covers(str(tmp_path / "src" / "pkg" / "mod.py"))
        assert not ctx.covers(str(tmp_path / "srcs" / "mod.py"))
        assert not ctx.covers(None)
