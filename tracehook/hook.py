"""hook.py - Route module source through the Rewriter before compilation.

Installing the load hook puts an InstrumentingFinder at the front of
``sys.meta_path``. For every later import of a plain source module that is in
scope, the finder hands back a spec whose loader is an InstrumentingLoader.
That loader overrides ``source_to_code``, the step where importlib turns
source text into a code object: it rewrites the text and then calls the
base implementation with the rewritten text and the unchanged path.

Design contract:
    - Installation is process-wide and permanent; there is no uninstall.
    - A second installation is refused. The finder carries a marker attribute
      and ``install()`` looks for it in ``sys.meta_path`` first, so the
      compile step is never wrapped twice.
    - Rewritten code never touches ``__pycache__``: the loader always compiles
      from source and writes no bytecode.
    - The tracehook package and the standard library are never rewritten.
      ``roots`` narrows the scope further to modules under given directories.

Typical usage:
    import tracehook.auto          # installs the default hook

    import myapp                   # every function in myapp now traces
"""

import importlib.abc
import importlib.machinery
import importlib.util
import logging
import os
import sys
import sysconfig
import threading
from typing import Iterable, Optional

from .rewriter import Rewriter

logger = logging.getLogger(__name__)

_PACKAGE = __name__.partition(".")[0]
_MARKER = "_tracehook_load_hook"
_install_lock = threading.Lock()


def _is_under(path: str, root: str) -> bool:
    return path == root or path.startswith(root.rstrip(os.sep) + os.sep)


def _stdlib_dirs():
    paths = sysconfig.get_paths()
    stdlib = {os.path.abspath(paths[k]) for k in ("stdlib", "platstdlib") if k in paths}
    site = {os.path.abspath(paths[k]) for k in ("purelib", "platlib") if k in paths}
    return stdlib, site


class InstrumentingLoader(importlib.machinery.SourceFileLoader):
    """Source loader that compiles rewritten text instead of the file's text.

    ``get_source`` still returns the file's original text, so tracebacks,
    ``inspect`` and ``linecache`` read what is on disk.
    """

    def __init__(self, fullname: str, path: str, rewriter: Rewriter) -> None:
        super().__init__(fullname, path)
        self.rewriter = rewriter

    def get_code(self, fullname):
        # Skip the bytecode cache in both directions.
        source_path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(source_path), source_path)

    def source_to_code(self, data, path, *args, **kwargs):
        if isinstance(data, (bytes, bytearray)):
            source = importlib.util.decode_source(data)
        else:
            source = data
        rewritten = self.rewriter.rewrite(source, path)
        return super().source_to_code(rewritten, path, *args, **kwargs)


class InstrumentingFinder(importlib.abc.MetaPathFinder):
    """Meta path finder that swaps in InstrumentingLoader for source modules."""

    _tracehook_load_hook = True

    def __init__(self, context: "InstrumentationContext") -> None:
        self.context = context

    def find_spec(self, fullname, path=None, target=None):
        if not self.context.wants(fullname):
            return None
        spec = importlib.machinery.PathFinder.find_spec(fullname, path)
        if spec is None or type(spec.loader) is not importlib.machinery.SourceFileLoader:
            return None
        if not self.context.covers(spec.origin):
            return None

        logger.debug("instrumenting %s from %s", fullname, spec.origin)
        spec.loader = InstrumentingLoader(fullname, spec.origin, self.context.rewriter)
        return spec


def installed_hook() -> Optional[InstrumentingFinder]:
    """Return the load hook currently in ``sys.meta_path``, if any."""
    for finder in sys.meta_path:
        if getattr(finder, _MARKER, False):
            return finder
    return None


class InstrumentationContext:
    """Owns one load hook and decides which modules it rewrites.

    Args:
        rewriter: The Rewriter applied to each module. Defaults to
            ``Rewriter()``.
        roots: Optional directories. When given, only modules whose file lies
            below one of them are rewritten.

    Attributes:
        finder (InstrumentingFinder | None): The finder this context put in
            ``sys.meta_path``, or None before ``install()`` succeeds.

    Example:
        >>> ctx = InstrumentationContext(roots=["./src"])
        >>> ctx.install()          # doctest: +SKIP
        True
        >>> ctx.install()          # doctest: +SKIP
        False
    """

    def __init__(self, rewriter: Optional[Rewriter] = None, roots: Optional[Iterable[str]] = None) -> None:
        self.rewriter = rewriter or Rewriter()
        self.roots = tuple(os.path.abspath(os.fspath(r)) for r in roots) if roots else None
        self.finder: Optional[InstrumentingFinder] = None
        self._stdlib, self._site = _stdlib_dirs()

    # ---------------------------------------------------------------------- #
    # Public interface
    # ---------------------------------------------------------------------- #

    def install(self) -> bool:
        """Put the load hook at the front of ``sys.meta_path``.

        Returns:
            True if the hook was installed, False if a load hook (from this or
            any other context) was already present. The refusal is logged as a
            warning; nothing is changed.
        """
        with _install_lock:
            existing = installed_hook()
            if existing is not None:
                logger.warning("tracehook load hook already installed, skipping.")
                return False
            self.finder = InstrumentingFinder(self)
            sys.meta_path.insert(0, self.finder)
        logger.debug("load hook installed (roots=%s)", self.roots)
        return True

    def is_installed(self) -> bool:
        """True if this context's finder is in ``sys.meta_path``."""
        return self.finder is not None and self.finder in sys.meta_path

    # ---------------------------------------------------------------------- #
    # Scope
    # ---------------------------------------------------------------------- #

    def wants(self, fullname: str) -> bool:
        """False for the tracehook package itself."""
        return fullname != _PACKAGE and not fullname.startswith(_PACKAGE + ".")

    def covers(self, origin: Optional[str]) -> bool:
        """Decide whether the module file at ``origin`` is rewritten."""
        if not origin:
            return False
        origin = os.path.abspath(origin)
        if self.roots is not None:
            return any(_is_under(origin, root) for root in self.roots)
        in_stdlib = any(_is_under(origin, d) for d in self._stdlib)
        in_site = any(_is_under(origin, d) for d in self._site)
        return not in_stdlib or in_site


_default_context = InstrumentationContext()


def install() -> bool:
    """Install the default load hook. See InstrumentationContext.install()."""
    return _default_context.install()


def is_installed() -> bool:
    """True if any tracehook load hook is in ``sys.meta_path``."""
    return installed_hook() is not None
