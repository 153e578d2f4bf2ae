"""auto.py - Importing this module installs the default load hook.

    import tracehook.auto

Every module imported afterwards (outside the standard library) is rewritten
so its functions report ``Entering`` / ``Leaving`` on stderr. Modules that
were already imported are not affected.
"""

from .hook import install

install()
