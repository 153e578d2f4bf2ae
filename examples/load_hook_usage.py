"""examples/load_hook_usage.py - Automatic tracing of imported modules.

Importing ``tracehook.auto`` installs the load hook; ``shapes`` is imported
afterwards, so all of its functions report entry and exit on stderr:

    Entering area
      Entering clamp
      Leaving clamp
      Entering clamp
      Leaving clamp
    Leaving area
    Entering perimeter
    Leaving perimeter

Run from this directory:
    python load_hook_usage.py
"""

import tracehook.auto  # noqa: F401  (installs the hook)

import shapes

if __name__ == "__main__":
    print(shapes.area(3, 4))
    print(shapes.perimeter(3, 4))
