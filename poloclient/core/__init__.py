"""Core primitives shared across the REST and push subsystems.

Error classes, type aliases and time helpers live here so that higher level
packages can import them without introducing circular dependencies.
"""

from . import errors, time_utils, types

__all__ = ["errors", "time_utils", "types"]
