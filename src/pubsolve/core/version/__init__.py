"""Version and constraint model.

Pure, synchronous value types: stabilities, versions, canonical version sets
and Composer-style constraint expressions. Nothing here performs I/O.

Public API::

    from pubsolve.core.version import Version, VersionConstraint, parse_constraint
"""

from __future__ import annotations

from pubsolve.core.version.constraints import (
    VersionConstraint,
    clear_constraint_cache,
    parse_constraint,
)
from pubsolve.core.version.ranges import Interval, VersionRange
from pubsolve.core.version.stability import Stability, parse_stability
from pubsolve.core.version.version import Version, parse_version

__all__ = [
    "Interval",
    "Stability",
    "Version",
    "VersionConstraint",
    "VersionRange",
    "clear_constraint_cache",
    "parse_constraint",
    "parse_stability",
    "parse_version",
]
