"""Resolution assembly: ordered, dev-partitioned output of a solve."""

from __future__ import annotations

from pubsolve.core.resolution.assembler import ResolutionAssembler
from pubsolve.core.resolution.models import (
    Cancelled,
    Resolution,
    ResolutionStats,
    ResolvedPackage,
)

__all__ = [
    "Cancelled",
    "Resolution",
    "ResolutionAssembler",
    "ResolutionStats",
    "ResolvedPackage",
]
