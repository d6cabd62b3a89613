"""pubsolve: PubGrub dependency resolution for Composer-style packages."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

from pubsolve.config import ResolutionMode, ResolverConfig  # noqa: E402
from pubsolve.core.resolution.models import Cancelled, Resolution, ResolvedPackage  # noqa: E402
from pubsolve.core.solver.models import Dependency, VersionRecord  # noqa: E402
from pubsolve.exceptions import (  # noqa: E402
    ConflictError,
    FetchError,
    ManifestError,
    ParseError,
    PubsolveError,
    ResolutionError,
    ResolutionTimeoutError,
)
from pubsolve.resolver import Resolver, resolve  # noqa: E402

__all__ = [
    "Cancelled",
    "ConflictError",
    "Dependency",
    "FetchError",
    "ManifestError",
    "ParseError",
    "PubsolveError",
    "Resolution",
    "ResolutionError",
    "ResolutionMode",
    "ResolutionTimeoutError",
    "ResolvedPackage",
    "Resolver",
    "ResolverConfig",
    "VersionRecord",
    "resolve",
]
