"""pubsolve exception hierarchy.

All public exceptions inherit from PubsolveError, giving callers a single
base class to catch when they want to handle any pubsolve-specific failure
without swallowing unrelated errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pubsolve.core.solver.report import ConflictExplanation


class PubsolveError(Exception):
    """Base exception for all pubsolve errors."""


class ParseError(PubsolveError, ValueError):
    """Raised when a version or constraint expression cannot be parsed.

    Covers malformed comparators, unknown stability flags, and empty
    constraint groups. Always raised during input validation, before any
    solving begins.
    """


class ManifestError(PubsolveError):
    """Raised when a composer.json or composer.lock file cannot be loaded."""


class ResolutionError(PubsolveError):
    """Raised when dependency resolution fails.

    Covers iteration limits and internal solver failures. Conflicts have
    their own subclass carrying the derivation chain.
    """


class ConflictError(ResolutionError):
    """Raised when the root requirements are provably unsatisfiable.

    Attributes:
        explanation: The causal chain of incompatibilities that led from the
            declared dependencies to the contradiction.
    """

    def __init__(self, explanation: ConflictExplanation) -> None:
        self.explanation = explanation
        super().__init__(str(explanation))


class ResolutionTimeoutError(ResolutionError):
    """Raised when a resolution exceeds its configured overall timeout."""


class FetchError(PubsolveError):
    """Raised when package metadata cannot be retrieved.

    Attributes:
        package: Name of the package whose metadata could not be fetched.
    """

    def __init__(self, package: str, message: str) -> None:
        self.package = package
        super().__init__(f"{package}: {message}")


class ResolutionCancelled(PubsolveError):
    """Raised inside the solver when its cancellation signal fires.

    :meth:`pubsolve.resolver.Resolver.resolve` converts it into a
    :class:`~pubsolve.core.resolution.models.Cancelled` outcome; callers of
    the public API never see it.
    """
