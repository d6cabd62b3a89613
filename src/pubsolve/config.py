"""Resolver configuration.

:class:`ResolverConfig` gathers every knob a single resolution honors. It is
immutable; derive variants with :func:`dataclasses.replace`. A project's
``composer.json`` settings map onto it through
:meth:`ResolverConfig.from_manifest`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Mapping

from pubsolve.core.version.stability import Stability, parse_stability

if TYPE_CHECKING:
    from pubsolve.manifest import RootManifest

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_ITERATIONS = 100_000


class ResolutionMode(str, Enum):
    """How a version is picked among a package's eligible candidates.

    PREFER_STABLE: the highest version at or above the minimum stability.
    PREFER_LOWEST: the lowest version at or above the minimum stability.
    PREFER_LATEST: the highest version in range, ignoring minimum stability.
    """

    PREFER_STABLE = "prefer-stable"
    PREFER_LOWEST = "prefer-lowest"
    PREFER_LATEST = "prefer-latest"


def _default_concurrency() -> int:
    return os.cpu_count() or 4


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for one resolution.

    Attributes:
        max_concurrent: Upper bound on in-flight metadata fetches.
        mode: Version selection strategy.
        minimum_stability: Lowest stability accepted without an explicit
            ``@flag`` on a root requirement.
        include_dev: Whether the root's dev requirements are resolved.
        request_timeout: Seconds allowed for a single package fetch.
        timeout: Seconds allowed for the whole resolution, or None.
        max_iterations: Guard on solver loop iterations.
        excluded: Package names that must never be selected.
        platform: Versions of platform packages (``php``, ``ext-*``) to
            resolve against. Platform packages not listed are skipped.
        resolve_providers: Whether to look up provide/replace candidates
            for every required name.
        prefer_stable: Try stable candidates before less stable ones
            (Composer's ``prefer-stable``).
    """

    max_concurrent: int = field(default_factory=_default_concurrency)
    mode: ResolutionMode = ResolutionMode.PREFER_STABLE
    minimum_stability: Stability = Stability.STABLE
    include_dev: bool = True
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT
    timeout: float | None = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    excluded: frozenset[str] = frozenset()
    platform: Mapping[str, str] = field(default_factory=dict)
    resolve_providers: bool = True
    prefer_stable: bool = False

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if not isinstance(self.mode, ResolutionMode):
            object.__setattr__(self, "mode", ResolutionMode(self.mode))
        if not isinstance(self.minimum_stability, Stability):
            object.__setattr__(
                self, "minimum_stability", parse_stability(str(self.minimum_stability))
            )
        object.__setattr__(self, "excluded", frozenset(n.lower() for n in self.excluded))
        object.__setattr__(
            self, "platform", {k.lower(): v for k, v in dict(self.platform).items()}
        )

    @classmethod
    def from_manifest(cls, manifest: RootManifest, **overrides: object) -> ResolverConfig:
        """Build a configuration from a project's composer.json settings.

        ``minimum-stability``, ``prefer-stable`` and ``config.platform``
        are taken as-is. Keyword overrides that are not None win.
        """
        settings: dict[str, object] = {
            "minimum_stability": manifest.minimum_stability,
            "prefer_stable": manifest.prefer_stable,
            "platform": manifest.platform,
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**settings)  # type: ignore[arg-type]
