"""High-level resolution entry point.

:class:`Resolver` wires one metadata fetcher and one configuration to the
solver. Each :meth:`Resolver.resolve` call builds a fresh scheduler, store
and partial solution, so concurrent resolutions never share state::

    resolver = Resolver(fetcher, ResolverConfig(mode=ResolutionMode.PREFER_LOWEST))
    outcome = await resolver.resolve([Dependency.parse("vendor/a", "^1.0")])
    if isinstance(outcome, Cancelled):
        ...
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, Mapping

from pubsolve.config import ResolverConfig
from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.fetch.scheduler import FetchScheduler
from pubsolve.core.resolution.assembler import ResolutionAssembler
from pubsolve.core.resolution.models import Cancelled, Resolution, ResolutionStats
from pubsolve.core.solver.models import Dependency, normalize_name
from pubsolve.core.solver.solver import VersionSolver
from pubsolve.core.version.version import Version, parse_version
from pubsolve.exceptions import ResolutionCancelled, ResolutionTimeoutError

logger = logging.getLogger(__name__)


def _normalize_locked(locked: Mapping[str, Version | str] | None) -> dict[str, Version]:
    pins: dict[str, Version] = {}
    for name, version in (locked or {}).items():
        pins[normalize_name(name)] = (
            version if isinstance(version, Version) else parse_version(version)
        )
    return pins


class Resolver:
    """Resolves root requirements against a metadata fetcher.

    Args:
        fetcher: Source of package metadata.
        config: Resolution settings; defaults to ``ResolverConfig()``.
    """

    def __init__(
        self, fetcher: MetadataFetcher, config: ResolverConfig | None = None
    ) -> None:
        self._fetcher = fetcher
        self._config = config or ResolverConfig()

    @property
    def config(self) -> ResolverConfig:
        return self._config

    async def resolve(
        self,
        requirements: Iterable[Dependency],
        locked: Mapping[str, Version | str] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> Resolution | Cancelled:
        """Resolve ``requirements`` into a consistent set of versions.

        Args:
            requirements: Root dependencies.
            locked: Previously locked versions. A pin is kept while it still
                satisfies every constraint, otherwise it is only a hint.
            cancel: Setting this event aborts outstanding fetches and makes
                the call return :class:`Cancelled`.

        Returns:
            The resolution, or Cancelled.

        Raises:
            ParseError: If a locked version is malformed.
            ConflictError: If the requirements cannot all be satisfied.
            FetchError: If a package the root requires cannot be fetched.
            ResolutionTimeoutError: If ``config.timeout`` elapses.
            ResolutionError: If the solver exceeds its iteration limit.
        """
        config = self._config
        dependencies = list(requirements)
        pins = _normalize_locked(locked)
        logger.info(
            "resolving %d root requirements (%s)", len(dependencies), config.mode.value
        )

        started = time.monotonic()
        scheduler = FetchScheduler(
            self._fetcher,
            max_concurrent=config.max_concurrent,
            request_timeout=config.request_timeout,
        )
        solver = VersionSolver(dependencies, scheduler, config, locked=pins, cancel=cancel)
        try:
            if config.timeout is None:
                result = await solver.solve()
            else:
                result = await asyncio.wait_for(solver.solve(), config.timeout)
        except ResolutionCancelled:
            logger.info("resolution cancelled")
            return Cancelled()
        except asyncio.TimeoutError as exc:
            raise ResolutionTimeoutError(
                f"Resolution did not finish within {config.timeout}s"
            ) from exc
        finally:
            await scheduler.aclose()

        resolution = ResolutionAssembler(result).assemble()
        resolution.stats = ResolutionStats(
            solver=result.stats,
            fetch=scheduler.stats,
            elapsed=time.monotonic() - started,
        )
        logger.info(
            "resolved %d packages in %.2fs", len(resolution), resolution.stats.elapsed
        )
        return resolution

    def resolve_sync(
        self,
        requirements: Iterable[Dependency],
        locked: Mapping[str, Version | str] | None = None,
    ) -> Resolution | Cancelled:
        """Run :meth:`resolve` on a fresh event loop."""
        return asyncio.run(self.resolve(requirements, locked))


async def resolve(
    requirements: Iterable[Dependency],
    fetcher: MetadataFetcher,
    config: ResolverConfig | None = None,
    locked: Mapping[str, Version | str] | None = None,
    *,
    cancel: asyncio.Event | None = None,
) -> Resolution | Cancelled:
    """Shortcut for ``Resolver(fetcher, config).resolve(...)``."""
    return await Resolver(fetcher, config).resolve(requirements, locked, cancel=cancel)
