"""The metadata fetcher contract.

The solver never performs network or disk I/O itself. Every source of
package metadata (a Packagist-compatible registry, local path repositories,
git repositories, an in-memory catalog for tests) implements
:class:`MetadataFetcher`, and the solver stays agnostic to which one backs
it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from pubsolve.core.solver.models import VersionRecord

logger = logging.getLogger(__name__)


class MetadataFetcher(ABC):
    """Asynchronous source of package version metadata.

    Implementations make no caching policy decisions and perform no
    retries; both belong to the transport they wrap.
    """

    @property
    def name(self) -> str:
        """Human-readable name of this source (used in logs)."""
        return type(self).__name__

    @abstractmethod
    async def fetch(self, name: str) -> Sequence[VersionRecord]:
        """Fetch every known version of a package.

        Args:
            name: Normalized package name.

        Returns:
            Version records in any order; empty when the package is unknown.

        Raises:
            FetchError: If the source could not be reached or answered with
                malformed data.
        """

    async def find_providers(self, name: str) -> Sequence[str]:
        """Names of packages that may provide or replace ``name``.

        Sources that cannot answer this cheaply return nothing, which only
        disables virtual package resolution through them.
        """
        return ()

    async def aclose(self) -> None:
        """Release any resources (HTTP clients, temporary checkouts)."""


class CompositeFetcher(MetadataFetcher):
    """Query several fetchers in priority order.

    The first fetcher that knows a package answers for it; lower-priority
    sources are not consulted, so a path repository can shadow a registry
    package. Provider lookups are merged across all fetchers.

    Args:
        fetchers: Sources in priority order.
    """

    def __init__(self, fetchers: Sequence[MetadataFetcher]) -> None:
        if not fetchers:
            raise ValueError("CompositeFetcher needs at least one fetcher")
        self._fetchers = list(fetchers)

    @property
    def fetchers(self) -> list[MetadataFetcher]:
        return list(self._fetchers)

    async def fetch(self, name: str) -> Sequence[VersionRecord]:
        for fetcher in self._fetchers:
            records = await fetcher.fetch(name)
            if records:
                logger.debug("%s answered for %s", fetcher.name, name)
                return records
        return ()

    async def find_providers(self, name: str) -> Sequence[str]:
        found: dict[str, None] = {}
        for fetcher in self._fetchers:
            for provider in await fetcher.find_providers(name):
                found.setdefault(provider, None)
        return list(found)

    async def aclose(self) -> None:
        for fetcher in self._fetchers:
            await fetcher.aclose()
