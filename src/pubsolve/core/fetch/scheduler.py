"""Streaming, deduplicated metadata fetching for one resolution.

The solver calls :meth:`FetchScheduler.request` the moment a term first
mentions a package. The fetch starts in the background as an asyncio task
and the solver keeps propagating; it suspends only in
:meth:`FetchScheduler.wait_for`, at the point where a decision needs data
that has not arrived.

:class:`FetchCache` is the only shared mutable state: a map from package
name to its pending or finished task with insert-or-join semantics, so a
second request for an in-flight package attaches to the same task.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Iterable, Sequence

from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.solver.models import VersionRecord, normalize_name
from pubsolve.exceptions import FetchError, ParseError, ResolutionCancelled

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass
class FetchStats:
    """Counters for one resolution's fetch activity.

    Attributes:
        requested: Distinct package fetches started.
        joined: Requests that attached to an existing fetch.
        completed: Fetches that returned metadata.
        failed: Fetches that raised FetchError.
        timed_out: Fetches cancelled by the per-request timeout.
        provider_lookups: Distinct provider lookups started.
        max_in_flight: Highest number of simultaneous fetches observed.
    """

    requested: int = 0
    joined: int = 0
    completed: int = 0
    failed: int = 0
    timed_out: int = 0
    provider_lookups: int = 0
    max_in_flight: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class PackageMetadata:
    """The outcome of fetching one package.

    Attributes:
        name: Package name.
        records: Versions sorted ascending, one record per version.
        error: The fetch failure, if the package could not be retrieved.
    """

    name: str
    records: tuple[VersionRecord, ...] = ()
    error: FetchError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def _prepare(name: str, records: Iterable[VersionRecord]) -> tuple[VersionRecord, ...]:
    unique: dict[Any, VersionRecord] = {}
    for record in records:
        if record.name != name:
            logger.debug("ignoring %s in metadata for %s", record.pretty, name)
            continue
        unique.setdefault(record.version, record)
    return tuple(sorted(unique.values(), key=lambda r: r.version))


# ---------------------------------------------------------------------------
# FetchCache
# ---------------------------------------------------------------------------


class FetchCache:
    """Insert-or-join map from a key to a single shared asyncio task."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, asyncio.Future] = {}

    def get_or_create(
        self, key: str, factory: Callable[[], Awaitable[Any]]
    ) -> tuple[asyncio.Future, bool]:
        """Return the task for ``key``, starting it with ``factory`` if absent.

        Returns:
            ``(task, created)`` where ``created`` is False when the caller
            joined an existing task.
        """
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing, False
            task = asyncio.ensure_future(factory())
            self._entries[key] = task
            return task, True

    def put(self, key: str, future: asyncio.Future) -> None:
        with self._lock:
            self._entries[key] = future

    def get(self, key: str) -> asyncio.Future | None:
        with self._lock:
            return self._entries.get(key)

    def pending(self) -> list[asyncio.Future]:
        with self._lock:
            return [f for f in self._entries.values() if not f.done()]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# FetchScheduler
# ---------------------------------------------------------------------------


class FetchScheduler:
    """Bounded, deduplicated background fetching on top of a fetcher.

    Args:
        fetcher: The metadata source.
        max_concurrent: Maximum fetches running at once.
        request_timeout: Seconds allowed per fetch, or None for no limit.
    """

    def __init__(
        self,
        fetcher: MetadataFetcher,
        *,
        max_concurrent: int,
        request_timeout: float | None = None,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._fetcher = fetcher
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._timeout = request_timeout
        self._metadata = FetchCache()
        self._providers = FetchCache()
        self._in_flight = 0
        self.stats = FetchStats()

    # -- requests -----------------------------------------------------------

    def seed(self, name: str, records: Sequence[VersionRecord]) -> None:
        """Install known metadata without fetching (root, platform packages)."""
        future = asyncio.get_running_loop().create_future()
        future.set_result(PackageMetadata(name, _prepare(name, records)))
        self._metadata.put(name, future)

    def request(self, name: str) -> asyncio.Future:
        """Start fetching ``name`` unless it is already fetched or in flight."""
        task, created = self._metadata.get_or_create(name, lambda: self._run(name))
        if created:
            self.stats.requested += 1
            logger.debug("fetch requested: %s", name)
        else:
            self.stats.joined += 1
        return task

    def is_ready(self, name: str) -> bool:
        future = self._metadata.get(name)
        return future is not None and future.done()

    def result(self, name: str) -> PackageMetadata:
        """The finished metadata for ``name``.

        Re-raises unexpected exceptions from the fetcher.

        Raises:
            RuntimeError: If the fetch was never requested or is unfinished.
        """
        future = self._metadata.get(name)
        if future is None or not future.done():
            raise RuntimeError(f"metadata for {name} is not ready")
        return future.result()

    async def get(self, name: str) -> PackageMetadata:
        return await self.request(name)

    async def wait_for(
        self, names: Iterable[str], cancel: asyncio.Event | None = None
    ) -> None:
        """Suspend until metadata for every name has arrived.

        Raises:
            ResolutionCancelled: If ``cancel`` is set first.
        """
        await self._settle([self.request(name) for name in names], cancel)

    async def providers(
        self, name: str, cancel: asyncio.Event | None = None
    ) -> list[PackageMetadata]:
        """Fetched metadata of every package that may provide ``name``.

        Raises:
            ResolutionCancelled: If ``cancel`` is set first.
        """
        lookup, created = self._providers.get_or_create(
            name, lambda: self._lookup_providers(name)
        )
        if created:
            self.stats.provider_lookups += 1
        await self._settle([lookup], cancel)
        futures = [self.request(p) for p in lookup.result()]
        await self._settle(futures, cancel)
        results = [future.result() for future in futures]
        return [metadata for metadata in results if not metadata.failed]

    @staticmethod
    async def _settle(futures: list, cancel: asyncio.Event | None) -> None:
        cancel_waiter = None
        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise ResolutionCancelled("resolution cancelled")
                pending = {f for f in futures if not f.done()}
                if not pending:
                    return
                if cancel is not None and cancel_waiter is None:
                    cancel_waiter = asyncio.ensure_future(cancel.wait())
                if cancel_waiter is not None:
                    pending.add(cancel_waiter)
                await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

    async def aclose(self) -> None:
        """Cancel outstanding fetches and wait for them to unwind."""
        pending = self._metadata.pending() + self._providers.pending()
        for future in pending:
            future.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug("cancelled %d outstanding fetches", len(pending))

    # -- workers ------------------------------------------------------------

    async def _run(self, name: str) -> PackageMetadata:
        async with self._semaphore:
            self._in_flight += 1
            self.stats.max_in_flight = max(self.stats.max_in_flight, self._in_flight)
            try:
                records = await asyncio.wait_for(self._fetcher.fetch(name), self._timeout)
            except asyncio.TimeoutError:
                self.stats.timed_out += 1
                logger.warning("fetching %s timed out after %ss", name, self._timeout)
                error = FetchError(name, f"timed out after {self._timeout}s")
                return PackageMetadata(name, error=error)
            except FetchError as exc:
                self.stats.failed += 1
                logger.warning("fetching %s failed: %s", name, exc)
                return PackageMetadata(name, error=exc)
            finally:
                self._in_flight -= 1
        self.stats.completed += 1
        prepared = _prepare(name, records)
        logger.debug("fetched %s: %d versions", name, len(prepared))
        return PackageMetadata(name, prepared)

    async def _lookup_providers(self, name: str) -> tuple[str, ...]:
        async with self._semaphore:
            try:
                found = await asyncio.wait_for(
                    self._fetcher.find_providers(name), self._timeout
                )
            except (FetchError, asyncio.TimeoutError) as exc:
                logger.warning("provider lookup for %s failed: %s", name, exc)
                return ()
        names: dict[str, None] = {}
        for provider in found:
            try:
                normalized = normalize_name(provider)
            except ParseError:
                logger.warning("ignoring invalid provider name %r", provider)
                continue
            if normalized != name:
                names.setdefault(normalized, None)
        return tuple(sorted(names))
