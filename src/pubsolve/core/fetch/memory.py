"""In-memory metadata fetcher for tests and embedding.

Example::

    fetcher = InMemoryFetcher()
    fetcher.add("vendor/a", "1.0.0", require={"vendor/c": ">=1.0,<1.5"})
    fetcher.add("vendor/c", "1.4.0")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping, Sequence

from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.fetch.records import record_from_dict
from pubsolve.core.solver.models import VersionRecord, normalize_name
from pubsolve.exceptions import FetchError

logger = logging.getLogger(__name__)


class InMemoryFetcher(MetadataFetcher):
    """A fetcher backed by a dictionary of version records.

    Args:
        records: Initial records.
        delay: Seconds every fetch sleeps before answering, to exercise
            concurrency.
    """

    def __init__(self, records: Iterable[VersionRecord] = (), *, delay: float = 0.0) -> None:
        self._packages: dict[str, list[VersionRecord]] = {}
        self._failures: dict[str, str] = {}
        self._delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        for record in records:
            self.add_record(record)

    @classmethod
    def from_catalog(
        cls, catalog: Mapping[str, Mapping[str, Mapping[str, Any]]], **kwargs: Any
    ) -> InMemoryFetcher:
        """Build a fetcher from ``{name: {version: composer-style fields}}``."""
        fetcher = cls(**kwargs)
        for name, versions in catalog.items():
            for version, fields in versions.items():
                fetcher.add_record(record_from_dict(fields, name=name, version=version))
        return fetcher

    # -- catalog management -------------------------------------------------

    def add(
        self,
        name: str,
        version: str,
        *,
        require: Mapping[str, str] | None = None,
        require_dev: Mapping[str, str] | None = None,
        provide: Mapping[str, str] | None = None,
        replace: Mapping[str, str] | None = None,
        conflict: Mapping[str, str] | None = None,
        **metadata: Any,
    ) -> VersionRecord:
        """Add one version and return its record."""
        data: dict[str, Any] = dict(metadata)
        data.update(
            {
                "require": require or {},
                "require-dev": require_dev or {},
                "provide": provide or {},
                "replace": replace or {},
                "conflict": conflict or {},
            }
        )
        record = record_from_dict(data, name=name, version=version)
        self.add_record(record)
        return record

    def add_record(self, record: VersionRecord) -> None:
        self._packages.setdefault(record.name, []).append(record)

    def fail(self, name: str, message: str = "unreachable") -> None:
        """Make every fetch of ``name`` raise FetchError."""
        self._failures[normalize_name(name)] = message

    def names(self) -> list[str]:
        return sorted(self._packages)

    # -- MetadataFetcher ----------------------------------------------------

    async def fetch(self, name: str) -> Sequence[VersionRecord]:
        self.calls.append(name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if name in self._failures:
                raise FetchError(name, self._failures[name])
            return list(self._packages.get(name, ()))
        finally:
            self.in_flight -= 1

    async def find_providers(self, name: str) -> Sequence[str]:
        providers = {
            record.name
            for records in self._packages.values()
            for record in records
            if record.satisfies_virtual(name)
        }
        return sorted(providers)
