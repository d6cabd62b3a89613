"""Metadata fetchers and the streaming fetch scheduler.

Every metadata source implements :class:`MetadataFetcher`. The variants are
an in-memory catalog, local path repositories, a Packagist-compatible
registry (needs the ``registry`` extra) and git repositories.

Public API::

    from pubsolve.core.fetch import MetadataFetcher, InMemoryFetcher, PathFetcher
    from pubsolve.core.fetch.registry import RegistryFetcher
    from pubsolve.core.fetch.vcs import VcsFetcher
"""

from __future__ import annotations

from pubsolve.core.fetch.base import CompositeFetcher, MetadataFetcher
from pubsolve.core.fetch.memory import InMemoryFetcher
from pubsolve.core.fetch.path import PathFetcher
from pubsolve.core.fetch.records import record_from_dict
from pubsolve.core.fetch.scheduler import (
    FetchCache,
    FetchScheduler,
    FetchStats,
    PackageMetadata,
)

__all__ = [
    "CompositeFetcher",
    "FetchCache",
    "FetchScheduler",
    "FetchStats",
    "InMemoryFetcher",
    "MetadataFetcher",
    "PackageMetadata",
    "PathFetcher",
    "record_from_dict",
]
