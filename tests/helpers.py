"""Helpers shared by the resolver tests."""

from __future__ import annotations

import asyncio

from pubsolve.config import ResolverConfig
from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.resolution.models import Resolution
from pubsolve.core.solver.models import Dependency
from pubsolve.resolver import Resolver


def deps(*specs: tuple[str, str], dev: tuple[tuple[str, str], ...] = ()) -> list[Dependency]:
    """Build root dependencies from ``(name, constraint)`` pairs."""
    result = [Dependency.parse(name, constraint) for name, constraint in specs]
    result += [Dependency.parse(name, constraint, is_dev=True) for name, constraint in dev]
    return result


def solve(
    fetcher: MetadataFetcher,
    requirements: list[Dependency],
    config: ResolverConfig | None = None,
    locked: dict[str, str] | None = None,
) -> Resolution:
    """Resolve synchronously and return the Resolution."""
    outcome = asyncio.run(Resolver(fetcher, config).resolve(requirements, locked))
    assert isinstance(outcome, Resolution)
    return outcome


def versions_of(resolution: Resolution) -> dict[str, str]:
    """Package name -> selected version text."""
    return {package.name: package.version.text for package in resolution}
