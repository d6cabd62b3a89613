"""Tests for virtual package resolution through provide and replace."""

from __future__ import annotations

import asyncio

import pytest

from pubsolve.config import ResolverConfig
from pubsolve.core.fetch.memory import InMemoryFetcher
from pubsolve.exceptions import ConflictError
from pubsolve.resolver import Resolver
from tests.helpers import deps, solve, versions_of

VIRTUAL = "psr/log-implementation"


class TestProviders:
    """A requirement on a virtual name is met by a provider."""

    def test_single_provider(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/logger", "2.0.0", provide={VIRTUAL: "1.0.0"})
        resolution = solve(fetcher, deps((VIRTUAL, "^1.0")))
        assert versions_of(resolution) == {"vendor/logger": "2.0.0"}

    def test_provider_version_must_match(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/logger", "1.0.0", provide={VIRTUAL: "1.0.0"})
        fetcher.add("vendor/logger", "2.0.0", provide={VIRTUAL: "2.0.0"})
        resolution = solve(fetcher, deps((VIRTUAL, "^1.0")))
        assert versions_of(resolution) == {"vendor/logger": "1.0.0"}

    def test_alternatives_tried_in_name_order(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/zlog", "1.0.0", provide={VIRTUAL: "1.0.0"})
        fetcher.add("vendor/alog", "1.0.0", provide={VIRTUAL: "1.0.0"})
        resolution = solve(fetcher, deps((VIRTUAL, "^1.0")))
        assert resolution.names() == ["vendor/alog"]

    def test_selected_provider_is_reused(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/app", "1.0.0", require={VIRTUAL: "^1.0", "vendor/zlog": "*"})
        fetcher.add("vendor/zlog", "1.0.0", provide={VIRTUAL: "1.0.0"})
        fetcher.add("vendor/alog", "1.0.0", provide={VIRTUAL: "1.0.0"})
        resolution = solve(fetcher, deps(("vendor/app", "*")))
        assert resolution.names() == ["vendor/zlog", "vendor/app"]
        assert resolution.dependencies_of("vendor/app") == ["vendor/zlog"]

    def test_real_package_with_virtual_name(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/interface", "1.0.0")
        fetcher.add("vendor/impl", "1.0.0", replace={"vendor/interface": "1.0.0"})
        resolution = solve(fetcher, deps(("vendor/interface", "^1.0")))
        assert len(resolution) == 1

    def test_no_provider_conflicts(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/logger", "1.0.0", provide={VIRTUAL: "2.0.0"})
        with pytest.raises(ConflictError) as excinfo:
            asyncio.run(Resolver(fetcher).resolve(deps((VIRTUAL, "^1.0"))))
        assert VIRTUAL in excinfo.value.explanation.packages()

    def test_provider_lookup_disabled(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/logger", "2.0.0", provide={VIRTUAL: "1.0.0"})
        config = ResolverConfig(resolve_providers=False)
        with pytest.raises(ConflictError):
            asyncio.run(Resolver(fetcher, config).resolve(deps((VIRTUAL, "^1.0"))))
