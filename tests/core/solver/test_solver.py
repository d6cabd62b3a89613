"""End-to-end solver scenarios over an in-memory catalog."""

from __future__ import annotations

import asyncio

import pytest

from pubsolve.config import ResolutionMode, ResolverConfig
from pubsolve.core.fetch.memory import InMemoryFetcher
from pubsolve.core.version.stability import Stability
from pubsolve.exceptions import ConflictError, FetchError, ResolutionError
from pubsolve.resolver import Resolver
from tests.helpers import deps, solve, versions_of


def failing_resolve(fetcher, requirements, config=None):
    return asyncio.run(Resolver(fetcher, config).resolve(requirements))


# ---------------------------------------------------------------------------
# Basic selection
# ---------------------------------------------------------------------------


class TestBasicSelection:
    """Highest compatible versions, transitively."""

    def test_empty_requirements(self) -> None:
        resolution = solve(InMemoryFetcher(), [])
        assert len(resolution) == 0

    def test_diamond(self, diamond_fetcher: InMemoryFetcher) -> None:
        resolution = solve(diamond_fetcher, deps(("vendor/a", "^1.0"), ("vendor/b", "^1.0")))
        assert versions_of(resolution) == {
            "vendor/a": "1.0.0",
            "vendor/b": "1.0.0",
            "vendor/c": "1.4.0",
        }

    def test_installation_order(self, diamond_fetcher: InMemoryFetcher) -> None:
        resolution = solve(diamond_fetcher, deps(("vendor/a", "^1.0"), ("vendor/b", "^1.0")))
        assert resolution.names() == ["vendor/c", "vendor/a", "vendor/b"]

    def test_backtracks_to_older_version(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/foo", "1.0.0")
        fetcher.add("vendor/foo", "1.1.0", require={"vendor/bar": "^2.0"})
        fetcher.add("vendor/bar", "1.0.0")
        resolution = solve(fetcher, deps(("vendor/foo", "^1.0")))
        assert versions_of(resolution) == {"vendor/foo": "1.0.0"}
        assert resolution.stats.solver.conflicts >= 1

    def test_transitive_failure_avoided(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0")
        fetcher.add("vendor/a", "2.0.0", require={"vendor/broken": "*"})
        fetcher.fail("vendor/broken", "HTTP 500")
        resolution = solve(fetcher, deps(("vendor/a", "*")))
        assert versions_of(resolution) == {"vendor/a": "1.0.0"}

    def test_branch_requirement(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0")
        fetcher.add("vendor/a", "dev-main")
        resolution = solve(fetcher, deps(("vendor/a", "dev-main")))
        assert versions_of(resolution) == {"vendor/a": "dev-main"}

    def test_cycle(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", require={"vendor/b": "*"})
        fetcher.add("vendor/b", "1.0.0", require={"vendor/a": "*"})
        resolution = solve(fetcher, deps(("vendor/a", "*")))
        assert resolution.names() == ["vendor/a", "vendor/b"]


# ---------------------------------------------------------------------------
# Modes and stability
# ---------------------------------------------------------------------------


@pytest.fixture
def prerelease_fetcher() -> InMemoryFetcher:
    fetcher = InMemoryFetcher()
    for version in ("1.0.0", "1.1.0-beta", "1.2.0"):
        fetcher.add("vendor/lib", version)
    return fetcher


class TestModes:
    """Candidate ordering per resolution mode."""

    def test_prefer_lowest(self, diamond_fetcher: InMemoryFetcher) -> None:
        config = ResolverConfig(mode=ResolutionMode.PREFER_LOWEST)
        resolution = solve(
            diamond_fetcher, deps(("vendor/a", "^1.0"), ("vendor/b", "^1.0")), config
        )
        assert versions_of(resolution)["vendor/c"] == "1.2.0"

    def test_stable_default(self, prerelease_fetcher: InMemoryFetcher) -> None:
        resolution = solve(prerelease_fetcher, deps(("vendor/lib", "^1.0")))
        assert versions_of(resolution) == {"vendor/lib": "1.2.0"}

    def test_prerelease_only_range_conflicts_under_stable(
        self, prerelease_fetcher: InMemoryFetcher
    ) -> None:
        with pytest.raises(ConflictError):
            failing_resolve(prerelease_fetcher, deps(("vendor/lib", ">=1.1,<1.2")))

    def test_minimum_stability_admits_prerelease(
        self, prerelease_fetcher: InMemoryFetcher
    ) -> None:
        config = ResolverConfig(minimum_stability=Stability.BETA)
        resolution = solve(prerelease_fetcher, deps(("vendor/lib", ">=1.1,<1.2")), config)
        assert versions_of(resolution) == {"vendor/lib": "1.1.0-beta"}

    def test_root_flag_lowers_stability_for_that_package(
        self, prerelease_fetcher: InMemoryFetcher
    ) -> None:
        resolution = solve(prerelease_fetcher, deps(("vendor/lib", "~1.1.0@beta")))
        assert versions_of(resolution) == {"vendor/lib": "1.1.0-beta"}

    def test_prefer_latest_ignores_stability(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/lib", "1.0.0")
        fetcher.add("vendor/lib", "1.3.0-beta")
        config = ResolverConfig(mode=ResolutionMode.PREFER_LATEST)
        resolution = solve(fetcher, deps(("vendor/lib", "^1.0")), config)
        assert versions_of(resolution) == {"vendor/lib": "1.3.0-beta"}

    def test_prefer_stable(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/lib", "1.0.0")
        fetcher.add("vendor/lib", "1.1.0-beta")
        loose = ResolverConfig(minimum_stability=Stability.DEV)
        assert versions_of(solve(fetcher, deps(("vendor/lib", "^1.0")), loose)) == {
            "vendor/lib": "1.1.0-beta"
        }
        stable_first = ResolverConfig(minimum_stability=Stability.DEV, prefer_stable=True)
        assert versions_of(solve(fetcher, deps(("vendor/lib", "^1.0")), stable_first)) == {
            "vendor/lib": "1.0.0"
        }

    def test_numeric_versions_before_branches(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/lib", "dev-main")
        fetcher.add("vendor/lib", "1.0.0")
        config = ResolverConfig(minimum_stability=Stability.DEV)
        resolution = solve(fetcher, deps(("vendor/lib", "*")), config)
        assert versions_of(resolution) == {"vendor/lib": "1.0.0"}


class TestLockedVersions:
    """Pins from a previous resolution."""

    def test_locked_version_preferred(self, diamond_fetcher: InMemoryFetcher) -> None:
        resolution = solve(
            diamond_fetcher,
            deps(("vendor/a", "^1.0"), ("vendor/b", "^1.0")),
            locked={"vendor/c": "1.2.0"},
        )
        assert versions_of(resolution)["vendor/c"] == "1.2.0"

    def test_incompatible_pin_is_only_a_hint(self, diamond_fetcher: InMemoryFetcher) -> None:
        resolution = solve(
            diamond_fetcher,
            deps(("vendor/a", "^1.0"), ("vendor/b", "^1.0")),
            locked={"vendor/c": "1.6.0"},
        )
        assert versions_of(resolution)["vendor/c"] == "1.4.0"


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class TestConflicts:
    """Unsatisfiable requirements produce an explanation."""

    def test_incompatible_requirements(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", require={"vendor/c": "^1.0"})
        fetcher.add("vendor/b", "1.0.0", require={"vendor/c": "^2.0"})
        fetcher.add("vendor/c", "1.0.0")
        with pytest.raises(ConflictError) as excinfo:
            failing_resolve(fetcher, deps(("vendor/a", "*"), ("vendor/b", "*")))
        explanation = excinfo.value.explanation
        assert {"vendor/a", "vendor/b", "vendor/c"} <= explanation.packages()
        assert str(explanation).endswith("version solving failed.")

    def test_unknown_package(self) -> None:
        with pytest.raises(ConflictError) as excinfo:
            failing_resolve(InMemoryFetcher(), deps(("vendor/missing", "^1.0")))
        assert "no versions of vendor/missing match ^1.0" in str(excinfo.value)

    def test_declared_conflict_forces_other_version(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", conflict={"vendor/b": "<1.1"})
        fetcher.add("vendor/b", "1.0.0")
        fetcher.add("vendor/b", "1.1.0")
        config = ResolverConfig(mode=ResolutionMode.PREFER_LOWEST)
        resolution = solve(fetcher, deps(("vendor/a", "*"), ("vendor/b", "^1.0")), config)
        assert versions_of(resolution)["vendor/b"] == "1.1.0"

    def test_declared_conflict_without_way_out(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", conflict={"vendor/b": "*"})
        fetcher.add("vendor/b", "1.0.0")
        with pytest.raises(ConflictError) as excinfo:
            failing_resolve(fetcher, deps(("vendor/a", "*"), ("vendor/b", "*")))
        assert "conflicts with" in str(excinfo.value)

    def test_replacement_satisfies_requirement(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/fork", "1.0.0", replace={"vendor/original": "1.0.0"})
        fetcher.add("vendor/original", "1.0.0")
        resolution = solve(fetcher, deps(("vendor/fork", "*"), ("vendor/original", "1.0.0")))
        assert resolution.names() == ["vendor/fork"]

    def test_replaced_package_cannot_be_installed_alongside(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/fork", "1.0.0", replace={"vendor/original": "1.0.0"})
        fetcher.add("vendor/original", "1.0.0")
        config = ResolverConfig(resolve_providers=False)
        with pytest.raises(ConflictError) as excinfo:
            failing_resolve(
                fetcher, deps(("vendor/fork", "*"), ("vendor/original", "1.0.0")), config
            )
        assert "replaces vendor/original" in str(excinfo.value)


# ---------------------------------------------------------------------------
# Platform, exclusions, failures and limits
# ---------------------------------------------------------------------------


class TestEnvironment:
    """Platform packages and excluded names."""

    def test_platform_requirements_skipped_by_default(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", require={"php": ">=8.1", "ext-json": "*"})
        resolution = solve(fetcher, deps(("vendor/a", "*"), ("php", "^8.0")))
        assert resolution.names() == ["vendor/a"]
        assert resolution.platform_packages == ["ext-json", "php"]
        assert "php" not in fetcher.calls

    def test_configured_platform_is_enforced(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0", require={"php": ">=8.1"})
        fetcher.add("vendor/a", "0.9.0", require={"php": ">=7.4"})
        config = ResolverConfig(platform={"php": "8.0.2"})
        resolution = solve(fetcher, deps(("vendor/a", "*")), config)
        assert versions_of(resolution) == {"vendor/a": "0.9.0"}
        assert resolution.platform_packages == ["php"]

    def test_excluded_package(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/a", "1.0.0")
        config = ResolverConfig(excluded=frozenset({"vendor/a"}))
        with pytest.raises(ConflictError) as excinfo:
            failing_resolve(fetcher, deps(("vendor/a", "*")), config)
        assert "excluded" in str(excinfo.value)
        assert "vendor/a" not in fetcher.calls


class TestFailuresAndLimits:
    """Fetch errors and the iteration guard."""

    def test_root_required_fetch_failure(self) -> None:
        fetcher = InMemoryFetcher()
        fetcher.fail("vendor/a", "HTTP 503")
        with pytest.raises(FetchError) as excinfo:
            failing_resolve(fetcher, deps(("vendor/a", "*")))
        assert excinfo.value.package == "vendor/a"

    def test_iteration_limit(self, diamond_fetcher: InMemoryFetcher) -> None:
        config = ResolverConfig(max_iterations=1)
        with pytest.raises(ResolutionError, match="solver iterations"):
            failing_resolve(diamond_fetcher, deps(("vendor/a", "*")), config)


# ---------------------------------------------------------------------------
# Dev requirements
# ---------------------------------------------------------------------------


class TestDevRequirements:
    """Partition into runtime and development packages."""

    @pytest.fixture
    def fetcher(self) -> InMemoryFetcher:
        fetcher = InMemoryFetcher()
        fetcher.add("vendor/app-lib", "1.0.0", require={"vendor/shared": "*"})
        fetcher.add("vendor/testing", "1.0.0", require={"vendor/shared": "*", "vendor/mock": "*"})
        fetcher.add("vendor/shared", "1.0.0")
        fetcher.add("vendor/mock", "1.0.0")
        return fetcher

    def test_partition(self, fetcher: InMemoryFetcher) -> None:
        resolution = solve(
            fetcher, deps(("vendor/app-lib", "*"), dev=(("vendor/testing", "*"),))
        )
        assert [p.name for p in resolution.dev] == ["vendor/mock", "vendor/testing"]
        assert [p.name for p in resolution.non_dev] == ["vendor/shared", "vendor/app-lib"]

    def test_without_dev(self, fetcher: InMemoryFetcher) -> None:
        config = ResolverConfig(include_dev=False)
        resolution = solve(
            fetcher, deps(("vendor/app-lib", "*"), dev=(("vendor/testing", "*"),)), config
        )
        assert resolution.names() == ["vendor/shared", "vendor/app-lib"]
        assert "vendor/testing" not in fetcher.calls
