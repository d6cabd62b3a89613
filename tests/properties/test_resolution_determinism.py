"""Property-based tests for resolution soundness and determinism.

Random catalogs of a few packages with cross requirements are resolved.
A successful resolution must satisfy every requirement it selected, and
repeating the resolution (with any concurrency limit) must give the same
outcome, down to the conflict explanation text.
"""
from __future__ import annotations

import asyncio

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from pubsolve.config import ResolutionMode, ResolverConfig
from pubsolve.core.fetch.memory import InMemoryFetcher
from pubsolve.core.resolution.models import Resolution
from pubsolve.core.solver.models import Dependency
from pubsolve.core.version.constraints import parse_constraint
from pubsolve.exceptions import ConflictError
from pubsolve.resolver import Resolver

PACKAGES = ["v/p0", "v/p1", "v/p2", "v/p3"]
VERSIONS = ["1.0.0", "1.1.0", "2.0.0"]
CONSTRAINTS = ["*", "^1.0", "^2.0", ">=1.1", "1.0.0"]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@st.composite
def catalogs(draw: st.DrawFn) -> dict[str, dict[str, dict]]:
    catalog: dict[str, dict[str, dict]] = {}
    for name in PACKAGES:
        versions = draw(st.lists(st.sampled_from(VERSIONS), min_size=1, max_size=3, unique=True))
        catalog[name] = {}
        for version in versions:
            targets = draw(st.sets(st.sampled_from([p for p in PACKAGES if p != name]), max_size=2))
            catalog[name][version] = {
                "require": {target: draw(st.sampled_from(CONSTRAINTS)) for target in sorted(targets)}
            }
    return catalog


root_constraints = st.sampled_from(CONSTRAINTS)
modes = st.sampled_from(list(ResolutionMode))


def _outcome(catalog: dict, root: str, config: ResolverConfig) -> object:
    fetcher = InMemoryFetcher.from_catalog(catalog)
    requirements = [Dependency.parse("v/p0", root)]
    try:
        return asyncio.run(Resolver(fetcher, config).resolve(requirements))
    except ConflictError as exc:
        return str(exc.explanation)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestResolutionProperties:
    """Soundness and determinism on random catalogs."""

    @given(catalog=catalogs(), root=root_constraints, mode=modes)
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_solutions_satisfy_every_requirement(
        self, catalog: dict, root: str, mode: ResolutionMode
    ) -> None:
        outcome = _outcome(catalog, root, ResolverConfig(mode=mode, max_concurrent=4))
        if not isinstance(outcome, Resolution):
            return
        assert parse_constraint(root).contains(outcome.version_of("v/p0"))
        for package in outcome:
            for link in package.record.requires:
                selected = outcome.version_of(link.target)
                assert selected is not None, f"{package} needs {link.target}"
                assert link.constraint.contains(selected)

    @given(catalog=catalogs(), root=root_constraints, mode=modes)
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_outcome_is_deterministic(
        self, catalog: dict, root: str, mode: ResolutionMode
    ) -> None:
        serial = _outcome(catalog, root, ResolverConfig(mode=mode, max_concurrent=1))
        parallel = _outcome(catalog, root, ResolverConfig(mode=mode, max_concurrent=8))
        if isinstance(serial, Resolution):
            assert isinstance(parallel, Resolution)
            assert serial == parallel
        else:
            assert serial == parallel
