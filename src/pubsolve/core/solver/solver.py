"""Conflict-driven version solving.

:class:`VersionSolver` runs the PubGrub loop over one set of root
requirements:

1. **Propagate**: any incompatibility with exactly one undecided term forces
   that term's negation; one whose terms are all satisfied is a conflict.
2. **Resolve conflicts**: resolve the conflicting incompatibility against
   the causes of its satisfiers until it mentions a single decision at the
   highest level. Learn it, backtrack, and propagate again. Learning an
   incompatibility that rules out the root proves failure.
3. **Decide**: choose a package with an open positive term, pick one of its
   versions and record its dependencies as new incompatibilities.

Metadata arrives through a :class:`FetchScheduler`. Packages are requested
the moment an incompatibility mentions them, and the solver suspends only
when a decision needs metadata that has not arrived yet.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Mapping, Sequence

from pubsolve.config import ResolutionMode, ResolverConfig
from pubsolve.core.solver.incompatibility import Incompatibility, IncompatibilityCause
from pubsolve.core.solver.models import (
    ROOT,
    ROOT_VERSION,
    Dependency,
    Link,
    LinkKind,
    VersionRecord,
    is_platform_package,
)
from pubsolve.core.solver.partial_solution import PartialSolution
from pubsolve.core.solver.report import ConflictExplanation
from pubsolve.core.solver.store import (
    IncompatibilityStore,
    conflict_incompatibilities,
    dependency_incompatibility,
    no_versions_incompatibility,
    provider_ranges,
    root_incompatibility,
    unavailable_incompatibility,
)
from pubsolve.core.solver.term import SetRelation, Term
from pubsolve.core.version.stability import Stability
from pubsolve.core.version.version import Version, parse_version
from pubsolve.exceptions import (
    ConflictError,
    FetchError,
    ResolutionCancelled,
    ResolutionError,
)

if TYPE_CHECKING:
    from pubsolve.core.fetch.scheduler import FetchScheduler

logger = logging.getLogger(__name__)

_CONFLICT = object()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class SolverStats:
    """Counters describing how much work a solve took."""

    iterations: int = 0
    decisions: int = 0
    conflicts: int = 0
    propagations: int = 0
    backtracks: int = 0
    incompatibilities: int = 0
    attempted_solutions: int = 0
    elapsed: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class SolverResult:
    """The decisions of a successful solve.

    Attributes:
        root: The synthetic root record carrying the root requirements.
        decisions: Selected records by package name, in decision order,
            without the root and without platform packages.
        platform_packages: Platform package names that were required.
        stats: Solver counters.
    """

    root: VersionRecord
    decisions: dict[str, VersionRecord]
    platform_packages: list[str] = field(default_factory=list)
    stats: SolverStats = field(default_factory=SolverStats)


def build_root_record(
    requirements: Sequence[Dependency], include_dev: bool = True
) -> VersionRecord:
    """The synthetic root package whose requirements are the root dependencies."""
    requires = tuple(
        Link(ROOT, dep.name, dep.constraint, LinkKind.REQUIRE)
        for dep in requirements
        if not dep.is_dev
    )
    dev_requires = tuple(
        Link(ROOT, dep.name, dep.constraint, LinkKind.REQUIRE_DEV)
        for dep in requirements
        if dep.is_dev and include_dev
    )
    return VersionRecord(ROOT, ROOT_VERSION, requires=requires, dev_requires=dev_requires)


# ---------------------------------------------------------------------------
# VersionSolver
# ---------------------------------------------------------------------------


class VersionSolver:
    """Solves one set of root requirements against a fetch scheduler.

    A solver is single-use: create one per resolution.

    Args:
        requirements: Root dependencies.
        scheduler: Source of package metadata.
        config: Resolution settings.
        locked: Previously locked versions, preferred while still allowed.
        cancel: Event that aborts the solve when set.
    """

    def __init__(
        self,
        requirements: Sequence[Dependency],
        scheduler: FetchScheduler,
        config: ResolverConfig,
        *,
        locked: Mapping[str, Version] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._locked = dict(locked or {})
        self._cancel = cancel
        self._store = IncompatibilityStore()
        self._solution = PartialSolution()
        self._stats = SolverStats()
        self._root = build_root_record(requirements, config.include_dev)
        self._root_required = {link.target for link in self._root_links()}
        self._skipped_platform: set[str] = set()

        self._stability_flags: dict[str, Stability] = {}
        for dep in requirements:
            if dep.constraint.stability is None:
                continue
            current = self._stability_flags.get(dep.name, Stability.STABLE)
            self._stability_flags[dep.name] = min(current, dep.constraint.stability)

    @property
    def stats(self) -> SolverStats:
        return self._stats

    @property
    def store(self) -> IncompatibilityStore:
        return self._store

    # -- main loop ----------------------------------------------------------

    async def solve(self) -> SolverResult:
        """Run the solver to completion.

        Raises:
            ConflictError: If the requirements cannot be satisfied.
            FetchError: If a package the root requires cannot be fetched.
            ResolutionCancelled: If the cancel event fires.
            ResolutionError: If the iteration limit is exceeded.
        """
        started = time.monotonic()
        self._seed()
        self._add_incompatibility(root_incompatibility())
        try:
            next_package: str | None = ROOT
            while next_package is not None:
                self._check_limits()
                self._propagate(next_package)
                next_package = await self._choose_package_version()
        finally:
            self._stats.elapsed = time.monotonic() - started
            self._stats.incompatibilities = len(self._store)
            self._stats.attempted_solutions = self._solution.attempted_solutions

        logger.debug(
            "version solving took %.3f seconds; tried %d solutions",
            self._stats.elapsed,
            self._stats.attempted_solutions,
        )
        return self._result()

    def _seed(self) -> None:
        self._scheduler.seed(ROOT, [self._root])
        for name, text in sorted(self._config.platform.items()):
            record = VersionRecord(name, parse_version(text), metadata={"type": "platform"})
            self._scheduler.seed(name, [record])
        for name in sorted(self._config.excluded):
            self._scheduler.seed(name, [])

    def _check_limits(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise ResolutionCancelled("resolution cancelled")
        self._stats.iterations += 1
        if self._stats.iterations > self._config.max_iterations:
            raise ResolutionError(
                f"Gave up after {self._config.max_iterations} solver iterations"
            )

    # -- propagation --------------------------------------------------------

    def _propagate(self, package: str) -> None:
        """Unit propagation starting from the incompatibilities of ``package``."""
        changed: dict[str, None] = {package: None}
        while changed:
            current = next(iter(changed))
            del changed[current]

            # Newer incompatibilities are checked first; they tend to be the
            # more specific ones.
            for incompatibility in reversed(list(self._store.for_package(current))):
                result = self._propagate_incompatibility(incompatibility)
                if result is _CONFLICT:
                    root_cause = self._resolve_conflict(incompatibility)
                    changed.clear()
                    forced = self._propagate_incompatibility(root_cause)
                    if not isinstance(forced, str):
                        raise RuntimeError(f"[BUG] learned clause {root_cause} did not propagate")
                    changed[forced] = None
                    break
                if result is not None:
                    changed[result] = None

    def _propagate_incompatibility(self, incompatibility: Incompatibility) -> object:
        """Derive the last open term of ``incompatibility``, if there is one.

        Returns:
            ``_CONFLICT`` if every term is satisfied, the derived package's
            name if a term was derived, otherwise None.
        """
        self._stats.propagations += 1
        unsatisfied: Term | None = None
        for term in incompatibility.terms:
            relation = self._solution.relation(term)
            if relation is SetRelation.DISJOINT:
                return None
            if relation is SetRelation.OVERLAPPING:
                if unsatisfied is not None:
                    return None
                unsatisfied = term

        if unsatisfied is None:
            return _CONFLICT

        logger.debug("derived: %s", unsatisfied.inverse)
        self._solution.derive(unsatisfied.inverse, incompatibility)
        return unsatisfied.package

    # -- conflict resolution ------------------------------------------------

    def _resolve_conflict(self, incompatibility: Incompatibility) -> Incompatibility:
        """Learn from a conflict and backtrack.

        Returns:
            The learned incompatibility, which is guaranteed to propagate
            after backtracking.

        Raises:
            ConflictError: If the learned incompatibility rules out the root.
        """
        logger.debug("conflict: %s", incompatibility)
        self._stats.conflicts += 1
        new_incompatibility = False
        while not incompatibility.is_failure:
            most_recent_term: Term | None = None
            most_recent_satisfier = None
            difference: Term | None = None
            previous_satisfier_level = 1

            for term in incompatibility.terms:
                satisfier = self._solution.satisfier(term)
                if most_recent_satisfier is None:
                    most_recent_term = term
                    most_recent_satisfier = satisfier
                elif most_recent_satisfier.index < satisfier.index:
                    previous_satisfier_level = max(
                        previous_satisfier_level, most_recent_satisfier.decision_level
                    )
                    most_recent_term = term
                    most_recent_satisfier = satisfier
                    difference = None
                else:
                    previous_satisfier_level = max(
                        previous_satisfier_level, satisfier.decision_level
                    )

                if most_recent_term is term:
                    # The satisfier may allow more than the term; the
                    # remainder must be satisfied by an earlier assignment.
                    difference = most_recent_satisfier.difference(most_recent_term)
                    if difference is not None:
                        previous_satisfier_level = max(
                            previous_satisfier_level,
                            self._solution.satisfier(difference.inverse).decision_level,
                        )

            if most_recent_satisfier is None or most_recent_term is None:
                raise RuntimeError(f"[BUG] no satisfier for {incompatibility}")
            if (
                previous_satisfier_level < most_recent_satisfier.decision_level
                or most_recent_satisfier.cause is None
            ):
                self._solution.backtrack(previous_satisfier_level)
                self._stats.backtracks += 1
                if new_incompatibility:
                    self._add_incompatibility(incompatibility)
                return incompatibility

            cause = most_recent_satisfier.cause
            new_terms = [t for t in incompatibility.terms if t is not most_recent_term]
            new_terms.extend(
                t for t in cause.terms if t.package != most_recent_satisfier.package
            )
            if difference is not None:
                new_terms.append(difference.inverse)

            incompatibility = Incompatibility(
                new_terms,
                IncompatibilityCause.DERIVED,
                left=incompatibility,
                right=cause,
            )
            new_incompatibility = True
            logger.debug("! which is caused by %s", cause)
            logger.debug("! thus: %s", incompatibility)

        raise ConflictError(ConflictExplanation(incompatibility))

    # -- decisions ----------------------------------------------------------

    async def _choose_package_version(self) -> str | None:
        """Decide the next package, or return None when the solution is complete."""
        unsatisfied = self._solution.unsatisfied
        if unsatisfied:
            await self._scheduler.wait_for([t.package for t in unsatisfied], self._cancel)
            term = min(unsatisfied, key=lambda t: (len(self._candidates(t)), t.package))
        else:
            pending = self._pending_disjunction()
            if pending is None:
                return None
            await self._scheduler.wait_for([pending.package], self._cancel)
            term = pending
        return await self._decide(term)

    def _pending_disjunction(self) -> Term | None:
        """An open alternative of an incompatibility that would otherwise hold.

        Once no positive term is open, every undecided package will be left
        out of the solution, which makes each of its negative terms true.
        An incompatibility with several such terms (a virtual requirement
        with providers) would then be violated, so one alternative must be
        pursued: the first open term, in the incompatibility's own order.
        """
        for incompatibility in self._store.disjunctive:
            open_term: Term | None = None
            violated = True
            for term in incompatibility.terms:
                if self._solution.is_decided(term.package):
                    if not self._solution.satisfies(term):
                        violated = False
                        break
                elif term.positive:
                    violated = False
                    break
                elif not self._solution.satisfies(term) and open_term is None:
                    open_term = term
            if violated and open_term is not None:
                negative = self._solution.negative_term(open_term.package)
                versions = open_term.versions
                if negative is not None:
                    versions = versions.difference(negative.versions)
                return Term(open_term.package, versions, True, open_term.label)
        return None

    def _minimum_stability(self, package: str) -> Stability:
        flag = self._stability_flags.get(package)
        if flag is None:
            return self._config.minimum_stability
        return min(self._config.minimum_stability, flag)

    def _candidates(self, term: Term) -> list[VersionRecord]:
        """Eligible records for ``term`` in order of preference."""
        metadata = self._scheduler.result(term.package)
        gated = not (
            self._config.mode is ResolutionMode.PREFER_LATEST
            or term.package == ROOT
            or term.package in self._config.platform
        )
        minimum = self._minimum_stability(term.package)
        eligible = [
            record
            for record in metadata.records
            if term.versions.contains(record.version)
            and (not gated or record.stability >= minimum)
        ]

        numeric = [r for r in eligible if not r.version.is_branch]
        branches = [r for r in eligible if r.version.is_branch]
        if self._config.mode is not ResolutionMode.PREFER_LOWEST:
            numeric.reverse()
        if self._config.prefer_stable:
            numeric.sort(key=lambda r: r.stability is not Stability.STABLE)
        ordered = numeric + branches

        locked = self._locked.get(term.package)
        if locked is not None:
            for index, record in enumerate(ordered):
                if record.version == locked:
                    ordered.insert(0, ordered.pop(index))
                    break
        return ordered

    async def _decide(self, term: Term) -> str:
        name = term.package
        metadata = self._scheduler.result(name)

        error = metadata.error
        if error is not None:
            if name in self._root_required:
                raise FetchError(
                    name, f"required by the root but could not be fetched: {error}"
                ) from error
            self._add_incompatibility(unavailable_incompatibility(term, str(error)))
            return name
        if name in self._config.excluded:
            self._add_incompatibility(unavailable_incompatibility(term, "excluded"))
            return name

        candidates = self._candidates(term)
        if not candidates:
            self._add_incompatibility(no_versions_incompatibility(term))
            return name

        record = candidates[0]
        conflict = False
        for incompatibility in await self._incompatibilities_for(record):
            self._add_incompatibility(incompatibility)
            # If this version's own facts already conflict with the partial
            # solution, let propagation rule it out instead of deciding it.
            conflict = conflict or all(
                t.package == name or self._solution.satisfies(t)
                for t in incompatibility.terms
            )

        if not conflict:
            self._solution.decide(name, record.version)
            self._stats.decisions += 1
            logger.debug("selecting %s", record.pretty)
        return name

    def _root_links(self) -> tuple[Link, ...]:
        return self._root.requires + self._root.dev_requires

    def _is_skipped_platform(self, name: str) -> bool:
        return is_platform_package(name) and name not in self._config.platform

    async def _incompatibilities_for(self, record: VersionRecord) -> list[Incompatibility]:
        """Dependency and conflict facts for selecting ``record``."""
        links = self._root_links() if record.name == ROOT else record.requires
        wanted = []
        for link in links:
            if self._is_skipped_platform(link.target):
                if link.target not in self._skipped_platform:
                    logger.debug("skipping platform requirement %s", link)
                self._skipped_platform.add(link.target)
                continue
            wanted.append(link)

        if self._config.resolve_providers:
            lookups = await asyncio.gather(
                *(self._scheduler.providers(link.target, self._cancel) for link in wanted)
            )
        else:
            lookups = [[] for _ in wanted]
        if self._cancel is not None and self._cancel.is_set():
            raise ResolutionCancelled("resolution cancelled")

        facts = []
        for link, providers in zip(wanted, lookups):
            ranges = provider_ranges(
                link.target, link.constraint.versions, [m.records for m in providers]
            )
            fact = dependency_incompatibility(record, link, ranges)
            if fact is not None:
                facts.append(fact)
        facts.extend(
            fact
            for fact in conflict_incompatibilities(record)
            if not self._is_skipped_platform(fact.terms[-1].package)
        )
        return facts

    def _add_incompatibility(self, incompatibility: Incompatibility) -> None:
        if not self._store.add(incompatibility):
            return
        logger.debug("fact: %s", incompatibility)
        for term in incompatibility.terms:
            if term.package != ROOT and not self._is_skipped_platform(term.package):
                self._scheduler.request(term.package)

    # -- result -------------------------------------------------------------

    def _result(self) -> SolverResult:
        decisions: dict[str, VersionRecord] = {}
        platform = set(self._skipped_platform)
        for name, version in self._solution.decisions.items():
            if name == ROOT:
                continue
            if name in self._config.platform:
                platform.add(name)
                continue
            records = self._scheduler.result(name).records
            decisions[name] = next(r for r in records if r.version == version)
        return SolverResult(
            root=self._root,
            decisions=decisions,
            platform_packages=sorted(platform),
            stats=self._stats,
        )
