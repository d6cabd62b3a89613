"""The partial solution: the solver's leveled assignment log.

Assignments are appended in order and tagged with the decision level they
were made at. For each package the log keeps the running intersection of
every assignment touching it, split into a positive term (the package must
be selected inside a set) or a negative term (it must not be selected inside
a set), so relation queries never rescan the log.
"""

from __future__ import annotations

import logging

from pubsolve.core.solver.incompatibility import Incompatibility
from pubsolve.core.solver.term import SetRelation, Term
from pubsolve.core.version.ranges import VersionRange
from pubsolve.core.version.version import Version

logger = logging.getLogger(__name__)


class Assignment(Term):
    """A term made true in the partial solution.

    A decision (``cause`` is None) pins a package to one version; a
    derivation was forced by ``cause`` through unit propagation.
    """

    def __init__(
        self,
        package: str,
        versions: VersionRange,
        positive: bool,
        decision_level: int,
        index: int,
        cause: Incompatibility | None = None,
        label: str | None = None,
    ) -> None:
        super().__init__(package, versions, positive, label)
        object.__setattr__(self, "decision_level", decision_level)
        object.__setattr__(self, "index", index)
        object.__setattr__(self, "cause", cause)

    decision_level: int
    index: int
    cause: Incompatibility | None

    @property
    def is_decision(self) -> bool:
        return self.cause is None

    def __repr__(self) -> str:
        kind = "decision" if self.is_decision else "derivation"
        return f"<Assignment {kind}@{self.decision_level}: {self}>"


class PartialSolution:
    """Ordered assignments plus memoized per-package terms."""

    def __init__(self) -> None:
        self._assignments: list[Assignment] = []
        self._decisions: dict[str, Version] = {}
        self._positive: dict[str, Term] = {}
        self._negative: dict[str, Term] = {}
        self._attempted_solutions = 1
        self._backtracking = False

    # -- queries ------------------------------------------------------------

    @property
    def assignments(self) -> list[Assignment]:
        return list(self._assignments)

    @property
    def decisions(self) -> dict[str, Version]:
        """Decided packages and their versions, in decision order."""
        return dict(self._decisions)

    @property
    def decision_level(self) -> int:
        """Number of decisions made; the root decision opens level 1."""
        return len(self._decisions)

    @property
    def attempted_solutions(self) -> int:
        return self._attempted_solutions

    @property
    def unsatisfied(self) -> list[Term]:
        """Positive terms on packages that have not been decided yet."""
        return [
            term
            for package, term in self._positive.items()
            if package not in self._decisions
        ]

    def is_decided(self, package: str) -> bool:
        return package in self._decisions

    def positive_term(self, package: str) -> Term | None:
        return self._positive.get(package)

    def negative_term(self, package: str) -> Term | None:
        return self._negative.get(package)

    def relation(self, term: Term) -> SetRelation:
        positive = self._positive.get(term.package)
        if positive is not None:
            return positive.relation(term)
        negative = self._negative.get(term.package)
        if negative is None:
            return SetRelation.OVERLAPPING
        return negative.relation(term)

    def satisfies(self, term: Term) -> bool:
        return self.relation(term) is SetRelation.SUBSET

    def satisfier(self, term: Term) -> Assignment:
        """The earliest assignment after which ``term`` is satisfied.

        Raises:
            RuntimeError: If the log does not satisfy ``term`` at all.
        """
        assigned: Term | None = None
        for assignment in self._assignments:
            if assignment.package != term.package:
                continue
            assigned = assignment if assigned is None else assigned.intersect(assignment)
            if assigned is not None and assigned.satisfies(term):
                return assignment
        raise RuntimeError(f"[BUG] {term} is not satisfied")

    # -- mutation -----------------------------------------------------------

    def decide(self, package: str, version: Version) -> None:
        """Pin ``package`` to ``version`` at a new decision level."""
        if self._backtracking:
            self._attempted_solutions += 1
        self._backtracking = False
        self._decisions[package] = version
        self._assign(
            Assignment(
                package,
                VersionRange.exact(version),
                True,
                self.decision_level,
                len(self._assignments),
                label=version.text,
            )
        )

    def derive(self, term: Term, cause: Incompatibility) -> None:
        """Record ``term`` as forced by ``cause`` at the current level."""
        self._assign(
            Assignment(
                term.package,
                term.versions,
                term.positive,
                self.decision_level,
                len(self._assignments),
                cause,
                term.label,
            )
        )

    def backtrack(self, level: int) -> None:
        """Drop every assignment made above ``level``."""
        self._backtracking = True
        removed: set[str] = set()
        while self._assignments and self._assignments[-1].decision_level > level:
            assignment = self._assignments.pop()
            removed.add(assignment.package)
            if assignment.is_decision:
                self._decisions.pop(assignment.package, None)

        for package in removed:
            self._positive.pop(package, None)
            self._negative.pop(package, None)
        for assignment in self._assignments:
            if assignment.package in removed:
                self._register(assignment)
        logger.debug("backtracked to level %d", level)

    def _assign(self, assignment: Assignment) -> None:
        self._assignments.append(assignment)
        self._register(assignment)

    def _register(self, assignment: Assignment) -> None:
        package = assignment.package
        positive = self._positive.get(package)
        if positive is not None:
            merged = positive.intersect(assignment)
            if merged is None:
                raise RuntimeError(f"[BUG] contradictory assignment {assignment}")
            self._positive[package] = merged
            return

        negative = self._negative.get(package)
        term = assignment if negative is None else negative.intersect(assignment)
        if term is None:
            raise RuntimeError(f"[BUG] contradictory assignment {assignment}")
        if term.positive:
            self._negative.pop(package, None)
            self._positive[package] = term
        else:
            self._negative[package] = term
