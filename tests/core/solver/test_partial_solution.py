"""Tests for the leveled partial solution."""

from __future__ import annotations

import pytest

from pubsolve.core.solver.incompatibility import Incompatibility, IncompatibilityCause
from pubsolve.core.solver.partial_solution import PartialSolution
from pubsolve.core.solver.term import SetRelation, Term
from pubsolve.core.version.constraints import parse_constraint
from pubsolve.core.version.version import parse_version


def term(package: str, constraint: str, positive: bool = True) -> Term:
    return Term(package, parse_constraint(constraint).versions, positive, constraint)


CAUSE = Incompatibility([term("x", "*")], IncompatibilityCause.NO_VERSIONS)


class TestAssignments:
    """Decisions, derivations and the memoized terms."""

    def test_decision_levels(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", "^1.0"), CAUSE)
        assert solution.decision_level == 0
        solution.decide("a", parse_version("1.2.0"))
        assert solution.decision_level == 1
        solution.derive(term("b", "^2.0"), CAUSE)
        levels = [a.decision_level for a in solution.assignments]
        assert levels == [0, 1, 1]

    def test_positive_terms_intersect(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", ">=1.0"), CAUSE)
        solution.derive(term("a", "<1.5"), CAUSE)
        positive = solution.positive_term("a")
        assert positive is not None
        assert positive.versions == parse_constraint(">=1.0,<1.5").versions

    def test_negative_becomes_positive(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", "^2.0", False), CAUSE)
        assert solution.negative_term("a") is not None
        solution.derive(term("a", ">=1.0"), CAUSE)
        assert solution.negative_term("a") is None
        positive = solution.positive_term("a")
        assert positive is not None
        assert not positive.versions.contains(parse_version("2.1.0"))

    def test_unsatisfied(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", "^1.0"), CAUSE)
        solution.derive(term("b", "^1.0"), CAUSE)
        solution.decide("a", parse_version("1.0.0"))
        assert [t.package for t in solution.unsatisfied] == ["b"]

    def test_relation(self) -> None:
        solution = PartialSolution()
        assert solution.relation(term("a", "^1.0")) is SetRelation.OVERLAPPING
        solution.decide("a", parse_version("1.3.0"))
        assert solution.satisfies(term("a", "^1.0"))
        assert solution.relation(term("a", "^2.0")) is SetRelation.DISJOINT

    def test_contradictory_positive_derivation_raises(self) -> None:
        solution = PartialSolution()
        solution.decide("a", parse_version("1.3.0"))
        with pytest.raises(RuntimeError, match="contradictory assignment"):
            solution.derive(term("a", "^2.0"), CAUSE)

    def test_contradictory_negative_derivation_raises(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", "*", False), CAUSE)
        with pytest.raises(RuntimeError, match="contradictory assignment"):
            solution.derive(term("a", "^1.0"), CAUSE)


class TestSatisfier:
    """Finding the assignment that made a term true."""

    def test_earliest_satisfying_assignment(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", ">=1.0"), CAUSE)
        solution.derive(term("a", "<2.0"), CAUSE)
        solution.derive(term("b", "*"), CAUSE)
        satisfier = solution.satisfier(term("a", "^1.0"))
        assert satisfier.index == 1

    def test_unsatisfied_term_raises(self) -> None:
        solution = PartialSolution()
        with pytest.raises(RuntimeError):
            solution.satisfier(term("a", "^1.0"))


class TestBacktrack:
    """Dropping levels restores earlier state."""

    def test_backtrack_restores_terms(self) -> None:
        solution = PartialSolution()
        solution.derive(term("a", ">=1.0"), CAUSE)
        solution.decide("b", parse_version("1.0.0"))
        solution.derive(term("a", "<1.5"), CAUSE)
        solution.backtrack(0)
        assert solution.decisions == {}
        positive = solution.positive_term("a")
        assert positive is not None
        assert positive.versions.contains(parse_version("1.9.0"))
        assert solution.positive_term("b") is None

    def test_attempted_solutions_counts_retries(self) -> None:
        solution = PartialSolution()
        solution.decide("a", parse_version("1.0.0"))
        solution.backtrack(0)
        solution.decide("a", parse_version("0.9.0"))
        assert solution.attempted_solutions == 2
