"""Incompatibilities: sets of terms that must never all hold at once.

Every fact the solver knows is an incompatibility. External ones come from
package metadata (dependencies, conflicts, missing versions); derived ones
are learned during conflict resolution and remember the two
incompatibilities they were resolved from, which is what lets a failure be
explained step by step.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator

from pubsolve.core.solver.models import ROOT
from pubsolve.core.solver.term import Term


class IncompatibilityCause(Enum):
    """Why an incompatibility holds."""

    ROOT = "root"
    ROOT_DEPENDENCY = "root-dependency"
    DEPENDENCY = "dependency"
    NO_VERSIONS = "no-versions"
    UNAVAILABLE = "unavailable"
    CONFLICT = "conflict"
    DERIVED = "derived"


class Incompatibility:
    """An immutable set of terms plus the reason they are incompatible.

    Terms naming the same package are merged on construction. Positive terms
    on the root are dropped from derived incompatibilities, since the root
    is always selected.

    Args:
        terms: The terms.
        cause: Why the terms cannot all hold.
        left: First parent of a derived incompatibility.
        right: Second parent of a derived incompatibility.
        reason: Free text for UNAVAILABLE and CONFLICT causes.
    """

    def __init__(
        self,
        terms: Iterable[Term],
        cause: IncompatibilityCause,
        *,
        left: Incompatibility | None = None,
        right: Incompatibility | None = None,
        reason: str | None = None,
    ) -> None:
        term_list = list(terms)
        if (
            cause is IncompatibilityCause.DERIVED
            and len(term_list) != 1
            and any(t.positive and t.package == ROOT for t in term_list)
        ):
            term_list = [t for t in term_list if not (t.positive and t.package == ROOT)]

        if len(term_list) == 1 or (
            len(term_list) == 2 and term_list[0].package != term_list[1].package
        ):
            self._terms = tuple(term_list)
        else:
            by_name: dict[str, Term] = {}
            for term in term_list:
                existing = by_name.get(term.package)
                if existing is None:
                    by_name[term.package] = term
                    continue
                merged = existing.intersect(term)
                if merged is None:
                    raise ValueError(
                        f"Terms on {term.package} are mutually exclusive; "
                        "the incompatibility would be irrelevant"
                    )
                by_name[term.package] = merged
            self._terms = tuple(by_name.values())

        self._cause = cause
        self._left = left
        self._right = right
        self._reason = reason

    # -- accessors ----------------------------------------------------------

    @property
    def terms(self) -> tuple[Term, ...]:
        return self._terms

    @property
    def cause(self) -> IncompatibilityCause:
        return self._cause

    @property
    def left(self) -> Incompatibility | None:
        return self._left

    @property
    def right(self) -> Incompatibility | None:
        return self._right

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def is_derived(self) -> bool:
        return self._cause is IncompatibilityCause.DERIVED

    @property
    def is_failure(self) -> bool:
        """True when the incompatibility proves the root cannot be resolved."""
        return not self._terms or (
            len(self._terms) == 1
            and self._terms[0].positive
            and self._terms[0].package == ROOT
        )

    @property
    def key(self) -> tuple:
        """Identity used to skip adding the same external fact twice."""
        return (frozenset(self._terms), self._cause, self._reason)

    def packages(self) -> list[str]:
        return [term.package for term in self._terms]

    def external_incompatibilities(self) -> Iterator[Incompatibility]:
        """Yield the non-derived leaves this incompatibility was learned from."""
        if self.is_derived:
            assert self._left is not None and self._right is not None
            yield from self._left.external_incompatibilities()
            yield from self._right.external_incompatibilities()
        else:
            yield self

    def __iter__(self) -> Iterator[Term]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    # -- display ------------------------------------------------------------

    def __str__(self) -> str:
        cause = self._cause
        terms = self._terms
        if cause is IncompatibilityCause.ROOT:
            return "the root package is selected"
        if self.is_failure:
            return "version solving failed"
        if cause in (IncompatibilityCause.DEPENDENCY, IncompatibilityCause.ROOT_DEPENDENCY):
            return self._describe_dependency()
        if cause is IncompatibilityCause.NO_VERSIONS:
            term = terms[0]
            if term.versions.is_any:
                return f"no versions of {term.package} are available"
            return f"no versions of {term.package} match {term.constraint_text}"
        if cause is IncompatibilityCause.UNAVAILABLE:
            return f"{terms[0].describe()} is unavailable ({self._reason})"
        if cause is IncompatibilityCause.CONFLICT:
            verb = "replaces" if self._reason == "replace" else "conflicts with"
            return f"{terms[0].describe()} {verb} {terms[1].describe()}"
        return self._describe_derived()

    def _describe_dependency(self) -> str:
        depender, target, *providers = self._terms
        if self._cause is IncompatibilityCause.ROOT_DEPENDENCY:
            text = f"the root requires {target.describe()}"
        else:
            text = f"{depender.describe()} requires {target.describe()}"
        if providers:
            names = ", ".join(p.describe() for p in providers)
            text += f" (or a provider: {names})"
        return text

    def _describe_derived(self) -> str:
        terms = self._terms
        if len(terms) == 1:
            term = terms[0]
            if term.positive:
                return f"{term.describe()} is forbidden"
            return f"{term.describe()} is required"

        positive = [t for t in terms if t.positive]
        negative = [t for t in terms if not t.positive]
        if len(terms) == 2:
            first, second = terms
            if first.positive and second.positive:
                return f"{first.describe()} is incompatible with {second.describe()}"
            if not first.positive and not second.positive:
                return f"either {first.describe()} or {second.describe()}"
            return f"{positive[0].describe()} requires {negative[0].describe()}"

        if positive and negative:
            ifs = " and ".join(t.describe() for t in positive)
            thens = " or ".join(t.describe() for t in negative)
            return f"if {ifs} then {thens}"
        if positive:
            joined = ", ".join(t.describe() for t in positive)
            return f"one of {joined} must be false"
        joined = ", ".join(t.describe() for t in negative)
        return f"one of {joined} must be true"

    def __repr__(self) -> str:
        return f"<Incompatibility {self._cause.value}: {self}>"
