"""The incompatibility store and the rules that derive facts from metadata.

The store is append-only: incompatibilities are indexed by every package
they mention and never removed. External facts are deduplicated so that
re-deriving the same dependency after a backtrack does not grow the store.

Derivation rules:

- ``{not root}``: the root package must be selected.
- ``{P@v, not Q in R}``: version ``v`` of ``P`` requires ``Q`` in ``R``.
- ``{P@v, not Q in R, not X1 in S1, ...}``: as above when ``Q`` is virtual;
  selecting any provider ``Xi`` inside ``Si`` (the versions whose
  provide/replace declaration meets ``R``) also satisfies the requirement.
- ``{P in R}``: no known version of ``P`` lies in ``R``, or ``P`` cannot be
  fetched or is excluded.
- ``{P@v, Q in R}``: ``P@v`` conflicts with (or replaces) ``Q`` in ``R``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Sequence

from pubsolve.core.solver.incompatibility import Incompatibility, IncompatibilityCause
from pubsolve.core.solver.models import ROOT, Link, VersionRecord
from pubsolve.core.solver.term import Term
from pubsolve.core.version.ranges import VersionRange

logger = logging.getLogger(__name__)


class IncompatibilityStore:
    """Append-only, package-indexed collection of incompatibilities."""

    def __init__(self) -> None:
        self._all: list[Incompatibility] = []
        self._by_package: dict[str, list[Incompatibility]] = {}
        self._keys: set[tuple] = set()
        self._disjunctive: list[Incompatibility] = []

    def add(self, incompatibility: Incompatibility) -> bool:
        """Store an incompatibility.

        Returns:
            False if an identical external incompatibility was already known.
        """
        if not incompatibility.is_derived:
            key = incompatibility.key
            if key in self._keys:
                return False
            self._keys.add(key)

        self._all.append(incompatibility)
        for term in incompatibility.terms:
            self._by_package.setdefault(term.package, []).append(incompatibility)
        if sum(1 for term in incompatibility.terms if not term.positive) > 1:
            self._disjunctive.append(incompatibility)
        return True

    def for_package(self, package: str) -> Sequence[Incompatibility]:
        return self._by_package.get(package, ())

    @property
    def disjunctive(self) -> Sequence[Incompatibility]:
        """Incompatibilities with more than one negative term, in insertion order."""
        return self._disjunctive

    def __iter__(self) -> Iterator[Incompatibility]:
        return iter(self._all)

    def __len__(self) -> int:
        return len(self._all)


# ---------------------------------------------------------------------------
# Derivation rules
# ---------------------------------------------------------------------------


def root_incompatibility() -> Incompatibility:
    return Incompatibility(
        [Term(ROOT, VersionRange.any(), positive=False)], IncompatibilityCause.ROOT
    )


def provider_ranges(
    target: str, versions: VersionRange, candidates: Iterable[Sequence[VersionRecord]]
) -> list[tuple[str, VersionRange]]:
    """Versions of each candidate package that provide or replace ``target``.

    Args:
        target: The possibly virtual package name.
        versions: The required range of ``target``.
        candidates: Fetched version lists of potential providers.

    Returns:
        ``(provider, matching versions)`` pairs sorted by provider name,
        skipping providers with no matching version.
    """
    matches: dict[str, list] = {}
    for records in candidates:
        for record in records:
            if record.name == target:
                continue
            links = record.satisfies_virtual(target)
            if any(link.constraint.versions.allows_any(versions) for link in links):
                matches.setdefault(record.name, []).append(record.version)
    return [
        (name, VersionRange.from_versions(found))
        for name, found in sorted(matches.items())
    ]


def dependency_incompatibility(
    record: VersionRecord,
    link: Link,
    providers: Sequence[tuple[str, VersionRange]] = (),
) -> Incompatibility | None:
    """The incompatibility for one requirement of a selected version.

    Returns None when the requirement cannot produce a meaningful fact: a
    package requiring itself, or a version that provides the very name it
    requires.
    """
    if link.target == record.name:
        logger.warning("%s requires itself; ignoring", record.pretty)
        return None
    own = record.satisfies_virtual(link.target)
    if any(o.constraint.versions.allows_any(link.constraint.versions) for o in own):
        return None

    cause = (
        IncompatibilityCause.ROOT_DEPENDENCY
        if record.name == ROOT
        else IncompatibilityCause.DEPENDENCY
    )
    terms = [
        Term.exact(record.name, record.version),
        Term(link.target, link.constraint.versions, False, link.constraint.text),
    ]
    terms.extend(
        Term(name, versions, False)
        for name, versions in providers
        if name != record.name
    )
    return Incompatibility(terms, cause)


def no_versions_incompatibility(term: Term) -> Incompatibility:
    return Incompatibility(
        [Term(term.package, term.versions, True, term.label)],
        IncompatibilityCause.NO_VERSIONS,
    )


def unavailable_incompatibility(term: Term, reason: str) -> Incompatibility:
    return Incompatibility(
        [Term(term.package, term.versions, True, term.label)],
        IncompatibilityCause.UNAVAILABLE,
        reason=reason,
    )


def conflict_incompatibilities(record: VersionRecord) -> list[Incompatibility]:
    """Declared conflicts and replace clashes of a selected version."""
    facts = []
    declared = [(link, "conflict") for link in record.conflicts]
    declared += [(link, "replace") for link in record.replaces]
    for link, reason in declared:
        if link.target == record.name:
            continue
        facts.append(
            Incompatibility(
                [
                    Term.exact(record.name, record.version),
                    Term(link.target, link.constraint.versions, True, link.constraint.text),
                ],
                IncompatibilityCause.CONFLICT,
                reason=reason,
            )
        )
    return facts
