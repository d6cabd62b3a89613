"""Terms: statements that a package's selected version is (or is not) in a set.

A positive term ``foo in R`` holds when ``foo`` is selected at a version in
``R``. A negative term ``not foo in R`` holds when ``foo`` is not selected at
all or is selected outside ``R``. Relations between terms follow the set
semantics of PubGrub, which lets the partial solution answer "is this term
satisfied, contradicted or still open" with a single comparison.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pubsolve.core.version.ranges import VersionRange
from pubsolve.core.version.version import Version


class SetRelation(Enum):
    """How the versions allowed by one term relate to another's."""

    SUBSET = "subset"
    DISJOINT = "disjoint"
    OVERLAPPING = "overlapping"


@dataclass(frozen=True)
class Term:
    """A package name, a version set and a polarity.

    Attributes:
        package: Package name.
        versions: The version set.
        positive: True for ``package in versions``, False for its negation.
        label: Original constraint text, used only for display.
    """

    package: str
    versions: VersionRange
    positive: bool = True
    label: str | None = field(default=None, compare=False)

    @classmethod
    def exact(cls, package: str, version: Version, positive: bool = True) -> Term:
        return cls(package, VersionRange.exact(version), positive, version.text)

    @property
    def inverse(self) -> Term:
        return Term(self.package, self.versions, not self.positive, self.label)

    def satisfies(self, other: Term) -> bool:
        """True when this term being true implies ``other`` is true."""
        return self.package == other.package and self.relation(other) is SetRelation.SUBSET

    def relation(self, other: Term) -> SetRelation:
        """The relation between the versions this term and ``other`` allow.

        Both terms must name the same package.
        """
        if self.package != other.package:
            raise ValueError(f"{other} names a different package than {self}")

        theirs = other.versions
        ours = self.versions
        if other.positive:
            if self.positive:
                if theirs.allows_all(ours):
                    return SetRelation.SUBSET
                if not ours.allows_any(theirs):
                    return SetRelation.DISJOINT
                return SetRelation.OVERLAPPING
            # not ours vs theirs
            if ours.allows_all(theirs):
                return SetRelation.DISJOINT
            return SetRelation.OVERLAPPING

        if self.positive:
            if not theirs.allows_any(ours):
                return SetRelation.SUBSET
            if theirs.allows_all(ours):
                return SetRelation.DISJOINT
            return SetRelation.OVERLAPPING
        # not ours vs not theirs
        if ours.allows_all(theirs):
            return SetRelation.SUBSET
        return SetRelation.OVERLAPPING

    def intersect(self, other: Term) -> Term | None:
        """The term allowing exactly what both terms allow, or None if nothing."""
        if self.package != other.package:
            raise ValueError(f"{other} names a different package than {self}")

        if self.positive != other.positive:
            positive = self if self.positive else other
            negative = other if self.positive else self
            return self._non_empty(positive.versions.difference(negative.versions), True)
        if self.positive:
            return self._non_empty(self.versions.intersect(other.versions), True)
        return self._non_empty(self.versions.union(other.versions), False)

    def difference(self, other: Term) -> Term | None:
        """The term allowing what this term allows and ``other`` does not."""
        return self.intersect(other.inverse)

    def _non_empty(self, versions: VersionRange, positive: bool) -> Term | None:
        if versions.is_empty:
            return None
        return Term(self.package, versions, positive)

    # -- display ------------------------------------------------------------

    @property
    def constraint_text(self) -> str:
        return self.label if self.label is not None else str(self.versions)

    def describe(self) -> str:
        """The package with its version set, without polarity."""
        if self.versions.is_any:
            return self.package
        return f"{self.package} ({self.constraint_text})"

    def __str__(self) -> str:
        prefix = "" if self.positive else "not "
        return prefix + self.describe()
