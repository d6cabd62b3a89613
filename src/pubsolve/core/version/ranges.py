"""Canonical version sets.

A :class:`VersionRange` is the set algebra the solver reasons with. It holds

- a tuple of sorted, pairwise disjoint, non-touching numeric intervals, and
- a set of branch names, either finite (exactly these branches) or cofinite
  (every branch except these), since branches have no numeric position.

Every operation returns a canonical value, so two ranges describing the same
set compare equal. Intersection and union are therefore associative and
commutative by construction, and ``complement`` is an involution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from pubsolve.core.version.version import Version


# ---------------------------------------------------------------------------
# Interval
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Interval:
    """A contiguous span of numeric versions.

    A ``None`` bound is unbounded on that side. Inclusion flags on unbounded
    sides are always False so that equal intervals compare equal.
    """

    lower: Version | None = None
    upper: Version | None = None
    include_lower: bool = False
    include_upper: bool = False

    def __post_init__(self) -> None:
        if self.lower is None and self.include_lower:
            object.__setattr__(self, "include_lower", False)
        if self.upper is None and self.include_upper:
            object.__setattr__(self, "include_upper", False)

    @property
    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower < self.upper:
            return False
        if self.lower == self.upper:
            return not (self.include_lower and self.include_upper)
        return True

    @property
    def is_unbounded(self) -> bool:
        return self.lower is None and self.upper is None

    def contains(self, version: Version) -> bool:
        if version.is_branch:
            return False
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.include_lower):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.include_upper):
                return False
        return True

    def __str__(self) -> str:
        if self.is_unbounded:
            return "*"
        if (
            self.lower is not None
            and self.lower == self.upper
            and self.include_lower
            and self.include_upper
        ):
            return self.lower.text
        # Bounds within one release keep their tags, or [1.0-dev, 1.0)
        # would read as the empty ">=1.0,<1.0".
        show = _show
        if (
            self.lower is not None
            and self.upper is not None
            and self.lower.base == self.upper.base
        ):
            show = _text
        parts = []
        if self.lower is not None:
            op = ">=" if self.include_lower else ">"
            parts.append(f"{op}{show(self.lower)}")
        if self.upper is not None:
            op = "<=" if self.include_upper else "<"
            parts.append(f"{op}{show(self.upper)}")
        return ",".join(parts)


def _show(version: Version) -> str:
    # Synthetic "-dev" bounds read better without their suffix.
    return version.base.text if version.is_dev_boundary else version.text


def _text(version: Version) -> str:
    return version.text


def _lower_key(interval: Interval) -> tuple:
    if interval.lower is None:
        return (0,)
    return (1, interval.lower.sort_key, 0 if interval.include_lower else 1)


def _upper_key(interval: Interval) -> tuple:
    if interval.upper is None:
        return (2,)
    return (1, interval.upper.sort_key, 1 if interval.include_upper else 0)


def _joinable(left: Interval, right: Interval) -> bool:
    """True when ``right`` (starting no earlier) overlaps or touches ``left``."""
    if left.upper is None or right.lower is None:
        return True
    if left.upper > right.lower:
        return True
    return left.upper == right.lower and (left.include_upper or right.include_lower)


def _normalize(intervals: Iterable[Interval]) -> tuple[Interval, ...]:
    ordered = sorted((i for i in intervals if not i.is_empty), key=_lower_key)
    merged: list[Interval] = []
    for interval in ordered:
        if merged and _joinable(merged[-1], interval):
            last = merged[-1]
            top = last if _upper_key(last) >= _upper_key(interval) else interval
            merged[-1] = Interval(
                last.lower, top.upper, last.include_lower, top.include_upper
            )
        else:
            merged.append(interval)
    return tuple(merged)


def _intersect_pair(left: Interval, right: Interval) -> Interval | None:
    low = left if _lower_key(left) >= _lower_key(right) else right
    high = left if _upper_key(left) <= _upper_key(right) else right
    result = Interval(low.lower, high.upper, low.include_lower, high.include_upper)
    return None if result.is_empty else result


def _complement_intervals(intervals: tuple[Interval, ...]) -> tuple[Interval, ...]:
    if not intervals:
        return (Interval(),)
    gaps: list[Interval] = []
    previous: Interval | None = None
    for interval in intervals:
        if interval.lower is not None:
            if previous is None:
                gap = Interval(None, interval.lower, False, not interval.include_lower)
            else:
                gap = Interval(
                    previous.upper,
                    interval.lower,
                    not previous.include_upper,
                    not interval.include_lower,
                )
            if not gap.is_empty:
                gaps.append(gap)
        if interval.upper is None:
            return tuple(gaps)
        previous = interval
    assert previous is not None and previous.upper is not None
    gaps.append(Interval(previous.upper, None, not previous.include_upper, False))
    return tuple(gaps)


# ---------------------------------------------------------------------------
# VersionRange
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionRange:
    """A canonical set of versions (numeric intervals plus branch names).

    Attributes:
        intervals: Sorted, disjoint, non-touching numeric intervals.
        branches: Branch names in (or, if ``branches_complement``, excluded
            from) the set.
        branches_complement: When True the set holds every branch except
            those in ``branches``.
    """

    intervals: tuple[Interval, ...] = ()
    branches: frozenset[str] = frozenset()
    branches_complement: bool = False

    # -- constructors -------------------------------------------------------

    @classmethod
    def any(cls) -> VersionRange:
        return _ANY

    @classmethod
    def empty(cls) -> VersionRange:
        return _EMPTY

    @classmethod
    def exact(cls, version: Version) -> VersionRange:
        if version.branch is not None:
            return cls(branches=frozenset([version.branch]))
        return cls(intervals=(Interval(version, version, True, True),))

    @classmethod
    def between(
        cls,
        lower: Version | None,
        upper: Version | None,
        include_lower: bool = True,
        include_upper: bool = False,
    ) -> VersionRange:
        return cls.of([Interval(lower, upper, include_lower, include_upper)])

    @classmethod
    def of(
        cls,
        intervals: Iterable[Interval] = (),
        branches: Iterable[str] = (),
        branches_complement: bool = False,
    ) -> VersionRange:
        """Build a canonical range from arbitrary intervals."""
        return cls(_normalize(intervals), frozenset(branches), branches_complement)

    @classmethod
    def from_versions(cls, versions: Iterable[Version]) -> VersionRange:
        """The set containing exactly the given versions."""
        intervals = []
        branches = []
        for version in versions:
            if version.branch is not None:
                branches.append(version.branch)
            else:
                intervals.append(Interval(version, version, True, True))
        return cls.of(intervals, branches)

    # -- predicates ---------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.intervals and not self.branches and not self.branches_complement

    @property
    def is_any(self) -> bool:
        return (
            len(self.intervals) == 1
            and self.intervals[0].is_unbounded
            and self.branches_complement
            and not self.branches
        )

    def contains(self, version: Version) -> bool:
        if version.branch is not None:
            return (version.branch in self.branches) != self.branches_complement
        return any(interval.contains(version) for interval in self.intervals)

    __contains__ = contains

    def allows_all(self, other: VersionRange) -> bool:
        """True when ``other`` is a subset of this range."""
        return other.difference(self).is_empty

    def allows_any(self, other: VersionRange) -> bool:
        """True when ``other`` and this range share at least one version."""
        return not self.intersect(other).is_empty

    # -- algebra ------------------------------------------------------------

    def intersect(self, other: VersionRange) -> VersionRange:
        intervals = []
        for left in self.intervals:
            for right in other.intervals:
                joined = _intersect_pair(left, right)
                if joined is not None:
                    intervals.append(joined)
        branches, complement = _intersect_branches(
            self.branches, self.branches_complement,
            other.branches, other.branches_complement,
        )
        return VersionRange(_normalize(intervals), branches, complement)

    def union(self, other: VersionRange) -> VersionRange:
        branches, complement = _union_branches(
            self.branches, self.branches_complement,
            other.branches, other.branches_complement,
        )
        return VersionRange(
            _normalize(self.intervals + other.intervals), branches, complement
        )

    def complement(self) -> VersionRange:
        return VersionRange(
            _complement_intervals(self.intervals),
            self.branches,
            not self.branches_complement,
        )

    def difference(self, other: VersionRange) -> VersionRange:
        return self.intersect(other.complement())

    # -- display ------------------------------------------------------------

    def __str__(self) -> str:
        if self.is_any:
            return "*"
        if self.is_empty:
            return "<empty>"
        parts = [str(interval) for interval in self.intervals]
        if self.branches_complement:
            if self.branches:
                excluded = ", ".join(sorted(self.branches))
                parts.append(f"any branch except {excluded}")
            else:
                parts.append("any branch")
        else:
            parts.extend(sorted(self.branches))
        return " || ".join(parts)


def _intersect_branches(
    left: frozenset[str], left_co: bool, right: frozenset[str], right_co: bool
) -> tuple[frozenset[str], bool]:
    if not left_co and not right_co:
        return left & right, False
    if not left_co:
        return left - right, False
    if not right_co:
        return right - left, False
    return left | right, True


def _union_branches(
    left: frozenset[str], left_co: bool, right: frozenset[str], right_co: bool
) -> tuple[frozenset[str], bool]:
    if not left_co and not right_co:
        return left | right, False
    if not left_co:
        return right - left, True
    if not right_co:
        return left - right, True
    return left & right, True


_ANY = VersionRange((Interval(),), frozenset(), True)
_EMPTY = VersionRange()
