"""Tests for the VersionRange set algebra."""

from __future__ import annotations

from pubsolve.core.version.constraints import parse_constraint
from pubsolve.core.version.ranges import Interval, VersionRange
from pubsolve.core.version.version import parse_version


def v(text: str):
    return parse_version(text)


def span(low: str | None, high: str | None, include_low: bool = True, include_high: bool = False):
    return VersionRange.between(
        v(low) if low else None, v(high) if high else None, include_low, include_high
    )


class TestInterval:
    """Interval construction and membership."""

    def test_unbounded_flags_are_normalized(self) -> None:
        assert Interval(None, v("1.0"), True, False) == Interval(None, v("1.0"), False, False)

    def test_empty(self) -> None:
        assert Interval(v("2.0"), v("1.0"), True, True).is_empty
        assert Interval(v("1.0"), v("1.0"), True, False).is_empty
        assert not Interval(v("1.0"), v("1.0"), True, True).is_empty

    def test_contains_bounds(self) -> None:
        interval = Interval(v("1.0"), v("2.0"), True, False)
        assert interval.contains(v("1.0"))
        assert not interval.contains(v("2.0"))
        assert not interval.contains(v("dev-main"))

    def test_str(self) -> None:
        assert str(Interval()) == "*"
        assert str(Interval(v("1.0.0"), v("1.0.0"), True, True)) == "1.0.0"
        assert str(Interval(v("1.0.0"), v("2.0.0"), True, False)) == ">=1.0.0,<2.0.0"

    def test_str_hides_dev_bound_only_across_releases(self) -> None:
        assert str(Interval(v("1.0.0-dev"), v("2.0.0-dev"), True, False)) == ">=1.0.0,<2.0.0"
        assert str(Interval(v("1.0.0-dev"), v("1.0.0"), True, False)) == ">=1.0.0-dev,<1.0.0"

    def test_str_of_excluded_release(self) -> None:
        shown = str(parse_constraint("^1.0 !=1.0.0").versions)
        assert ">=1.0.0,<1.0.0" not in shown
        assert shown.endswith(">1.0.0,<2.0.0")


class TestCanonicalForm:
    """Ranges describing the same set compare equal."""

    def test_overlapping_intervals_merge(self) -> None:
        merged = span("1.0", "1.5").union(span("1.2", "2.0"))
        assert merged == span("1.0", "2.0")
        assert len(merged.intervals) == 1

    def test_touching_intervals_merge(self) -> None:
        assert span("1.0", "1.5").union(span("1.5", "2.0")) == span("1.0", "2.0")

    def test_adjacent_open_bounds_stay_apart(self) -> None:
        split = span("1.0", "1.5").union(span("1.5", "2.0", include_low=False))
        assert len(split.intervals) == 2
        assert not split.contains(v("1.5"))

    def test_from_versions(self) -> None:
        found = VersionRange.from_versions([v("1.0"), v("dev-main"), v("1.2")])
        assert found.contains(v("1.0"))
        assert found.contains(v("dev-main"))
        assert not found.contains(v("1.1"))
        assert not found.contains(v("dev-next"))


class TestAlgebra:
    """Intersection, union, complement and difference."""

    def test_intersect(self) -> None:
        both = span("1.0", "1.5").intersect(span("1.2", "2.0"))
        assert both == span("1.2", "1.5")

    def test_disjoint_intersection_is_empty(self) -> None:
        assert span("1.0", "1.5").intersect(span("2.0", "3.0")).is_empty

    def test_complement_of_empty_is_any(self) -> None:
        assert VersionRange.empty().complement().is_any
        assert VersionRange.any().complement().is_empty

    def test_complement_of_span(self) -> None:
        outside = span("1.0", "2.0").complement()
        assert outside.contains(v("0.9"))
        assert outside.contains(v("2.0"))
        assert not outside.contains(v("1.5"))
        assert outside.contains(v("dev-main"))

    def test_difference(self) -> None:
        rest = span("1.0", "3.0").difference(span("1.5", "2.0"))
        assert rest.contains(v("1.2"))
        assert not rest.contains(v("1.7"))
        assert rest.contains(v("2.5"))

    def test_allows_all_and_any(self) -> None:
        outer = span("1.0", "3.0")
        inner = span("1.5", "2.0")
        assert outer.allows_all(inner)
        assert not inner.allows_all(outer)
        assert inner.allows_any(outer)
        assert not inner.allows_any(span("2.0", "2.5"))


class TestBranches:
    """Finite and cofinite branch sets."""

    def test_exact_branch(self) -> None:
        main = VersionRange.exact(v("dev-main"))
        assert main.contains(v("dev-main"))
        assert not main.contains(v("1.0"))

    def test_branch_complement(self) -> None:
        not_main = VersionRange.exact(v("dev-main")).complement()
        assert not not_main.contains(v("dev-main"))
        assert not_main.contains(v("dev-next"))
        assert not_main.contains(v("1.0"))

    def test_branch_union_and_intersection(self) -> None:
        main = VersionRange.exact(v("dev-main"))
        nxt = VersionRange.exact(v("dev-next"))
        assert main.intersect(nxt).is_empty
        both = main.union(nxt)
        assert both.contains(v("dev-main")) and both.contains(v("dev-next"))

    def test_str(self) -> None:
        assert str(VersionRange.any()) == "*"
        assert str(VersionRange.empty()) == "<empty>"
        assert str(VersionRange.exact(v("dev-main")).complement()) == (
            "* || any branch except dev-main"
        )
        assert str(span("1.0.0", "2.0.0")) == ">=1.0.0,<2.0.0"
