"""Composer-style version constraints.

Supported syntax:

- Exact: ``1.2.3``, ``=1.2.3``, ``==1.2.3``
- Comparators: ``>=1.2``, ``>1.2``, ``<=1.2``, ``<1.2``, ``!=1.2``
- Wildcards: ``*``, ``1.*``, ``1.0.*``, ``1.0.x``
- Tilde: ``~1.2`` (``>=1.2 <2.0``), ``~1.2.3`` (``>=1.2.3 <1.3.0``)
- Caret: ``^1.2.3`` (``>=1.2.3 <2.0.0``), ``^0.3`` (``>=0.3 <0.4``)
- Hyphen ranges: ``1.0 - 2.0`` (``>=1.0 <2.1``), ``1.0.0 - 2.1.0``
  (``>=1.0.0 <=2.1.0``)
- AND with ``,`` or whitespace, OR with ``||`` (or a single ``|``)
- Stability flags: ``^1.0@beta``, ``@dev`` (alone it means ``*@dev``)
- Branches: ``dev-main``, ``2.x-dev``

Lower bounds from ``>=``, tilde, caret and wildcards, and upper bounds from
``<`` and the bumped side of tilde, caret and wildcards, sit on the ``-dev``
boundary of the release they name. That way ``<2.0`` also rules out
``2.0.0-beta1`` and ``>=1.0`` also admits ``1.0.0-RC1``.

A constraint that names a pre-release version (``^2.0@beta``,
``1.0.0-RC1``) carries that stability as a flag. The flag lowers the minimum
stability for that one package.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

from pubsolve.core.version.ranges import VersionRange
from pubsolve.core.version.stability import Stability, parse_stability
from pubsolve.core.version.version import (
    RANK_DEV,
    RANK_RELEASE,
    Version,
    parse_version,
)
from pubsolve.exceptions import ParseError


# ---------------------------------------------------------------------------
# Tokenizing
# ---------------------------------------------------------------------------

_OR_SPLIT_RE = re.compile(r"\s*\|\|?\s*")
_AND_SPLIT_RE = re.compile(r"[\s,]+")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_FLAG_RE = re.compile(r"@(?P<flag>stable|rc|beta|alpha|dev)$", re.IGNORECASE)
_OPERATOR_ONLY_RE = re.compile(r"^(?:<>|!=|>=|<=|==|=|>|<|\^|~>?)$")
_COMPARATOR_RE = re.compile(r"^(?P<op><>|!=|>=|<=|==|=|>|<)?(?P<version>[^<>=!\s]+)$")
_WILDCARD_RE = re.compile(r"^v?(?P<release>\d+(?:\.\d+){0,2})\.[xX*]$")
_ANY_RE = re.compile(r"^v?[xX*](?:\.[xX*])*$")
_RELEASE_RE = re.compile(r"\d+(?:\.\d+)*")


def _split_and(group: str) -> list[str]:
    """Split an AND group into atoms, re-attaching detached operators."""
    atoms: list[str] = []
    pending = ""
    for token in _AND_SPLIT_RE.split(group.strip()):
        if not token:
            continue
        if _OPERATOR_ONLY_RE.match(token):
            pending += token
            continue
        atoms.append(pending + token)
        pending = ""
    if pending:
        raise ParseError(f"Operator {pending!r} is missing a version")
    return atoms


def _partial(text: str) -> tuple[Version, int]:
    """Parse a possibly partial version, returning it with its component count."""
    version = parse_version(text)
    if version.is_branch:
        raise ParseError(f"A branch cannot be used here: {text!r}")
    match = _RELEASE_RE.match(text.lstrip("vV"))
    assert match is not None
    return version, len(match.group(0).split("."))


def _floor(version: Version) -> Version:
    """Lower bound for a range starting at ``version``."""
    if version.rank == RANK_RELEASE:
        return Version.from_parts(*version.release, rank=RANK_DEV)
    return version


# ---------------------------------------------------------------------------
# Atom parsers
# ---------------------------------------------------------------------------


def _tilde(text: str) -> VersionRange:
    version, count = _partial(text)
    position = 0 if count == 1 else count - 2
    return VersionRange.between(_floor(version), version.bump(position))


def _caret(text: str) -> VersionRange:
    version, count = _partial(text)
    major, minor = version.release[0], version.release[1]
    if major != 0 or count == 1:
        position = 0
    elif minor != 0 or count == 2:
        position = 1
    else:
        position = 2
    return VersionRange.between(_floor(version), version.bump(position))


def _wildcard(release: str) -> VersionRange:
    components = [int(c) for c in release.split(".")]
    lower = Version.from_parts(*components, rank=RANK_DEV)
    return VersionRange.between(lower, lower.bump(len(components) - 1))


def _hyphen(low_text: str, high_text: str) -> VersionRange:
    low, _ = _partial(low_text)
    high, count = _partial(high_text)
    if count >= 3 or high.rank != RANK_RELEASE:
        return VersionRange.between(_floor(low), high, True, True)
    return VersionRange.between(_floor(low), high.bump(count - 1))


def _comparator(op: str, text: str) -> VersionRange:
    version = parse_version(text)
    if op in ("", "=", "=="):
        return VersionRange.exact(version)
    if op in ("!=", "<>"):
        return VersionRange.exact(version).complement()
    if version.is_branch:
        raise ParseError(f"Branches cannot be compared with {op!r}: {text!r}")
    if op == ">=":
        return VersionRange.between(_floor(version), None, True)
    if op == ">":
        return VersionRange.between(version, None, False)
    if op == "<=":
        return VersionRange.between(None, version, False, True)
    return VersionRange.between(None, _floor(version), False, False)


def _parse_atom(atom: str) -> tuple[VersionRange, Stability | None]:
    """Parse a single atom, returning its range and stability flag."""
    flag: Stability | None = None
    match = _FLAG_RE.search(atom)
    if match is not None:
        flag = parse_stability(match.group("flag"))
        atom = atom[: match.start()] or "*"

    if _ANY_RE.match(atom):
        return VersionRange.any(), flag

    implied: Stability | None = None
    if atom.startswith("~"):
        versions = _tilde(atom[2:] if atom.startswith("~>") else atom[1:])
        implied = parse_version(atom.lstrip("~>")).stability
    elif atom.startswith("^"):
        versions = _caret(atom[1:])
        implied = parse_version(atom[1:]).stability
    elif _WILDCARD_RE.match(atom):
        versions = _wildcard(_WILDCARD_RE.match(atom).group("release"))
    else:
        comparator = _COMPARATOR_RE.match(atom)
        if comparator is None:
            raise ParseError(f"Invalid constraint: {atom!r}")
        op = comparator.group("op") or ""
        versions = _comparator(op, comparator.group("version"))
        if op in ("", "=", "==", ">=", ">"):
            implied = parse_version(comparator.group("version")).stability

    if flag is None and implied is not None and implied is not Stability.STABLE:
        flag = implied
    return versions, flag


# ---------------------------------------------------------------------------
# VersionConstraint
# ---------------------------------------------------------------------------


def _lowest(left: Stability | None, right: Stability | None) -> Stability | None:
    if left is None:
        return right
    if right is None:
        return left
    return min(left, right)


@dataclass(frozen=True)
class VersionConstraint:
    """A parsed version constraint.

    Equality and hashing use the canonical version set and the stability
    flag, not the text, so ``^1.0`` equals ``>=1.0 <2.0``.

    Attributes:
        text: The constraint as written (display only).
        versions: Canonical set of versions the constraint admits.
        stability: Explicit or inferred stability flag, or None.
    """

    text: str = field(compare=False)
    versions: VersionRange
    stability: Stability | None = None

    @classmethod
    def parse(cls, text: str) -> VersionConstraint:
        return parse_constraint(text)

    @classmethod
    def any(cls) -> VersionConstraint:
        return cls("*", VersionRange.any())

    @classmethod
    def exact(cls, version: Version) -> VersionConstraint:
        return cls(version.text, VersionRange.exact(version))

    def contains(self, version: Version) -> bool:
        """Set membership, without stability gating."""
        return self.versions.contains(version)

    def effective_stability(self, minimum: Stability = Stability.STABLE) -> Stability:
        """The lowest stability this constraint accepts under ``minimum``."""
        if self.stability is None:
            return minimum
        return min(minimum, self.stability)

    def allows(
        self, version: Version, minimum_stability: Stability = Stability.STABLE
    ) -> bool:
        """Whether ``version`` satisfies the constraint.

        Args:
            version: The candidate version.
            minimum_stability: The caller's minimum stability. Versions below
                it are rejected unless the constraint's own flag admits them.
        """
        if not self.versions.contains(version):
            return False
        return version.stability >= self.effective_stability(minimum_stability)

    def intersect(self, other: VersionConstraint) -> VersionConstraint:
        return VersionConstraint(
            f"{self.text}, {other.text}",
            self.versions.intersect(other.versions),
            _lowest(self.stability, other.stability),
        )

    def union(self, other: VersionConstraint) -> VersionConstraint:
        return VersionConstraint(
            f"{self.text} || {other.text}",
            self.versions.union(other.versions),
            _lowest(self.stability, other.stability),
        )

    @property
    def is_any(self) -> bool:
        return self.versions.is_any

    def __str__(self) -> str:
        return self.text


@lru_cache(maxsize=4096)
def parse_constraint(text: str) -> VersionConstraint:
    """Parse a constraint expression.

    Args:
        text: Constraint text such as ``"^1.2 || ~2.0@beta"``.

    Returns:
        The parsed VersionConstraint.

    Raises:
        ParseError: If the expression is malformed.
    """
    raw = text.strip()
    if not raw:
        raise ParseError("Empty constraint")

    versions = VersionRange.empty()
    stability: Stability | None = None
    for group in _OR_SPLIT_RE.split(raw):
        if not group:
            raise ParseError(f"Empty alternative in constraint: {text!r}")
        hyphen = _HYPHEN_RE.match(group)
        if hyphen is not None:
            group_versions = _hyphen(hyphen.group("low"), hyphen.group("high"))
        else:
            group_versions = VersionRange.any()
            atoms = _split_and(group)
            if not atoms:
                raise ParseError(f"Empty alternative in constraint: {text!r}")
            for atom in atoms:
                atom_versions, flag = _parse_atom(atom)
                group_versions = group_versions.intersect(atom_versions)
                stability = _lowest(stability, flag)
        versions = versions.union(group_versions)
    return VersionConstraint(raw, versions, stability)


def clear_constraint_cache() -> None:
    """Drop memoized parse results for versions and constraints."""
    parse_constraint.cache_clear()
    parse_version.cache_clear()
