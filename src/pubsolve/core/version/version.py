"""Version parsing and ordering.

Two kinds of versions exist:

- **Numeric** versions with one to four numeric components, an optional
  pre-release tag and optional build metadata (``1.2``, ``v2.0.0-beta3``,
  ``1.0.0-RC1+build.7``). They are totally ordered, and a missing component
  counts as zero, so ``1.2`` equals ``1.2.0.0``. Build metadata is ignored.
- **Branch** pseudo-versions (``dev-main``, ``2.x-dev``) that name a
  development branch. They have ``dev`` stability and are only ever equal
  to a branch of the same name; they never fall inside numeric intervals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache

from pubsolve.core.version.stability import Stability
from pubsolve.exceptions import ParseError


# ---------------------------------------------------------------------------
# Pre-release ranks
# ---------------------------------------------------------------------------

RANK_DEV = 0
RANK_ALPHA = 1
RANK_BETA = 2
RANK_RC = 3
RANK_RELEASE = 4
RANK_PATCH = 5

_TAG_RANKS = {
    "dev": RANK_DEV,
    "alpha": RANK_ALPHA,
    "a": RANK_ALPHA,
    "beta": RANK_BETA,
    "b": RANK_BETA,
    "rc": RANK_RC,
    "stable": RANK_RELEASE,
    "patch": RANK_PATCH,
    "pl": RANK_PATCH,
    "p": RANK_PATCH,
}

_RANK_STABILITY = {
    RANK_DEV: Stability.DEV,
    RANK_ALPHA: Stability.ALPHA,
    RANK_BETA: Stability.BETA,
    RANK_RC: Stability.RC,
    RANK_RELEASE: Stability.STABLE,
    RANK_PATCH: Stability.STABLE,
}

_RANK_SUFFIX = {
    RANK_DEV: "dev",
    RANK_ALPHA: "alpha",
    RANK_BETA: "beta",
    RANK_RC: "RC",
    RANK_PATCH: "patch",
}

_NUMERIC_RE = re.compile(
    r"^v?(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:[._-]?(?P<tag>stable|beta|b|rc|alpha|a|patch|pl|p|dev)"
    r"(?:[._-]?(?P<number>\d+))?)?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$",
    re.IGNORECASE,
)

_BRANCH_RE = re.compile(r"^dev-\S+$|^v?\d+(?:\.(?:\d+|[xX*]))*\.[xX*][.-]?dev$")


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Version:
    """A concrete package version.

    Instances are immutable and hashable. Comparison operators order numeric
    versions by release, then pre-release rank and number. Branches sort
    after every numeric version and among themselves by name; that order is
    only used to keep listings deterministic.

    Attributes:
        release: Numeric components padded to four entries. Empty for branches.
        rank: Pre-release rank (``RANK_DEV`` ... ``RANK_PATCH``).
        number: Pre-release number (``3`` in ``beta3``).
        branch: Branch name for branch pseudo-versions, else None.
        text: The version as written.
    """

    release: tuple[int, ...] = ()
    rank: int = RANK_RELEASE
    number: int = 0
    branch: str | None = None
    text: str = field(default="", compare=False)

    # -- construction -------------------------------------------------------

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse version text. See :func:`parse_version`."""
        return parse_version(text)

    @classmethod
    def from_parts(
        cls, *components: int, rank: int = RANK_RELEASE, number: int = 0
    ) -> Version:
        """Build a numeric version from its components.

        Args:
            components: One to four numeric components.
            rank: Pre-release rank, release by default.
            number: Pre-release number.
        """
        if not 1 <= len(components) <= 4:
            raise ValueError("a version has between one and four components")
        release = tuple(components) + (0,) * (4 - len(components))
        shown = release[:3] if release[3] == 0 else release
        text = ".".join(str(c) for c in shown)
        if rank != RANK_RELEASE:
            text += f"-{_RANK_SUFFIX[rank]}"
            if number:
                text += str(number)
        return cls(release=release, rank=rank, number=number, text=text)

    @classmethod
    def for_branch(cls, name: str) -> Version:
        """Build a branch pseudo-version (``dev-main``, ``1.x-dev``)."""
        return cls(rank=RANK_DEV, branch=name, text=name)

    # -- properties ---------------------------------------------------------

    @property
    def is_branch(self) -> bool:
        return self.branch is not None

    @property
    def stability(self) -> Stability:
        if self.branch is not None:
            return Stability.DEV
        return _RANK_STABILITY[self.rank]

    @property
    def is_prerelease(self) -> bool:
        return self.stability is not Stability.STABLE

    @property
    def is_dev_boundary(self) -> bool:
        """True for synthetic ``X-dev`` bounds produced by constraint parsing."""
        return self.branch is None and self.rank == RANK_DEV and self.number == 0

    @property
    def base(self) -> Version:
        """The release this version belongs to, without pre-release tag."""
        if self.branch is not None or self.rank == RANK_RELEASE:
            return self
        return Version.from_parts(*self.release)

    def bump(self, position: int) -> Version:
        """Increment the component at ``position`` and zero the rest.

        Returns the ``-dev`` boundary of the bumped release so that
        pre-releases of the next release fall outside ranges that end there.
        """
        parts = list(self.release[: position + 1])
        parts[position] += 1
        return Version.from_parts(*parts, rank=RANK_DEV)

    @property
    def sort_key(self) -> tuple:
        if self.branch is not None:
            return (1, self.branch)
        return (0, self.release, self.rank, self.number)

    # -- dunder -------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __lt__(self, other: Version) -> bool:
        return self.sort_key < other.sort_key

    def __le__(self, other: Version) -> bool:
        return self.sort_key <= other.sort_key

    def __gt__(self, other: Version) -> bool:
        return self.sort_key > other.sort_key

    def __ge__(self, other: Version) -> bool:
        return self.sort_key >= other.sort_key

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@lru_cache(maxsize=4096)
def parse_version(text: str) -> Version:
    """Parse a version string.

    Args:
        text: Version text such as ``"1.2.3"``, ``"v2.0-beta1"`` or
            ``"dev-main"``.

    Returns:
        The parsed Version.

    Raises:
        ParseError: If the text is not a valid version.
    """
    raw = text.strip()
    if not raw:
        raise ParseError("Empty version string")
    if _BRANCH_RE.match(raw):
        return Version.for_branch(raw)

    match = _NUMERIC_RE.match(raw)
    if match is None:
        raise ParseError(f"Invalid version: {text!r}")

    components = tuple(int(c) for c in match.group("release").split("."))
    release = components + (0,) * (4 - len(components))
    tag = match.group("tag")
    rank = _TAG_RANKS[tag.lower()] if tag else RANK_RELEASE
    number = int(match.group("number") or 0)
    return Version(release=release, rank=rank, number=number, text=raw)
