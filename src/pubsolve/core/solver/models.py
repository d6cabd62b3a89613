"""Package-level data model shared by the fetchers, the solver and the assembler.

A package name is a plain ``vendor/name`` string, lower-cased once when it
enters the system (:func:`normalize_name`). Everything else here is an
immutable dataclass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from pubsolve.core.version.constraints import VersionConstraint, parse_constraint
from pubsolve.core.version.stability import Stability
from pubsolve.core.version.version import Version
from pubsolve.exceptions import ParseError

#: Name of the synthetic package standing for the project being resolved.
ROOT = "__root__"
ROOT_VERSION = Version.from_parts(1, 0, 0)

_PLATFORM_RE = re.compile(
    r"^(?:php(?:-64bit|-ipv6|-zts|-debug)?|hhvm"
    r"|(?:ext|lib)-[a-z0-9](?:[_.-]?[a-z0-9]+)*"
    r"|composer(?:-plugin-api|-runtime-api)?)$",
    re.IGNORECASE,
)


def normalize_name(name: str) -> str:
    """Lower-case and validate a package name.

    Raises:
        ParseError: If the name is empty or contains whitespace.
    """
    cleaned = name.strip().lower()
    if not cleaned or any(ch.isspace() for ch in cleaned):
        raise ParseError(f"Invalid package name: {name!r}")
    return cleaned


def is_platform_package(name: str) -> bool:
    """True for names the host environment provides (php, ext-*, lib-*, ...)."""
    return bool(_PLATFORM_RE.match(name))


# ---------------------------------------------------------------------------
# Links and dependencies
# ---------------------------------------------------------------------------


class LinkKind(str, Enum):
    """The relation a package declares towards another package name."""

    REQUIRE = "require"
    REQUIRE_DEV = "require-dev"
    PROVIDE = "provide"
    REPLACE = "replace"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Link:
    """A declared relation from one package to a constrained package name.

    Attributes:
        source: Name of the declaring package.
        target: Name of the package the declaration is about.
        constraint: Versions of ``target`` the declaration covers.
        kind: Require, require-dev, provide, replace or conflict.
    """

    source: str
    target: str
    constraint: VersionConstraint
    kind: LinkKind = LinkKind.REQUIRE

    def __str__(self) -> str:
        return f"{self.source} {self.kind.value} {self.target} ({self.constraint})"


@dataclass(frozen=True)
class Dependency:
    """A root-level requirement.

    Attributes:
        name: Required package name.
        constraint: Acceptable versions.
        is_dev: True for development-only requirements.
    """

    name: str
    constraint: VersionConstraint
    is_dev: bool = False

    @classmethod
    def parse(cls, name: str, constraint: str, is_dev: bool = False) -> Dependency:
        """Build a dependency from raw strings, validating both.

        Raises:
            ParseError: On a malformed name or constraint.
        """
        return cls(normalize_name(name), parse_constraint(constraint), is_dev)

    def __str__(self) -> str:
        suffix = " (dev)" if self.is_dev else ""
        return f"{self.name} {self.constraint}{suffix}"


# ---------------------------------------------------------------------------
# VersionRecord
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionRecord:
    """Everything the solver knows about one released version of a package.

    Attributes:
        name: Package name.
        version: The concrete version.
        requires: Runtime requirements.
        dev_requires: Development requirements (only honored for the root).
        provides: Virtual packages this version provides.
        replaces: Packages this version replaces (and therefore conflicts with).
        conflicts: Package versions this version cannot be installed with.
        metadata: Free-form fetched data (dist, source, description, ...).
    """

    name: str
    version: Version
    requires: tuple[Link, ...] = ()
    dev_requires: tuple[Link, ...] = ()
    provides: tuple[Link, ...] = ()
    replaces: tuple[Link, ...] = ()
    conflicts: tuple[Link, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def stability(self) -> Stability:
        return self.version.stability

    @property
    def pretty(self) -> str:
        return f"{self.name} ({self.version})"

    def satisfies_virtual(self, name: str) -> list[Link]:
        """Provide and replace links of this version that target ``name``."""
        return [link for link in self.provides + self.replaces if link.target == name]

    def __str__(self) -> str:
        return self.pretty
