"""Outcomes of a resolution.

A resolution ends in exactly one of three ways: a :class:`Resolution`, a
``ConflictError`` carrying the explanation, or a :class:`Cancelled`
marker when the caller's cancellation signal fired.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from pubsolve.core.fetch.scheduler import FetchStats
from pubsolve.core.solver.models import VersionRecord
from pubsolve.core.solver.solver import SolverStats
from pubsolve.core.version.version import Version


@dataclass(frozen=True)
class ResolvedPackage:
    """One selected package.

    Attributes:
        name: Package name.
        version: Selected version.
        is_dev: True when only development requirements reach the package.
        record: The full fetched metadata of the selected version.
        dependencies: Names of selected packages this one requires, sorted.
    """

    name: str
    version: Version
    is_dev: bool
    record: VersionRecord = field(compare=False)
    dependencies: tuple[str, ...] = ()

    @property
    def metadata(self) -> Any:
        return self.record.metadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version.text,
            "dev": self.is_dev,
            "dependencies": list(self.dependencies),
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.version})"


@dataclass
class ResolutionStats:
    """Work done to produce a resolution. Not part of equality."""

    solver: SolverStats = field(default_factory=SolverStats)
    fetch: FetchStats = field(default_factory=FetchStats)
    elapsed: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "solver": self.solver.to_dict(),
            "fetch": self.fetch.to_dict(),
            "elapsed": self.elapsed,
        }


@dataclass
class Resolution:
    """A consistent selection of package versions.

    Packages are in installation order: every package comes after the
    packages it depends on, except within a dependency cycle, whose members
    appear together in name order. Two resolutions compare equal when they
    select the same packages in the same order.

    Attributes:
        packages: Selected packages in installation order.
        platform_packages: Platform requirements (php, ext-*) that were
            skipped or checked against configured platform versions.
    """

    packages: list[ResolvedPackage] = field(default_factory=list)
    platform_packages: list[str] = field(default_factory=list)
    stats: ResolutionStats = field(default_factory=ResolutionStats, compare=False, repr=False)

    def __post_init__(self) -> None:
        self._index = {package.name: package for package in self.packages}

    # -- lookups ------------------------------------------------------------

    def get(self, name: str) -> ResolvedPackage | None:
        return self._index.get(name)

    def version_of(self, name: str) -> Version | None:
        package = self._index.get(name)
        return package.version if package else None

    def names(self) -> list[str]:
        return [package.name for package in self.packages]

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[ResolvedPackage]:
        return iter(self.packages)

    def __len__(self) -> int:
        return len(self.packages)

    # -- graph queries ------------------------------------------------------

    def dependencies_of(self, name: str) -> list[str]:
        """Selected packages ``name`` directly requires."""
        package = self._index.get(name)
        return list(package.dependencies) if package else []

    def dependents(self, name: str) -> list[str]:
        """Selected packages that directly require ``name``, sorted."""
        return sorted(p.name for p in self.packages if name in p.dependencies)

    @property
    def non_dev(self) -> list[ResolvedPackage]:
        return [p for p in self.packages if not p.is_dev]

    @property
    def dev(self) -> list[ResolvedPackage]:
        return [p for p in self.packages if p.is_dev]

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages": [p.to_dict() for p in self.packages],
            "platform": list(self.platform_packages),
        }


@dataclass(frozen=True)
class Cancelled:
    """Terminal outcome of a resolution whose cancel signal fired."""

    reason: str = "cancelled"

    def __bool__(self) -> bool:
        return False
