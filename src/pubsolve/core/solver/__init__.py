"""PubGrub-style constraint solving.

Terms and incompatibilities, the append-only incompatibility store, the
leveled partial solution, the conflict-driven solver loop and the
explanation of failures.

Public API::

    from pubsolve.core.solver import VersionSolver, Dependency, VersionRecord
"""

from __future__ import annotations

from pubsolve.core.solver.incompatibility import Incompatibility, IncompatibilityCause
from pubsolve.core.solver.models import (
    ROOT,
    Dependency,
    Link,
    LinkKind,
    VersionRecord,
    is_platform_package,
    normalize_name,
)
from pubsolve.core.solver.partial_solution import Assignment, PartialSolution
from pubsolve.core.solver.report import ConflictExplanation, ExplanationStep
from pubsolve.core.solver.solver import SolverResult, SolverStats, VersionSolver
from pubsolve.core.solver.store import IncompatibilityStore
from pubsolve.core.solver.term import SetRelation, Term

__all__ = [
    "ROOT",
    "Assignment",
    "ConflictExplanation",
    "Dependency",
    "ExplanationStep",
    "Incompatibility",
    "IncompatibilityCause",
    "IncompatibilityStore",
    "Link",
    "LinkKind",
    "PartialSolution",
    "SetRelation",
    "SolverResult",
    "SolverStats",
    "Term",
    "VersionRecord",
    "VersionSolver",
    "is_platform_package",
    "normalize_name",
]
