"""Human-readable explanations of resolution failures.

When the solver learns an incompatibility that rules out the root package,
that incompatibility is the root of a derivation tree. Each derived node was
resolved from two parents; each leaf is an external fact such as a declared
dependency or a missing version. The explanation walks the tree parents
first, so every step only refers to facts already stated:

    vendor/a (1.0.0) requires vendor/c (>=1.0,<1.5).
    vendor/b (1.0.0) requires vendor/c (^2.0).
    Because vendor/a (1.0.0) requires ... and ..., vendor/a (1.0.0) is
    incompatible with vendor/b (1.0.0).
    ...
    So, because ..., version solving failed.
"""

from __future__ import annotations

from dataclasses import dataclass

from pubsolve.core.solver.incompatibility import Incompatibility, IncompatibilityCause
from pubsolve.core.solver.models import ROOT


@dataclass(frozen=True)
class ExplanationStep:
    """One link of the causal chain.

    Attributes:
        incompatibility: The fact this step states.
        description: The step as a sentence.
    """

    incompatibility: Incompatibility
    description: str


def _sentence(text: str) -> str:
    return text[:1].upper() + text[1:] + "."


class ConflictExplanation:
    """The causal chain proving that the root requirements are unsatisfiable.

    Args:
        failure: The learned incompatibility that rules out the root.
    """

    def __init__(self, failure: Incompatibility) -> None:
        self._failure = failure
        self._steps = tuple(self._build(failure))

    @property
    def failure(self) -> Incompatibility:
        return self._failure

    @property
    def steps(self) -> tuple[ExplanationStep, ...]:
        return self._steps

    @property
    def chain(self) -> list[tuple[Incompatibility, str]]:
        """The steps as ``(incompatibility, description)`` pairs."""
        return [(step.incompatibility, step.description) for step in self._steps]

    def packages(self) -> set[str]:
        """Every package named by an external fact in the chain."""
        names: set[str] = set()
        for incompatibility in self._failure.external_incompatibilities():
            names.update(p for p in incompatibility.packages() if p != ROOT)
        return names

    def external_facts(self) -> list[Incompatibility]:
        return [
            step.incompatibility
            for step in self._steps
            if not step.incompatibility.is_derived
        ]

    def _build(self, root: Incompatibility) -> list[ExplanationStep]:
        steps: list[ExplanationStep] = []
        seen: set[int] = set()

        def visit(incompatibility: Incompatibility) -> None:
            if id(incompatibility) in seen:
                return
            seen.add(id(incompatibility))

            if not incompatibility.is_derived:
                if incompatibility.cause is not IncompatibilityCause.ROOT:
                    steps.append(
                        ExplanationStep(incompatibility, _sentence(str(incompatibility)))
                    )
                return

            left, right = incompatibility.left, incompatibility.right
            assert left is not None and right is not None
            visit(left)
            visit(right)
            if left.cause is IncompatibilityCause.ROOT:
                because = str(right)
            elif right.cause is IncompatibilityCause.ROOT:
                because = str(left)
            else:
                because = f"{left} and {right}"
            if incompatibility.is_failure:
                description = f"So, because {because}, version solving failed."
            else:
                description = f"Because {because}, {incompatibility}."
            steps.append(ExplanationStep(incompatibility, description))

        visit(root)
        return steps

    def __str__(self) -> str:
        return "\n".join(step.description for step in self._steps)

    def __len__(self) -> int:
        return len(self._steps)
