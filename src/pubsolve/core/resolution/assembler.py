"""Turn solver decisions into an ordered, dev-partitioned package list.

Steps:

1. Build the dependency graph among selected packages. A requirement on a
   name no selected package carries (a virtual package) points to the
   selected packages that provide or replace it.
2. Group strongly connected components (Tarjan) so dependency cycles never
   block ordering.
3. Order components dependencies first (Kahn), breaking ties by the
   smallest package name in each component; members of a cycle are emitted
   together in name order.
4. Mark as dev every package not reachable from a non-dev root requirement.
"""

from __future__ import annotations

import heapq
import logging
from collections import deque

from pubsolve.core.resolution.models import Resolution, ResolvedPackage
from pubsolve.core.solver.models import Link, VersionRecord
from pubsolve.core.solver.solver import SolverResult

logger = logging.getLogger(__name__)


class ResolutionAssembler:
    """Build a :class:`Resolution` from a successful :class:`SolverResult`."""

    def __init__(self, result: SolverResult) -> None:
        self._result = result
        self._selected: dict[str, VersionRecord] = dict(sorted(result.decisions.items()))
        self._edges: dict[str, list[str]] = {
            name: self._targets(record.requires) for name, record in self._selected.items()
        }

    # -- graph --------------------------------------------------------------

    def _resolve_target(self, target: str) -> list[str]:
        if target in self._selected:
            return [target]
        return [
            name
            for name, record in self._selected.items()
            if record.satisfies_virtual(target)
        ]

    def _targets(self, links: tuple[Link, ...]) -> list[str]:
        found: set[str] = set()
        for link in links:
            found.update(self._resolve_target(link.target))
        return sorted(found)

    @property
    def edges(self) -> dict[str, list[str]]:
        """Package name -> names of the selected packages it requires."""
        return {name: list(targets) for name, targets in self._edges.items()}

    def strongly_connected_components(self) -> list[list[str]]:
        """Tarjan's algorithm; each component is sorted by name.

        Runs with an explicit stack so long dependency chains do not hit
        the interpreter's recursion limit.
        """
        index_of: dict[str, int] = {}
        low: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        components: list[list[str]] = []

        def visit(node: str) -> None:
            index_of[node] = low[node] = len(index_of)
            stack.append(node)
            on_stack.add(node)

        for start in self._selected:
            if start in index_of:
                continue
            visit(start)
            frames = [(start, iter(self._edges[start]))]
            while frames:
                node, successors = frames[-1]
                descended = False
                for successor in successors:
                    if successor not in index_of:
                        visit(successor)
                        frames.append((successor, iter(self._edges[successor])))
                        descended = True
                        break
                    if successor in on_stack:
                        low[node] = min(low[node], index_of[successor])
                if descended:
                    continue
                frames.pop()
                if frames:
                    parent = frames[-1][0]
                    low[parent] = min(low[parent], low[node])
                if low[node] == index_of[node]:
                    component = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(sorted(component))
        return components

    def installation_order(self) -> list[str]:
        """Package names, dependencies before dependents."""
        components = self.strongly_connected_components()
        component_of = {
            member: position
            for position, component in enumerate(components)
            for member in component
        }
        waiting_on: list[set[int]] = [set() for _ in components]
        dependents: list[set[int]] = [set() for _ in components]
        for name, targets in self._edges.items():
            source = component_of[name]
            for target in targets:
                dependency = component_of[target]
                if dependency != source:
                    waiting_on[source].add(dependency)
                    dependents[dependency].add(source)

        ready = [
            (components[i][0], i) for i in range(len(components)) if not waiting_on[i]
        ]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            _, position = heapq.heappop(ready)
            component = components[position]
            if len(component) > 1:
                logger.debug("dependency cycle: %s", ", ".join(component))
            order.extend(component)
            for dependent in dependents[position]:
                waiting_on[dependent].discard(position)
                if not waiting_on[dependent]:
                    heapq.heappush(ready, (components[dependent][0], dependent))
        return order

    def non_dev_packages(self) -> set[str]:
        """Packages reachable from a non-dev root requirement."""
        root = self._result.root
        seen: set[str] = set(self._targets(root.requires))
        queue = deque(sorted(seen))
        while queue:
            current = queue.popleft()
            for successor in self._edges[current]:
                if successor not in seen:
                    seen.add(successor)
                    queue.append(successor)
        return seen

    # -- output -------------------------------------------------------------

    def assemble(self) -> Resolution:
        non_dev = self.non_dev_packages()
        packages = [
            ResolvedPackage(
                name=name,
                version=self._selected[name].version,
                is_dev=name not in non_dev,
                record=self._selected[name],
                dependencies=tuple(self._edges[name]),
            )
            for name in self.installation_order()
        ]
        return Resolution(
            packages=packages,
            platform_packages=list(self._result.platform_packages),
        )
