"""Formula dependency tracking for PyForecast.

Tracks which entities each formula references, for circular reference
detection and for answering "what uses this entity".
"""

from collections import defaultdict
from typing import Iterable

from pyforecast.formula.entities import EntityType, reference_key
from pyforecast.formula.references import extract_references


class FormulaDependencyGraph:
    """
    Directed graph of formula dependencies between entities.

    Maintains both directions:
    - reverse: node -> set of nodes its formula references
    - dependencies: node -> set of nodes whose formulas reference it

    Nodes are composite keys (``"expense_3"``). With ``key_by_id=True`` they
    are bare numeric ids instead, so a stream and an expense sharing an id
    collapse into one node.
    """

    def __init__(self, key_by_id: bool = False):
        """Initialize empty dependency graph."""
        self.key_by_id = key_by_id

        # Forward mapping: node -> set of dependent nodes
        self.dependencies: dict[str, set[str]] = defaultdict(set)

        # Reverse mapping: node -> set of nodes it depends on
        self.reverse: dict[str, set[str]] = {}

    def node_key(self, entity_type: EntityType | str, entity_id: int) -> str:
        """Graph node for an entity."""
        if self.key_by_id:
            return str(int(entity_id))
        return reference_key(entity_type, entity_id)

    def register_edges(self, node: str, formula: str | None) -> set[str]:
        """
        Replace a node's outgoing edges with the references in ``formula``.

        Registration never fails; cycles are reported by ``has_cycle``.

        Args:
            node: Graph node of the entity owning the formula
            formula: The entity's formula, or None for a plain value

        Returns:
            The set of nodes the entity now depends on
        """
        depends_on = {self.node_key(ref.type, ref.id) for ref in extract_references(formula)}
        self.set_dependencies(node, depends_on)
        return depends_on

    def set_dependencies(self, node: str, depends_on: Iterable[str]) -> None:
        """Replace a node's outgoing edges."""
        self._drop_outgoing(node)
        depends_on = set(depends_on)
        self.reverse[node] = depends_on
        for dep in depends_on:
            self.dependencies[dep].add(node)

    def remove_node(self, node: str) -> None:
        """
        Remove a node's own edges from the graph.

        Edges from other formulas that still reference the node are kept;
        they now point at a dangling reference.
        """
        self._drop_outgoing(node)
        self.reverse.pop(node, None)
        if not self.dependencies.get(node):
            self.dependencies.pop(node, None)

    def _drop_outgoing(self, node: str) -> None:
        for old_dep in self.reverse.get(node, set()):
            dependents = self.dependencies.get(old_dep)
            if dependents is not None:
                dependents.discard(node)
                if not dependents:
                    del self.dependencies[old_dep]

    def nodes(self) -> list[str]:
        """Every node, in registration order, followed by referenced-only nodes."""
        ordered = dict.fromkeys(self.reverse)
        for deps in self.reverse.values():
            ordered.update(dict.fromkeys(sorted(deps)))
        return list(ordered)

    def has_cycle(self) -> bool:
        """
        Whether any chain of references loops back on itself.

        Runs a depth-first traversal from every node with a fresh
        current-path set; meeting a node already on the path is a cycle.
        """
        return bool(self.find_cycle_members())

    def find_cycle_members(self) -> list[str]:
        """
        Nodes on the traversal path when the first cycle is found.

        The path runs from the root the traversal started at, so nodes that
        only lead into the loop are included. Only the first cycle is
        reported, not every disjoint cycle.
        """
        # Nodes already proven to reach no cycle
        done: set[str] = set()
        for root in self.nodes():
            if root in done:
                continue
            cycle = self._visit(root, done)
            if cycle:
                return cycle
        return []

    def _visit(self, root: str, done: set[str]) -> list[str]:
        """Iterative DFS from ``root``; returns the path if it loops back."""
        path: dict[str, None] = {root: None}
        stack = [(root, iter(sorted(self.reverse.get(root, ()))))]

        while stack:
            node, deps = stack[-1]
            for dep in deps:
                if dep in path:
                    return list(path)
                if dep not in done:
                    path[dep] = None
                    stack.append((dep, iter(sorted(self.reverse.get(dep, ())))))
                    break
            else:
                stack.pop()
                del path[node]
                done.add(node)

        return []

    def detect_circular_reference(self, node: str, depends_on: Iterable[str]) -> bool:
        """
        Check if giving ``node`` these dependencies would create a cycle.

        Uses DFS from the proposed dependencies looking for ``node``.

        Args:
            node: Node whose formula is being edited
            depends_on: Nodes the candidate formula references

        Returns:
            True if circular reference detected
        """
        to_check = list(depends_on)
        visited = set()

        while to_check:
            current = to_check.pop()

            if current == node:
                return True

            if current in visited:
                continue
            visited.add(current)

            to_check.extend(self.reverse.get(current, ()))

        return False

    def get_dependencies(self, node: str) -> set[str]:
        """
        Get direct dependencies of a node.

        Returns:
            Set of nodes that this node's formula references
        """
        return set(self.reverse.get(node, ()))

    def get_dependents(self, node: str) -> set[str]:
        """
        Get direct dependents of a node.

        Returns:
            Set of nodes whose formulas reference this node
        """
        return set(self.dependencies.get(node, ()))

    def clear(self) -> None:
        """Clear all dependencies from the graph."""
        self.dependencies.clear()
        self.reverse.clear()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"FormulaDependencyGraph("
            f"nodes={len(self.reverse)}, "
            f"edges={sum(len(deps) for deps in self.reverse.values())})"
        )
