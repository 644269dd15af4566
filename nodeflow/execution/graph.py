"""Dependency graph construction and topological ordering."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence

from nodeflow.domain.models import WorkflowDefinition
from nodeflow.errors import CycleDetected

DependencyGraph = dict[str, list[str]]

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


def build_dependency_graph(definition: WorkflowDefinition) -> DependencyGraph:
    """Map every node id to the ids of the nodes that feed it.

    Every declared node gets an entry (possibly empty), in declaration order.
    Sources are listed in edge order; a node wired twice from the same source
    appears twice.
    """
    depends_on: DependencyGraph = {node.id: [] for node in definition.nodes}
    for edge in definition.edges:
        if edge.target_node_id in depends_on:
            depends_on[edge.target_node_id].append(edge.source_node_id)
    return depends_on


def topological_sort(depends_on: Mapping[str, Sequence[str]]) -> list[str]:
    """Order node ids so that every node comes after everything it depends on.

    Depth-first, three-colour traversal over the keys of ``depends_on`` in their
    iteration order, visiting dependencies in list order. The traversal keeps
    its own stack, so graph depth is not limited by the interpreter's recursion
    limit.

    Args:
        depends_on: Node id -> ids of the nodes it depends on

    Returns:
        Node ids in execution order

    Raises:
        CycleDetected: Naming the node at which a cycle was re-entered
    """
    colour: dict[str, int] = {}
    order: list[str] = []

    for root in depends_on:
        if colour.get(root, _UNVISITED) == _DONE:
            continue

        colour[root] = _IN_PROGRESS
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(depends_on.get(root, ())))]

        while stack:
            node_id, pending = stack[-1]
            for dep in pending:
                state = colour.get(dep, _UNVISITED)
                if state == _IN_PROGRESS:
                    raise CycleDetected(dep)
                if state == _UNVISITED:
                    colour[dep] = _IN_PROGRESS
                    stack.append((dep, iter(depends_on.get(dep, ()))))
                    break
            else:
                stack.pop()
                colour[node_id] = _DONE
                order.append(node_id)

    return order


def execution_order(definition: WorkflowDefinition) -> list[str]:
    """Build the dependency graph of ``definition`` and sort it."""
    return topological_sort(build_dependency_graph(definition))
