"""A directed acyclic graph of build dependencies."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class GraphError(Exception):
    """Raised on missing nodes, duplicate nodes and dependency cycles."""


class NodeType(enum.IntEnum):
    SOURCE = 0
    HEADER = 1
    OBJECT = 2
    LIBRARY = 3
    EXECUTABLE = 4


@dataclass(eq=False)
class Node:
    """A file taking part in the build, with the nodes it depends on."""

    id: str
    type: NodeType
    path: str = ""
    hash: str = ""
    timestamp: int = 0
    dependencies: list[Node] = field(default_factory=list)
    command_hash: str = ""


class Graph:
    """Nodes keyed by id; an edge runs from a node to something it needs."""

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.start_nodes: list[Node] = []

    def add_node(self, node: Node) -> None:
        if node.id in self.nodes:
            raise GraphError(f"node already exists: {node.id}")
        self.nodes[node.id] = node

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def add_dependency(self, from_id: str, to_id: str) -> None:
        """Make ``from_id`` depend on ``to_id``; refuses edges that close a cycle."""
        from_node = self.nodes.get(from_id)
        to_node = self.nodes.get(to_id)
        if from_node is None:
            raise GraphError(f"source node not found: {from_id}")
        if to_node is None:
            raise GraphError(f"target node not found: {to_id}")
        if any(dep.id == to_id for dep in from_node.dependencies):
            return
        from_node.dependencies.append(to_node)
        if self.has_cycle():
            from_node.dependencies.pop()
            raise GraphError(
                f"adding dependency from {from_id} to {to_id} would create a cycle"
            )

    def has_cycle(self) -> bool:
        visited: set[str] = set()
        for start in self.nodes:
            if start in visited:
                continue
            on_path = {start}
            visited.add(start)
            stack = [(start, iter(self.nodes[start].dependencies))]
            while stack:
                node_id, deps = stack[-1]
                for dep in deps:
                    if dep.id not in visited:
                        visited.add(dep.id)
                        on_path.add(dep.id)
                        stack.append((dep.id, iter(self.nodes[dep.id].dependencies)))
                        break
                    if dep.id in on_path:
                        return True
                else:
                    stack.pop()
                    on_path.discard(node_id)
        return False

    def _postorder(self, start: str, visited: set[str], out: list[Node]) -> None:
        visited.add(start)
        stack = [(start, iter(self.nodes[start].dependencies))]
        while stack:
            node_id, deps = stack[-1]
            for dep in deps:
                if dep.id not in visited:
                    visited.add(dep.id)
                    stack.append((dep.id, iter(self.nodes[dep.id].dependencies)))
                    break
            else:
                stack.pop()
                out.append(self.nodes[node_id])

    def topological_sort(self) -> list[Node]:
        """Order nodes so that every node precedes the nodes it depends on."""
        if self.has_cycle():
            raise GraphError("graph has cycles, cannot perform topological sort")
        visited: set[str] = set()
        order: list[Node] = []
        for node in self.start_nodes:
            if node.id not in visited:
                self._postorder(node.id, visited, order)
        for node_id in self.nodes:
            if node_id not in visited:
                self._postorder(node_id, visited, order)
        order.reverse()
        return order

    def build_order(self) -> list[Node]:
        return self.topological_sort()

    def mark_entry_point(self, node_id: str) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            raise GraphError(f"node not found: {node_id}")
        if any(start.id == node_id for start in self.start_nodes):
            return
        self.start_nodes.append(node)

    def dependents(self, node_id: str) -> list[Node]:
        """Nodes that depend directly on ``node_id``."""
        return [
            node
            for node in self.nodes.values()
            if any(dep.id == node_id for dep in node.dependencies)
        ]

    def dependents_recursive(self, node_id: str) -> list[Node]:
        """Nodes that depend on ``node_id`` directly or through others."""
        visited: set[str] = set()
        result: list[Node] = []

        def walk(current: str) -> None:
            if current in visited:
                return
            visited.add(current)
            for dependent in self.dependents(current):
                result.append(dependent)
                walk(dependent.id)

        walk(node_id)
        return result