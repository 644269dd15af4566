"""Port wiring: which upstream output port feeds which input port."""

from __future__ import annotations

from dataclasses import dataclass

from nodeflow.domain.models import WorkflowDefinition
from nodeflow.trace import trace


@dataclass(frozen=True, slots=True)
class PortConnection:
    """A connection between two ports."""

    source_node: str
    source_port: str
    target_node: str
    target_port: str
    edge_id: str = ""

    def __repr__(self) -> str:
        return f"{self.source_node}.{self.source_port} → {self.target_node}.{self.target_port}"


class PortMap:
    """Connections of a workflow, indexed by target node and input port.

    One input port is fed by one connection. When several edges target the
    same port, the last one registered wins.
    """

    def __init__(self, *, verbose: bool = True) -> None:
        self.connections: list[PortConnection] = []
        self._inputs: dict[str, dict[str, PortConnection]] = {}
        self._verbose = verbose

    @classmethod
    def from_definition(cls, definition: WorkflowDefinition, *, verbose: bool = True) -> PortMap:
        ports = cls(verbose=verbose)
        for edge in definition.edges:
            ports.add_connection(
                source_node=edge.source_node_id,
                source_port=edge.source_port,
                target_node=edge.target_node_id,
                target_port=edge.target_port,
                edge_id=edge.id,
            )
        return ports

    def add_connection(
        self,
        source_node: str,
        source_port: str,
        target_node: str,
        target_port: str,
        edge_id: str = "",
    ) -> PortConnection:
        """Register a port connection."""
        conn = PortConnection(source_node, source_port, target_node, target_port, edge_id)
        self.connections.append(conn)

        by_port = self._inputs.setdefault(target_node, {})
        replaced = by_port.get(target_port)
        by_port[target_port] = conn

        if replaced is not None:
            trace("PORTS", f"Connection {conn!r} replaces {replaced!r}", enabled=self._verbose)
        else:
            trace("PORTS", f"Connection: {conn!r}", enabled=self._verbose)
        return conn

    def inputs_for(self, node_id: str) -> dict[str, PortConnection]:
        """Input port -> feeding connection, for one node."""
        return dict(self._inputs.get(node_id, {}))

    def get_dependents(self, node_id: str) -> set[str]:
        """All nodes that read this node's outputs."""
        return {conn.target_node for conn in self.connections if conn.source_node == node_id}
