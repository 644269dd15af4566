"""Input resolution: turn wires and static configuration into executor inputs."""

from __future__ import annotations

from collections.abc import Mapping

from nodeflow.config import EngineSettings
from nodeflow.domain.models import NodeDefinition, NodeOutput, WorkflowNode
from nodeflow.errors import MissingRequiredInput, MissingUpstreamOutput
from nodeflow.execution.ports import PortMap
from nodeflow.trace import trace

ResolvedInputs = dict[str, NodeOutput]

STATIC_SOURCE = "static"


class InputResolver:
    """Resolves the inputs of one node from upstream outputs and its own data.

    Resolution order for a node:

    1. Every wired input port gets the output of the node feeding it (narrowed
       to the source port's items when the source port is not ``default``).
    2. Every remaining key of the node's ``data`` becomes a one-item static
       input, so executors see the same shape whether a value was wired or
       configured.
    3. Required ports declared by the executor that are still missing take
       their declared default, or fail the node.
    """

    def __init__(self, ports: PortMap, settings: EngineSettings | None = None) -> None:
        self._ports = ports
        self._settings = settings or EngineSettings()

    def resolve(
        self,
        node: WorkflowNode,
        node_outputs: Mapping[str, NodeOutput],
        definition: NodeDefinition | None = None,
    ) -> ResolvedInputs:
        """Resolve all inputs for ``node``.

        Args:
            node: Node about to execute
            node_outputs: Outputs of the nodes that already completed
            definition: Executor definition, used for required-port checks

        Returns:
            Input port name -> execution data

        Raises:
            MissingUpstreamOutput: A wired source has no output (it failed)
            MissingRequiredInput: A required declared port resolved to nothing
        """
        inputs: ResolvedInputs = {}

        for port, conn in self._ports.inputs_for(node.id).items():
            upstream = node_outputs.get(conn.source_node)
            if upstream is None:
                raise MissingUpstreamOutput(node.id, port, conn.source_node)
            inputs[port] = upstream.select(conn.source_port)

        for key, value in node.data.items():
            if key in inputs or not self._settings.is_static_key(key):
                continue
            inputs[key] = NodeOutput.from_value(value, STATIC_SOURCE)

        if definition is not None and self._settings.check_required_inputs:
            for port, port_def in definition.inputs.items():
                if not port_def.required or port in inputs:
                    continue
                if port_def.default is None:
                    raise MissingRequiredInput(node.id, port)
                inputs[port] = NodeOutput.from_value(port_def.default, STATIC_SOURCE)

        trace(
            "RESOLVER",
            f"Inputs for {node.id}: {sorted(inputs)}",
            enabled=self._settings.trace,
        )
        return inputs
