"""Execution engine: runs a workflow graph node by node."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from nodeflow.config import EngineSettings
from nodeflow.domain.models import (
    DEFAULT_PORT,
    NodeExecutionState,
    NodeOutput,
    NodeStatus,
    RunStatus,
    WorkflowDefinition,
    WorkflowExecutionState,
    WorkflowNode,
    utcnow,
)
from nodeflow.errors import (
    CycleDetected,
    NodeExecutionError,
    UnknownNodeType,
    format_error,
)
from nodeflow.execution.graph import execution_order
from nodeflow.execution.ports import PortMap
from nodeflow.execution.resolver import InputResolver
from nodeflow.registry import Executor, ExecutorRegistry
from nodeflow.trace import trace

NodeStateCallback = Callable[[str, NodeExecutionState], Awaitable[None] | None]
WorkflowCompleteCallback = Callable[[WorkflowExecutionState], Awaitable[None] | None]

CANCELLED_MESSAGE = "cancelled"


@dataclass
class ExecutionContext:
    """Everything one run needs, created fresh per run."""

    definition: WorkflowDefinition
    state: WorkflowExecutionState
    order: list[str]
    nodes: dict[str, WorkflowNode]
    ports: PortMap
    resolver: InputResolver


class ExecutionEngine:
    """Sequential workflow engine.

    This engine:
    1. Builds the dependency graph from the edges and sorts it topologically
    2. For each node in order, looks up its executor in the registry
    3. Resolves the node's inputs from upstream outputs and static data
    4. Awaits the executor and records output and per-node state
    5. Applies the failure policy and reports through the observer callbacks

    Failure policy:
        Structural failures (a cycle, an unregistered node type) end the run in
        ``error``. A node failure is recorded on that node and the run carries
        on, unless the node is critical: then the run ends in ``error`` and no
        further node in the order is started, whether or not it depends on the
        failed node. An observer callback that raises also ends the run in
        ``error``; ``on_workflow_complete`` still fires. No retries; an executor
        that never settles stalls the run.

    Example:
        engine = ExecutionEngine(registry, on_node_state_change=print)
        state = await engine.run(definition)
        if state.status is RunStatus.COMPLETED:
            print(state.final_output)
    """

    def __init__(
        self,
        registry: ExecutorRegistry,
        settings: EngineSettings | None = None,
        *,
        on_node_state_change: NodeStateCallback | None = None,
        on_workflow_complete: WorkflowCompleteCallback | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or EngineSettings()
        self._on_node_state_change = on_node_state_change
        self._on_workflow_complete = on_workflow_complete

    def execution_order(self, definition: WorkflowDefinition) -> list[str]:
        """Compute the order a run would use, without running anything.

        Raises:
            CycleDetected: If the edges form a cycle
        """
        return execution_order(definition)

    def validate(self, definition: WorkflowDefinition) -> list[str]:
        """List the problems that would stop or degrade a run.

        Reports cycles, node types without executors, and edges wired to ports
        the executor does not declare (only for executors that declare ports).
        """
        problems: list[str] = []
        try:
            self.execution_order(definition)
        except CycleDetected as exc:
            problems.append(str(exc))

        definitions = {}
        for node in definition.nodes:
            try:
                definitions[node.id] = self.registry.lookup(node.type, node.id).definition
            except UnknownNodeType as exc:
                problems.append(str(exc))

        for edge in definition.edges:
            source = definitions.get(edge.source_node_id)
            if source and source.outputs and edge.source_port != DEFAULT_PORT:
                if edge.source_port not in source.outputs:
                    problems.append(
                        f"edge {edge.id or '?'}: {source.type!r} has no output port {edge.source_port!r}"
                    )
            target = definitions.get(edge.target_node_id)
            if target and target.inputs and edge.target_port not in target.inputs:
                problems.append(
                    f"edge {edge.id or '?'}: {target.type!r} has no input port {edge.target_port!r}"
                )
        return problems

    async def run(self, definition: WorkflowDefinition) -> WorkflowExecutionState:
        """Execute a workflow.

        Args:
            definition: The workflow graph

        Returns:
            The final run state. Nodes that never started are absent from
            ``node_states``.
        """
        state = WorkflowExecutionState(status=RunStatus.RUNNING, start_time=utcnow())
        self._trace(f"Starting run with {len(definition.nodes)} nodes")

        try:
            order = self.execution_order(definition)
        except CycleDetected as exc:
            self._trace(f"ERROR resolving execution order: {exc}")
            await self._finish(state, str(exc))
            return state

        state.order = order
        self._trace(f"Execution order: {order}")

        ports = PortMap.from_definition(definition, verbose=self.settings.trace)
        ctx = ExecutionContext(
            definition=definition,
            state=state,
            order=order,
            nodes={node.id: node for node in definition.nodes},
            ports=ports,
            resolver=InputResolver(ports, self.settings),
        )

        try:
            error = await self._execute_nodes(ctx)
        except asyncio.CancelledError:
            self._trace("Run cancelled")
            await self._finish(state, CANCELLED_MESSAGE)
            raise
        except Exception as exc:  # noqa: BLE001 - a failing observer ends the run
            error = format_error(exc)
            self._trace(f"Run aborted: {error}")

        await self._finish(state, error)
        return state

    async def _execute_nodes(self, ctx: ExecutionContext) -> str | None:
        """Run every node in order.

        Returns:
            The message that ended the run early, or None if all nodes ran
        """
        for node_id in ctx.order:
            node = ctx.nodes[node_id]

            try:
                executor = self.registry.lookup(node.type, node.id)
            except UnknownNodeType as exc:
                self._trace(f"ERROR {exc}")
                return str(exc)

            failure = await self._execute_node(ctx, node, executor)
            if failure is None:
                continue

            if self.settings.is_critical(node.data):
                error = NodeExecutionError(node.id, failure, node_type=node.type, critical=True)
                self._trace(f"Stopping run: {error}")
                return str(error)

            dependents = sorted(ctx.ports.get_dependents(node.id))
            if dependents:
                self._trace(f"Node {node.id} failed; dependents {dependents} will lack its output")
        return None

    async def _execute_node(
        self,
        ctx: ExecutionContext,
        node: WorkflowNode,
        executor: Executor,
    ) -> str | None:
        """Run one node and record its state transitions.

        Returns:
            The node's error message, or None if it completed
        """
        started = utcnow()
        self._trace(f"Executing node: {node.id} ({node.type})")
        await self._set_node_state(
            ctx, node.id, NodeExecutionState(status=NodeStatus.RUNNING, start_time=started)
        )

        try:
            inputs = ctx.resolver.resolve(node, ctx.state.node_outputs, executor.definition)
            output = await executor.execute(dict(node.data), inputs)
            if not isinstance(output, NodeOutput):
                raise NodeExecutionError(
                    node.id,
                    f"executor returned {type(output).__name__}, expected NodeOutput",
                    node_type=node.type,
                )
        except asyncio.CancelledError:
            await self._set_node_state(
                ctx,
                node.id,
                NodeExecutionState(
                    status=NodeStatus.ERROR,
                    start_time=started,
                    end_time=utcnow(),
                    error=CANCELLED_MESSAGE,
                ),
            )
            raise
        except Exception as exc:  # noqa: BLE001 - executor failures are recorded on the node
            message = format_error(exc)
            self._trace(f"Node {node.id} failed: {message}")
            await self._set_node_state(
                ctx,
                node.id,
                NodeExecutionState(
                    status=NodeStatus.ERROR,
                    start_time=started,
                    end_time=utcnow(),
                    error=message,
                ),
            )
            return message

        ctx.state.node_outputs[node.id] = output
        if node.id == ctx.order[-1]:
            ctx.state.final_output = output

        self._trace(f"Node {node.id} completed with {output.item_count} item(s)")
        await self._set_node_state(
            ctx,
            node.id,
            NodeExecutionState(
                status=NodeStatus.COMPLETED,
                start_time=started,
                end_time=utcnow(),
                output=output,
            ),
        )
        return None

    async def _set_node_state(
        self,
        ctx: ExecutionContext,
        node_id: str,
        node_state: NodeExecutionState,
    ) -> None:
        ctx.state.node_states[node_id] = node_state
        if self._on_node_state_change is not None:
            await _maybe_await(self._on_node_state_change(node_id, node_state))

    async def _finish(self, state: WorkflowExecutionState, error: str | None) -> None:
        if error is None:
            state.status = RunStatus.COMPLETED
        else:
            state.status = RunStatus.ERROR
            state.error = error
        state.end_time = utcnow()
        self._trace(f"Run finished: {state.status.value}")

        if self._on_workflow_complete is not None:
            await _maybe_await(self._on_workflow_complete(state))

    def _trace(self, message: str) -> None:
        trace("ENGINE", message, enabled=self.settings.trace)


async def _maybe_await(result: Awaitable[None] | None) -> None:
    if inspect.isawaitable(result):
        await result
