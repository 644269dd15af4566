"""Executor contract and registry.

An executor implements the runtime behaviour of one node type. It pairs a
``NodeDefinition`` (declared ports and display metadata) with an async
``execute(node_data, inputs)`` that returns a ``NodeOutput``.

Registries are plain values owned by whoever builds the engine; there is no
module-level registry, so independent engines can run side by side with
different executor sets.

Example:
    registry = ExecutorRegistry()

    @registry.executor(NodeDefinition(type="double", inputs={"default": PortDefinition(required=True)}))
    async def double(node_data, inputs):
        value = inputs["default"].first().as_float()
        return NodeOutput.from_value(value * 2, "double")

    engine = ExecutionEngine(registry)
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from nodeflow.domain.models import NodeDefinition, NodeOutput
from nodeflow.errors import UnknownNodeType

ExecuteFn = Callable[[dict[str, Any], dict[str, NodeOutput]], Awaitable[NodeOutput]]


@runtime_checkable
class Executor(Protocol):
    """Protocol every node type implementation satisfies."""

    definition: NodeDefinition

    async def execute(
        self,
        node_data: dict[str, Any],
        inputs: dict[str, NodeOutput],
    ) -> NodeOutput:
        """Run the node.

        Args:
            node_data: The node's configuration (a copy; mutations are not kept)
            inputs: Resolved input port -> execution data

        Returns:
            The node's output
        """
        ...


@dataclass(frozen=True, slots=True)
class FunctionExecutor:
    """An executor backed by a plain async function."""

    definition: NodeDefinition
    fn: ExecuteFn

    def __post_init__(self) -> None:
        if not inspect.iscoroutinefunction(self.fn):
            raise TypeError(
                f"executor for {self.definition.type!r} must be an async function, "
                f"got {self.fn!r}"
            )

    async def execute(
        self,
        node_data: dict[str, Any],
        inputs: dict[str, NodeOutput],
    ) -> NodeOutput:
        return await self.fn(node_data, inputs)


def create_executor(definition: NodeDefinition, fn: ExecuteFn) -> FunctionExecutor:
    """Build an executor from a definition and an async execute function."""
    return FunctionExecutor(definition=definition, fn=fn)


class ExecutorRegistry:
    """Table from node type identifier to executor."""

    def __init__(self) -> None:
        self._executors: dict[str, Executor] = {}

    def register(self, node_type: str, executor: Executor) -> None:
        """Register an executor for a node type.

        ``node_type`` does not have to match ``executor.definition.type``;
        registering one executor under several types gives aliases. A later
        registration for the same type replaces the earlier one.
        """
        if not isinstance(executor, Executor):
            raise TypeError(f"not an executor: {executor!r}")
        self._executors[node_type] = executor

    def executor(self, definition: NodeDefinition) -> Callable[[ExecuteFn], ExecuteFn]:
        """Decorator registering an async function under ``definition.type``.

        Example:
            @registry.executor(NodeDefinition(type="const"))
            async def const(node_data, inputs):
                return NodeOutput.from_value(node_data["value"], "const")
        """

        def decorator(fn: ExecuteFn) -> ExecuteFn:
            self.register(definition.type, create_executor(definition, fn))
            return fn

        return decorator

    def unregister(self, node_type: str) -> None:
        self._executors.pop(node_type, None)

    def lookup(self, node_type: str, node_id: str | None = None) -> Executor:
        """Find the executor for a node type.

        Raises:
            UnknownNodeType: If nothing is registered for ``node_type``
        """
        executor = self._executors.get(node_type)
        if executor is None:
            raise UnknownNodeType(node_type, node_id)
        return executor

    def has_executor(self, node_type: str) -> bool:
        return node_type in self._executors

    def types(self) -> list[str]:
        return sorted(self._executors)

    def definitions(self) -> dict[str, NodeDefinition]:
        return {node_type: self._executors[node_type].definition for node_type in self.types()}

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._executors

    def __iter__(self) -> Iterator[str]:
        return iter(self.types())

    def __len__(self) -> int:
        return len(self._executors)
