"""Shared executors and workflow builders for the test suite."""

from __future__ import annotations

from typing import Any

import pytest

from nodeflow import (
    EngineSettings,
    ExecutorRegistry,
    NodeDefinition,
    NodeOutput,
    PortDefinition,
    WorkflowDefinition,
    parse_workflow,
)


def workflow(nodes: list[tuple[str, str] | tuple[str, str, dict[str, Any]]], edges: list[Any] = ()) -> WorkflowDefinition:
    """Build a definition from ``(id, type[, data])`` tuples and edges.

    Edges are ``(source, target)`` tuples or full edge dicts.
    """
    node_docs = []
    for entry in nodes:
        node_id, node_type, *rest = entry
        node_docs.append({"id": node_id, "type": node_type, "data": rest[0] if rest else {}})

    edge_docs = []
    for index, edge in enumerate(edges, start=1):
        if isinstance(edge, tuple):
            edge = {"id": f"e{index}", "source": edge[0], "target": edge[1]}
        edge_docs.append(edge)

    return parse_workflow({"nodes": node_docs, "edges": edge_docs})


def build_registry() -> ExecutorRegistry:
    registry = ExecutorRegistry()

    @registry.executor(NodeDefinition(type="const", outputs={"default": PortDefinition()}))
    async def const(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        return NodeOutput.from_value(node_data.get("value"), "const")

    @registry.executor(
        NodeDefinition(type="double", inputs={"default": PortDefinition(type="number", required=True)})
    )
    async def double(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        return NodeOutput.from_value(inputs["default"].first().as_int() * 2, "double")

    @registry.executor(NodeDefinition(type="failing"))
    async def failing(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        raise RuntimeError(node_data.get("message", "boom"))

    @registry.executor(NodeDefinition(type="echo"))
    async def echo(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        return NodeOutput.from_value({port: inputs[port].payloads() for port in sorted(inputs)}, "echo")

    return registry


@pytest.fixture
def registry() -> ExecutorRegistry:
    return build_registry()


@pytest.fixture
def quiet() -> EngineSettings:
    return EngineSettings(trace=False)
