"""nodeflow core package.

A node-graph workflow engine: executors registered per node type, a
deterministic topological run order, and per-node and whole-run execution
state reported through observer callbacks.

This package has no dependency on any editor or UI runtime. The LangChain
adapter in ``nodeflow.library`` is only imported on demand.
"""

from __future__ import annotations

from nodeflow.config import EngineSettings
from nodeflow.domain.models import (
    Item,
    NodeDefinition,
    NodeExecutionState,
    NodeOutput,
    NodeStatus,
    PortDefinition,
    RunStatus,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowExecutionState,
    WorkflowNode,
    parse_workflow,
)
from nodeflow.execution.engine import ExecutionEngine
from nodeflow.registry import Executor, ExecutorRegistry, FunctionExecutor, create_executor

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "ExecutionEngine",
    "Executor",
    "ExecutorRegistry",
    "FunctionExecutor",
    "Item",
    "NodeDefinition",
    "NodeExecutionState",
    "NodeOutput",
    "NodeStatus",
    "PortDefinition",
    "RunStatus",
    "WorkflowDefinition",
    "WorkflowEdge",
    "WorkflowExecutionState",
    "WorkflowNode",
    "__version__",
    "create_executor",
    "parse_workflow",
]
