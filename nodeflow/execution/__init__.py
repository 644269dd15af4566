"""Workflow execution engine.

This package provides:
- Dependency graph construction and deterministic topological ordering
- Port wiring between node outputs and inputs
- Input resolution (wired outputs + static node data)
- The sequential orchestrator with per-node and whole-run state

Architecture:
- graph.py: Graph builder and topological sorter
- ports.py: Edge → port connection table
- resolver.py: Input resolution for one node
- engine.py: Main execution orchestrator
"""

from __future__ import annotations

from nodeflow.execution.engine import ExecutionContext, ExecutionEngine
from nodeflow.execution.graph import build_dependency_graph, execution_order, topological_sort
from nodeflow.execution.resolver import InputResolver

__all__ = [
    "ExecutionContext",
    "ExecutionEngine",
    "InputResolver",
    "build_dependency_graph",
    "execution_order",
    "topological_sort",
]
