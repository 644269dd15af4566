"""Host-side helpers for running workflows.

This module provides:
- Loading workflow definitions from JSON files
- Loading executor plugins (``package.module:function`` or ``path/file.py:function``)
- Applying per-node data overrides before a run
- ``WorkflowRunner``, a thin wrapper binding a registry, settings and observers

An executor plugin is a function that receives an ``ExecutorRegistry`` and
registers executors into it:

    def register(registry: ExecutorRegistry) -> None:
        registry.register("const", const_executor)
"""

from __future__ import annotations

import asyncio
import importlib
import importlib.util
import json
import sys
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType
from typing import Any

from nodeflow.config import EngineSettings
from nodeflow.domain.models import WorkflowDefinition, WorkflowExecutionState, parse_workflow
from nodeflow.errors import InvalidWorkflowError, PluginLoadError
from nodeflow.execution.engine import (
    ExecutionEngine,
    NodeStateCallback,
    WorkflowCompleteCallback,
)
from nodeflow.registry import ExecutorRegistry
from nodeflow.trace import trace


def load_workflow(path: str | Path) -> WorkflowDefinition:
    """Load a workflow definition from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        InvalidWorkflowError: If the file is not a valid workflow document
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidWorkflowError(f"{path}: not valid JSON ({exc})") from exc
    return parse_workflow(raw)


def load_executors(spec: str, registry: ExecutorRegistry) -> None:
    """Import an executor plugin and let it register into ``registry``.

    Args:
        spec: ``package.module:function`` or ``path/to/file.py:function``
        registry: Registry the plugin function receives

    Raises:
        PluginLoadError: If the module or function cannot be loaded, or the
            function raises
    """
    module_ref, sep, func_name = spec.rpartition(":")
    if not sep or not module_ref or not func_name:
        raise PluginLoadError(f"invalid executor plugin {spec!r}; expected 'module:function'")

    try:
        if module_ref.endswith(".py"):
            module = _load_module(Path(module_ref))
        else:
            module = importlib.import_module(module_ref)
    except (ImportError, OSError, SyntaxError) as exc:
        raise PluginLoadError(f"cannot import {module_ref!r}: {exc}") from exc

    register = getattr(module, func_name, None)
    if not callable(register):
        raise PluginLoadError(f"{module_ref!r} has no callable {func_name!r}")

    before = len(registry)
    try:
        register(registry)
    except Exception as exc:
        raise PluginLoadError(f"{spec!r} failed while registering executors: {exc}") from exc
    trace("RUNNER", f"Plugin {spec} registered {len(registry) - before} executor(s)")


def _load_module(file_path: Path) -> ModuleType:
    """Load a Python module from a file path.

    Raises:
        ImportError: If the module cannot be loaded
    """
    if not file_path.exists():
        raise ImportError(f"Plugin file not found: {file_path}")

    module_name = f"nodeflow_plugin_{file_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise
    return module


def apply_overrides(
    definition: WorkflowDefinition,
    overrides: Mapping[str, Any],
) -> WorkflowDefinition:
    """Return a copy of ``definition`` with node data values replaced.

    Args:
        definition: Source workflow (left untouched)
        overrides: ``"<node_id>.<key>"`` -> new value

    Raises:
        InvalidWorkflowError: If a key is malformed or names an unknown node
    """
    per_node: dict[str, dict[str, Any]] = {}
    for target, value in overrides.items():
        node_id, sep, key = target.partition(".")
        if not sep or not node_id or not key:
            raise InvalidWorkflowError(f"override {target!r} must look like 'node.key'")
        if definition.get_node(node_id) is None:
            raise InvalidWorkflowError(f"override {target!r} names unknown node {node_id!r}")
        per_node.setdefault(node_id, {})[key] = value

    nodes = [
        node.model_copy(update={"data": {**node.data, **per_node[node.id]}})
        if node.id in per_node
        else node
        for node in definition.nodes
    ]
    return definition.model_copy(update={"nodes": nodes})


class WorkflowRunner:
    """Runs workflow files or definitions against one registry.

    Example:
        ```python
        registry = ExecutorRegistry()
        load_executors("examples/demo_executors.py:register", registry)
        runner = WorkflowRunner(registry)
        state = await runner.run_file("examples/demo_workflow.json")
        print(state.status, state.final_output)
        ```
    """

    def __init__(
        self,
        registry: ExecutorRegistry | None = None,
        *,
        settings: EngineSettings | None = None,
        on_node_state_change: NodeStateCallback | None = None,
        on_workflow_complete: WorkflowCompleteCallback | None = None,
    ) -> None:
        self.registry = registry if registry is not None else ExecutorRegistry()
        self.engine = ExecutionEngine(
            self.registry,
            settings,
            on_node_state_change=on_node_state_change,
            on_workflow_complete=on_workflow_complete,
        )

    async def run_file(
        self,
        file_path: str | Path,
        overrides: Mapping[str, Any] | None = None,
    ) -> WorkflowExecutionState:
        """Load a workflow JSON file and execute it.

        Raises:
            FileNotFoundError: If the file does not exist
            InvalidWorkflowError: If the file or the overrides are invalid
        """
        trace("RUNNER", f"run_file: {file_path}", enabled=self.engine.settings.trace)
        definition = load_workflow(file_path)
        if overrides:
            definition = apply_overrides(definition, overrides)
        return await self.run_definition(definition)

    async def run_definition(self, definition: WorkflowDefinition) -> WorkflowExecutionState:
        return await self.engine.run(definition)


def run_workflow_sync(
    file_path: str | Path,
    executors: str | ExecutorRegistry,
    *,
    overrides: Mapping[str, Any] | None = None,
    settings: EngineSettings | None = None,
) -> WorkflowExecutionState:
    """Synchronous wrapper for running a workflow file.

    Args:
        file_path: Path to the workflow JSON file
        executors: A populated registry, or a plugin spec to load into a new one
        overrides: Optional ``"node.key"`` -> value data overrides
        settings: Optional engine settings

    Example:
        ```python
        state = run_workflow_sync("flow.json", "my_app.nodes:register")
        print(state.final_output if state.status == "completed" else state.error)
        ```
    """
    if isinstance(executors, ExecutorRegistry):
        registry = executors
    else:
        registry = ExecutorRegistry()
        load_executors(executors, registry)

    runner = WorkflowRunner(registry, settings=settings)
    return asyncio.run(runner.run_file(file_path, overrides))
