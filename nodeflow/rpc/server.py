"""Minimal stdio RPC server for an editor process.

Protocol:
- JSON per line over stdin/stdout.
- Requests: {"id": number, "method": string, "params"?: object}
- Responses: {"id": number, "result"?: any, "error"?: {"message": string}}
- Notifications (no id), sent while an ``execute`` request runs:
  {"method": "node_state", "params": {"nodeId": string, "state": object}}

Executors are supplied by the host through ``--executors module:function``
plugins at startup; the server has none of its own.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from nodeflow import __version__
from nodeflow.config import EngineSettings
from nodeflow.domain.models import NodeExecutionState, parse_workflow
from nodeflow.errors import CycleDetected, InvalidWorkflowError, PluginLoadError
from nodeflow.execution.engine import ExecutionEngine
from nodeflow.registry import ExecutorRegistry
from nodeflow.runner import load_executors

Emit = Callable[[dict[str, Any]], None]


class _WorkflowParams(BaseModel):
    workflow: dict[str, Any]


def main(argv: list[str] | None = None) -> int:
    """Run the RPC loop reading stdin and writing stdout.

    Returns:
        Exit code (1 if an executor plugin cannot be loaded)
    """

    parser = argparse.ArgumentParser(prog="nodeflow-rpc")
    parser.add_argument("--executors", action="append", help="Executor plugin module:function")
    args = parser.parse_args(argv)

    registry = ExecutorRegistry()
    try:
        for spec in args.executors or []:
            load_executors(spec, registry)
    except PluginLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            continue

        response = handle_request(request, registry, _write)
        _write(response)

        if response.get("result") == "shutdown":
            return 0

    return 0


def _write(message: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(message, ensure_ascii=False) + "\n")
    sys.stdout.flush()


def handle_request(
    request: Any,
    registry: ExecutorRegistry,
    emit: Emit | None = None,
) -> dict[str, Any]:
    """Handle one RPC request.

    Args:
        request: Parsed JSON object.
        registry: Executors available to ``validate`` and ``execute``.
        emit: Sink for notifications sent before the response.

    Returns:
        RPC response dict.
    """

    if not isinstance(request, dict):
        return {"id": -1, "error": {"message": "Invalid request"}}

    request_id = request.get("id")
    method = request.get("method")

    if not isinstance(request_id, int) or not isinstance(method, str):
        return {"id": -1, "error": {"message": "Invalid request fields"}}

    if method == "hello":
        return {"id": request_id, "result": f"hello from nodeflow {__version__}"}

    if method == "ping":
        return {"id": request_id, "result": "pong"}

    if method == "shutdown":
        return {"id": request_id, "result": "shutdown"}

    if method == "list_executors":
        definitions = registry.definitions()
        return {
            "id": request_id,
            "result": {
                node_type: definition.model_dump(mode="json", by_alias=True)
                for node_type, definition in definitions.items()
            },
        }

    if method == "execution_order":
        try:
            params = _parse_params(request.get("params"), _WorkflowParams)
            definition = parse_workflow(params.workflow)
            engine = ExecutionEngine(registry, EngineSettings(trace=False))
            return {"id": request_id, "result": {"order": engine.execution_order(definition)}}
        except (ValueError, CycleDetected) as exc:
            return {"id": request_id, "error": {"message": _format_error(exc)}}

    if method == "validate":
        try:
            params = _parse_params(request.get("params"), _WorkflowParams)
            definition = parse_workflow(params.workflow)
            engine = ExecutionEngine(registry, EngineSettings(trace=False))
            return {"id": request_id, "result": {"problems": engine.validate(definition)}}
        except ValueError as exc:
            return {"id": request_id, "error": {"message": _format_error(exc)}}

    if method == "execute":
        try:
            params = _parse_params(request.get("params"), _WorkflowParams)
            definition = parse_workflow(params.workflow)
        except ValueError as exc:
            return {"id": request_id, "error": {"message": _format_error(exc)}}

        def on_node_state_change(node_id: str, state: NodeExecutionState) -> None:
            if emit is not None:
                emit(
                    {
                        "method": "node_state",
                        "params": {
                            "nodeId": node_id,
                            "state": state.model_dump(mode="json", by_alias=True),
                        },
                    }
                )

        engine = ExecutionEngine(registry, on_node_state_change=on_node_state_change)
        state = asyncio.run(engine.run(definition))
        return {"id": request_id, "result": state.to_json()}

    return {"id": request_id, "error": {"message": f"Unknown method: {method}"}}


def _parse_params(value: Any, model: type[BaseModel]) -> Any:
    if value is None:
        # Pydantic will produce a helpful error.
        value = {}
    if not isinstance(value, dict):
        raise ValueError("params must be an object")

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        # Keep errors readable for the editor.
        raise InvalidWorkflowError(str(exc.errors(include_url=False))) from exc


def _format_error(exc: Exception) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    return message


if __name__ == "__main__":
    sys.exit(main())
