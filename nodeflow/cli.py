"""nodeflow CLI - Command line interface for running workflows.

Usage:
    nodeflow run <workflow.json> --executors MODULE:FUNC [--set node.key=value]... [--json]
    nodeflow order <workflow.json>
    nodeflow validate <workflow.json> [--executors MODULE:FUNC]...
    nodeflow --version
    nodeflow --help

Examples:
    nodeflow run examples/demo_workflow.json --executors examples/demo_executors.py:register
    nodeflow run flow.json --executors my_app.nodes:register --set input.value=21
    nodeflow order examples/demo_workflow.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from nodeflow import __version__
from nodeflow.config import EngineSettings
from nodeflow.domain.models import (
    NodeExecutionState,
    NodeStatus,
    RunStatus,
    WorkflowExecutionState,
)
from nodeflow.errors import WorkflowError
from nodeflow.execution.engine import ExecutionEngine
from nodeflow.execution.graph import execution_order
from nodeflow.registry import ExecutorRegistry
from nodeflow.runner import WorkflowRunner, load_executors, load_workflow

_STATUS_MARKS = {
    NodeStatus.RUNNING: "…",
    NodeStatus.COMPLETED: "✓",
    NodeStatus.ERROR: "✗",
}


def parse_arg_value(value: str) -> Any:
    """Parse a CLI argument value to appropriate Python type.

    Args:
        value: String value from CLI

    Returns:
        Parsed value (str, int, float, bool, list, dict, or None)
    """
    # Try JSON first
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    # Try basic types
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    if value.lower() == "null" or value.lower() == "none":
        return None

    # Default to string
    return value


def _parse_overrides(pairs: list[str] | None) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Invalid override format: {pair} (use --set node.key=value)")
        key, value = pair.split("=", 1)
        overrides[key.strip()] = parse_arg_value(value.strip())
    return overrides


def _build_registry(specs: list[str] | None) -> ExecutorRegistry:
    registry = ExecutorRegistry()
    for spec in specs or []:
        load_executors(spec, registry)
    return registry


def _load_settings(args: argparse.Namespace) -> EngineSettings:
    settings = EngineSettings.from_file(args.settings) if args.settings else EngineSettings()
    if args.quiet:
        settings = settings.model_copy(update={"trace": False})
    return settings


def _print_node_state(node_id: str, state: NodeExecutionState) -> None:
    mark = _STATUS_MARKS.get(state.status, "?")
    line = f"  {mark} {node_id}: {state.status.value}"
    if state.error:
        line += f" ({state.error})"
    print(line)


def _print_summary(state: WorkflowExecutionState) -> None:
    print("─" * 70)
    if state.status is RunStatus.COMPLETED:
        print("✓ Success!")
        print()
        if state.final_output is not None:
            payloads = state.final_output.payloads()
            output = payloads[0] if len(payloads) == 1 else payloads
            if isinstance(output, (dict, list)):
                print(json.dumps(output, indent=2))
            else:
                print(f"Output: {output}")
    else:
        print("✗ Error!")
        print()
        print(state.error)

    never_ran = [node_id for node_id in state.order if node_id not in state.node_states]
    if never_ran:
        print()
        print(f"Not started: {', '.join(never_ran)}")
    print("─" * 70)


def cmd_run(args: argparse.Namespace) -> int:
    """Run a workflow from a JSON file.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for a completed run, 1 otherwise)
    """
    workflow_file = Path(args.file)

    try:
        overrides = _parse_overrides(args.set)
        settings = _load_settings(args)
        registry = _build_registry(args.executors)
    except (FileNotFoundError, ValueError, WorkflowError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not args.json:
        print(f"▶ Executing: {workflow_file}")
        if overrides:
            print(f"  Overrides: {json.dumps(overrides, indent=2)}")
        print()

    runner = WorkflowRunner(
        registry,
        settings=settings,
        on_node_state_change=None if args.json else _print_node_state,
    )

    try:
        state = asyncio.run(runner.run_file(workflow_file, overrides))
    except (FileNotFoundError, WorkflowError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(state.to_json(), indent=2))
    else:
        print()
        _print_summary(state)

    return 0 if state.status is RunStatus.COMPLETED else 1


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order of a workflow."""
    try:
        definition = load_workflow(args.file)
        order = execution_order(definition)
    except (FileNotFoundError, WorkflowError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    nodes = {node.id: node for node in definition.nodes}
    for position, node_id in enumerate(order, start=1):
        print(f"{position:>3}. {node_id} ({nodes[node_id].type})")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Check a workflow against the registered executors without running it."""
    try:
        definition = load_workflow(args.file)
        registry = _build_registry(args.executors)
    except (FileNotFoundError, WorkflowError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    engine = ExecutionEngine(registry, EngineSettings(trace=False))
    problems = engine.validate(definition)

    print(f"File: {args.file}")
    print(f"Nodes: {len(definition.nodes)}  Edges: {len(definition.edges)}")
    if not problems:
        print("✓ No problems found")
        return 0

    print(f"✗ {len(problems)} problem(s):")
    for problem in problems:
        print(f"  • {problem}")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="nodeflow - node-graph workflow engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nodeflow run examples/demo_workflow.json --executors examples/demo_executors.py:register
  nodeflow order examples/demo_workflow.json
  nodeflow validate flow.json --executors my_app.nodes:register
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"nodeflow {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a workflow JSON file")
    run_parser.add_argument("file", help="Path to the workflow JSON file")
    run_parser.add_argument(
        "--executors",
        action="append",
        help="Executor plugin as module:function or file.py:function (repeatable)",
    )
    run_parser.add_argument(
        "--set",
        action="append",
        help="Override node data as node.key=value (repeatable)",
    )
    run_parser.add_argument("--settings", help="Path to an engine settings JSON file")
    run_parser.add_argument("--json", action="store_true", help="Print the final run state as JSON")
    run_parser.add_argument("--quiet", action="store_true", help="Disable trace output on stderr")

    # Order command
    order_parser = subparsers.add_parser("order", help="Print the execution order of a workflow")
    order_parser.add_argument("file", help="Path to the workflow JSON file")

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check node types and port wiring against registered executors",
    )
    validate_parser.add_argument("file", help="Path to the workflow JSON file")
    validate_parser.add_argument(
        "--executors",
        action="append",
        help="Executor plugin as module:function or file.py:function (repeatable)",
    )

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "order":
        return cmd_order(args)
    elif args.command == "validate":
        return cmd_validate(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
