#!/usr/bin/env python3
"""Demo script for the workflow runner.

Run it from the repository root:

    python examples/run_demo.py
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from nodeflow import ExecutorRegistry, NodeExecutionState, RunStatus
from nodeflow.runner import WorkflowRunner, load_executors

HERE = Path(__file__).parent


def show_state(node_id: str, state: NodeExecutionState) -> None:
    print(f"  {node_id:<8} {state.status.value}")


async def demo() -> None:
    print("=" * 60)
    print("nodeflow - Demo")
    print("=" * 60)

    registry = ExecutorRegistry()
    load_executors(f"{HERE / 'demo_executors.py'}:register", registry)

    runner = WorkflowRunner(registry, on_node_state_change=show_state)
    state = await runner.run_file(HERE / "demo_workflow.json")

    print("\n" + "─" * 60)
    print(f"Order:  {' → '.join(state.order)}")
    if state.status is RunStatus.COMPLETED and state.final_output is not None:
        print(f"Output: {state.final_output.first_payload()}")
    else:
        print(f"Error:  {state.error}")
    print("─" * 60)


if __name__ == "__main__":
    asyncio.run(demo())
