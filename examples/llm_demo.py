#!/usr/bin/env python3
"""Chat model node demo, using LangChain's fake chat model so no API key is needed.

Swap ``FakeListChatModel`` for a real chat model (``ChatOpenAI``, ...) to call
a provider.
"""

from __future__ import annotations

import asyncio

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from nodeflow import ExecutionEngine, ExecutorRegistry, parse_workflow
from nodeflow.library import chat_model_executor

WORKFLOW = {
    "nodes": [
        {
            "id": "ask",
            "type": "llm_chat",
            "data": {
                "systemPrompt": "Answer in one word.",
                "prompt": "What colour is the sky?",
            },
        },
    ],
    "edges": [],
}


async def main() -> None:
    registry = ExecutorRegistry()
    registry.register("llm_chat", chat_model_executor(FakeListChatModel(responses=["Blue"])))

    state = await ExecutionEngine(registry).run(parse_workflow(WORKFLOW))
    print(f"{state.status.value}: {state.final_output.first_payload() if state.final_output else state.error}")


if __name__ == "__main__":
    asyncio.run(main())
