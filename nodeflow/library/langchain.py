"""LangChain integration: use a chat model as a node executor.

The host builds the chat model (``ChatOpenAI``, ``ChatAnthropic``, a fake model
in tests, ...) and registers the adapter under whatever node type its editor
uses:

    registry.register("llm_chat", chat_model_executor(ChatAnthropic(model="...")))

Node data:
    systemPrompt: System message (default: "You are a helpful assistant.")
    prompt: Static prompt, used when the ``prompt`` port is not wired
"""

from __future__ import annotations

import json
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

from nodeflow.domain.models import (
    DEFAULT_PORT,
    Item,
    NodeDefinition,
    NodeOutput,
    PortDefinition,
    utcnow,
)
from nodeflow.registry import FunctionExecutor, create_executor

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."

_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{system_prompt}"),
        ("human", "{input}"),
    ]
)


def _prompt_text(output: NodeOutput) -> str:
    parts = []
    for item in output.items:
        if isinstance(item.payload, str):
            parts.append(item.payload)
        elif item.payload is not None:
            parts.append(json.dumps(item.payload, ensure_ascii=False))
    return "\n".join(parts)


def chat_model_executor(model: BaseChatModel, *, type: str = "llm_chat") -> FunctionExecutor:  # noqa: A002
    """Wrap a LangChain chat model as an executor.

    Args:
        model: The chat model to invoke (asynchronously, once per node run).
        type: Node type recorded in the executor definition and item metadata.

    Returns:
        An executor emitting one text item with the model's reply.
    """
    definition = NodeDefinition(
        type=type,
        display_name="Chat Model",
        description="Send a prompt to a LangChain chat model",
        category="ai",
        inputs={
            "prompt": PortDefinition(type="string", description="User prompt", required=True),
        },
        outputs={
            DEFAULT_PORT: PortDefinition(type="string", description="Model reply"),
        },
    )
    chain = _PROMPT | model | StrOutputParser()

    async def execute(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        started = utcnow()
        prompt_input = inputs.get("prompt")
        if prompt_input is None:
            raise ValueError("missing input 'prompt': wire it or set data.prompt")
        prompt = _prompt_text(prompt_input)
        if not prompt.strip():
            raise ValueError("prompt is empty")

        reply = await chain.ainvoke(
            {
                "system_prompt": node_data.get("systemPrompt") or DEFAULT_SYSTEM_PROMPT,
                "input": prompt,
            }
        )
        return NodeOutput.from_items(
            [Item.create(reply, type, output_type="text")],
            source_operation=type,
            start_time=started,
        )

    return create_executor(definition, execute)
