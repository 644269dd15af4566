"""Example executor plugin.

Load it with ``--executors examples/demo_executors.py:register``.
"""

from __future__ import annotations

from typing import Any

from nodeflow import ExecutorRegistry, Item, NodeDefinition, NodeOutput, PortDefinition


def register(registry: ExecutorRegistry) -> None:
    @registry.executor(
        NodeDefinition(
            type="text_input",
            display_name="Text Input",
            inputs={"text": PortDefinition(type="string", required=True)},
            outputs={"default": PortDefinition(type="string")},
        )
    )
    async def text_input(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        return NodeOutput.from_value(inputs["text"].first().as_str(), "text_input")

    @registry.executor(
        NodeDefinition(
            type="text_template",
            display_name="Text Template",
            inputs={
                "default": PortDefinition(type="string", required=True),
                "template": PortDefinition(type="string", default="{input}"),
            },
        )
    )
    async def text_template(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        template = node_data.get("template") or "{input}"
        items = [
            Item.create(template.replace("{input}", item.as_str()), "text_template")
            for item in inputs["default"].items
        ]
        return NodeOutput.from_items(items, source_operation="text_template")

    @registry.executor(
        NodeDefinition(
            type="word_count",
            display_name="Word Count",
            inputs={"default": PortDefinition(type="string", required=True)},
            outputs={"default": PortDefinition(type="object")},
        )
    )
    async def word_count(node_data: dict[str, Any], inputs: dict[str, NodeOutput]) -> NodeOutput:
        text = " ".join(item.as_str() for item in inputs["default"].items)
        return NodeOutput.from_value({"text": text, "words": len(text.split())}, "word_count")
