"""Pydantic domain models for nodeflow.

These models are the contracts shared between the editor, the host application
and the engine:

- Workflow definitions (nodes + edges), as produced by the editor
- Execution data (items and node outputs) passed between executors
- Executor definitions (declared ports)
- Per-node and whole-run execution state

Wire names follow the editor's JSON (``sourceHandle``, ``targetHandle``,
``outputType``, ...). Python code may use the snake_case field names instead.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    JsonValue,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)

from nodeflow.errors import InvalidWorkflowError, PayloadTypeError

DEFAULT_PORT = "default"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Workflow definition
# ---------------------------------------------------------------------------


class Position(BaseModel):
    """2D position in the editor canvas."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="X coordinate")
    y: float = Field(..., description="Y coordinate")


class WorkflowNode(BaseModel):
    """A unit of work: a type identifier plus opaque configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique node id")
    type: str = Field(..., min_length=1, description="Executor type identifier")
    data: dict[str, Any] = Field(default_factory=dict, description="Node configuration")
    position: Position | None = Field(default=None, description="Optional canvas position")


class WorkflowEdge(BaseModel):
    """A directed data dependency from one node's output port to another's input port.

    Accepts both the editor format (``source``/``target``/``sourceHandle``/
    ``targetHandle``) and the explicit format (``sourceNodeId``/``sourcePort``/...).
    Missing or null handles mean the ``"default"`` port.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default="", description="Edge id")
    source_node_id: str = Field(
        ...,
        validation_alias=AliasChoices("sourceNodeId", "source", "source_node_id"),
        serialization_alias="sourceNodeId",
    )
    source_port: str = Field(
        default=DEFAULT_PORT,
        validation_alias=AliasChoices("sourcePort", "sourceHandle", "source_port"),
        serialization_alias="sourcePort",
    )
    target_node_id: str = Field(
        ...,
        validation_alias=AliasChoices("targetNodeId", "target", "target_node_id"),
        serialization_alias="targetNodeId",
    )
    target_port: str = Field(
        default=DEFAULT_PORT,
        validation_alias=AliasChoices("targetPort", "targetHandle", "target_port"),
        serialization_alias="targetPort",
    )

    @field_validator("source_port", "target_port", mode="before")
    @classmethod
    def _default_port(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_PORT
        return value


class WorkflowDefinition(BaseModel):
    """A full workflow graph. Read-only input to the engine."""

    model_config = ConfigDict(frozen=True)

    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> WorkflowDefinition:
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"duplicate node id: {node.id!r}")
            seen.add(node.id)

        for edge in self.edges:
            for end in (edge.source_node_id, edge.target_node_id):
                if end not in seen:
                    label = edge.id or f"{edge.source_node_id}->{edge.target_node_id}"
                    raise ValueError(f"edge {label!r} references unknown node {end!r}")
        return self

    def get_node(self, node_id: str) -> WorkflowNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def node_ids(self) -> list[str]:
        """Node ids in declaration order."""
        return [node.id for node in self.nodes]


# ---------------------------------------------------------------------------
# Execution data
# ---------------------------------------------------------------------------


class ItemMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str | None = None
    timestamp: datetime | None = None
    output_type: str | None = Field(default=None, alias="outputType")


class BinaryAttachment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mime_type: str = Field(..., alias="mimeType")
    data: str = Field(..., description="Encoded content (usually base64)")
    filename: str | None = None


class Item(BaseModel):
    """The basic unit of data passed between nodes.

    ``payload`` is any JSON value. Executors should read it through the
    ``as_*`` accessors, which fail with ``PayloadTypeError`` instead of letting
    a wrong type leak further into the executor.
    """

    model_config = ConfigDict(frozen=True)

    payload: JsonValue = None
    metadata: ItemMetadata | None = None
    binary: BinaryAttachment | None = None

    @classmethod
    def create(
        cls,
        payload: JsonValue,
        source: str = "unknown",
        *,
        output_type: str | None = None,
        binary: BinaryAttachment | None = None,
    ) -> Item:
        return cls(
            payload=payload,
            metadata=ItemMetadata(source=source, timestamp=utcnow(), output_type=output_type),
            binary=binary,
        )

    @property
    def output_type(self) -> str | None:
        return self.metadata.output_type if self.metadata else None

    def as_str(self) -> str:
        if not isinstance(self.payload, str):
            raise PayloadTypeError("string", self.payload)
        return self.payload

    def as_int(self) -> int:
        if isinstance(self.payload, bool) or not isinstance(self.payload, int):
            raise PayloadTypeError("integer", self.payload)
        return self.payload

    def as_float(self) -> float:
        if isinstance(self.payload, bool) or not isinstance(self.payload, (int, float)):
            raise PayloadTypeError("number", self.payload)
        return float(self.payload)

    def as_bool(self) -> bool:
        if not isinstance(self.payload, bool):
            raise PayloadTypeError("boolean", self.payload)
        return self.payload

    def as_list(self) -> list[JsonValue]:
        if not isinstance(self.payload, list):
            raise PayloadTypeError("array", self.payload)
        return self.payload

    def as_dict(self) -> dict[str, JsonValue]:
        if not isinstance(self.payload, dict):
            raise PayloadTypeError("object", self.payload)
        return self.payload


class NodeOutput(BaseModel):
    """Execution data: the ordered items a node produced plus run metadata."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: list[Item] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=utcnow, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    source_operation: str | None = Field(default=None, alias="sourceOperation")

    @computed_field(alias="itemCount")  # type: ignore[prop-decorator]
    @property
    def item_count(self) -> int:
        return len(self.items)

    @classmethod
    def from_value(
        cls,
        value: JsonValue,
        source: str = "unknown",
        *,
        output_type: str | None = None,
    ) -> NodeOutput:
        """Wrap a single value as a one-item output."""
        now = utcnow()
        return cls(
            items=[Item.create(value, source, output_type=output_type)],
            start_time=now,
            end_time=now,
            source_operation=source,
        )

    @classmethod
    def from_items(
        cls,
        items: list[Item],
        *,
        source_operation: str | None = None,
        start_time: datetime | None = None,
    ) -> NodeOutput:
        return cls(
            items=list(items),
            start_time=start_time or utcnow(),
            end_time=utcnow(),
            source_operation=source_operation,
        )

    def first(self) -> Item | None:
        return self.items[0] if self.items else None

    def first_payload(self) -> JsonValue:
        item = self.first()
        return item.payload if item is not None else None

    def payloads(self) -> list[JsonValue]:
        return [item.payload for item in self.items]

    def select(self, output_type: str) -> NodeOutput:
        """Return the items emitted on ``output_type``.

        The default port, or an output where no item is tagged with
        ``output_type``, yields the whole output unchanged.
        """
        if output_type == DEFAULT_PORT:
            return self
        selected = [item for item in self.items if item.output_type == output_type]
        if not selected:
            return self
        return self.model_copy(update={"items": selected})


# ---------------------------------------------------------------------------
# Executor definitions
# ---------------------------------------------------------------------------


class PortDefinition(BaseModel):
    """A typed port declared by an executor."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(default="any", description="Declared data type")
    display_name: str | None = Field(default=None, alias="displayName")
    description: str = ""
    required: bool = False
    default: JsonValue = None


class NodeDefinition(BaseModel):
    """What an executor declares about its node type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(..., min_length=1, description="Node type identifier")
    display_name: str | None = Field(default=None, alias="displayName")
    description: str = ""
    icon: str | None = None
    category: str = "general"
    version: str = "1.0.0"
    inputs: dict[str, PortDefinition] = Field(default_factory=dict)
    outputs: dict[str, PortDefinition] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Execution state
# ---------------------------------------------------------------------------


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class NodeExecutionState(BaseModel):
    """Snapshot of one node's progress. A new snapshot is made per transition."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: NodeStatus
    start_time: datetime = Field(default_factory=utcnow, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    output: NodeOutput | None = None
    error: str | None = Field(default=None, alias="errorMessage")


class WorkflowExecutionState(BaseModel):
    """The state of a whole run. One instance per run, mutated only by the engine."""

    model_config = ConfigDict(populate_by_name=True)

    status: RunStatus = RunStatus.RUNNING
    start_time: datetime = Field(default_factory=utcnow, alias="startTime")
    end_time: datetime | None = Field(default=None, alias="endTime")
    order: list[str] = Field(default_factory=list, description="Execution order of this run")
    node_states: dict[str, NodeExecutionState] = Field(default_factory=dict, alias="nodeStates")
    node_outputs: dict[str, NodeOutput] = Field(default_factory=dict, alias="nodeOutputs")
    final_output: NodeOutput | None = Field(default=None, alias="finalOutput")
    error: str | None = None

    def completed_nodes(self) -> list[str]:
        return [
            node_id
            for node_id, state in self.node_states.items()
            if state.status is NodeStatus.COMPLETED
        ]

    def failed_nodes(self) -> list[str]:
        return [
            node_id
            for node_id, state in self.node_states.items()
            if state.status is NodeStatus.ERROR
        ]

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def parse_workflow(data: Any) -> WorkflowDefinition:
    """Parse editor JSON into a ``WorkflowDefinition``.

    Raises:
        InvalidWorkflowError: If the document is malformed or references unknown nodes
    """
    try:
        return WorkflowDefinition.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'workflow'}: {error['msg']}"
            for error in exc.errors(include_url=False)
        )
        raise InvalidWorkflowError(problems) from exc
