"""Error taxonomy for workflow runs.

Two families matter to the engine:

- ``StructuralError``: something is wrong with the graph itself (a cycle, a node
  type nobody registered). These abort the run.
- ``NodeFailure``: a single node could not produce output. These are recorded
  on the node and only abort the run when the node is marked critical.

Every error renders as ``<ClassName>: <detail>`` so run-level messages always
name the failure kind.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all engine errors."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.detail}"


class StructuralError(WorkflowError):
    """The workflow graph cannot be executed as declared."""


class CycleDetected(StructuralError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"cycle detected in workflow at node {node_id!r}")
        self.node_id = node_id


class UnknownNodeType(StructuralError):
    def __init__(self, node_type: str, node_id: str | None = None) -> None:
        detail = f"no executor registered for node type {node_type!r}"
        if node_id is not None:
            detail += f" (node {node_id!r})"
        super().__init__(detail)
        self.node_type = node_type
        self.node_id = node_id


class NodeFailure(WorkflowError):
    """A single node failed; the failure stays on that node unless it is critical."""

    node_id: str


class MissingUpstreamOutput(NodeFailure):
    def __init__(self, node_id: str, port: str, source_id: str) -> None:
        super().__init__(
            f"node {node_id!r} input {port!r} expects output from {source_id!r}, "
            "but that node produced none"
        )
        self.node_id = node_id
        self.port = port
        self.source_id = source_id


class MissingRequiredInput(NodeFailure):
    def __init__(self, node_id: str, port: str) -> None:
        super().__init__(f"node {node_id!r} is missing required input {port!r}")
        self.node_id = node_id
        self.port = port


class NodeExecutionError(NodeFailure):
    def __init__(
        self,
        node_id: str,
        message: str,
        *,
        node_type: str | None = None,
        critical: bool = False,
    ) -> None:
        label = f"node {node_id!r}"
        if node_type:
            label += f" ({node_type})"
        if critical:
            label = f"critical {label}"
        super().__init__(f"{label} failed: {message}")
        self.node_id = node_id
        self.message = message
        self.node_type = node_type
        self.critical = critical


class InvalidWorkflowError(WorkflowError, ValueError):
    """A workflow document could not be parsed into a valid definition."""


class ConfigurationError(WorkflowError, ValueError):
    """Engine settings could not be loaded."""


class PayloadTypeError(WorkflowError, TypeError):
    """An item payload did not have the JSON type an executor asked for."""

    def __init__(self, expected: str, actual: object) -> None:
        super().__init__(f"expected {expected} payload, got {type(actual).__name__}")
        self.expected = expected


class PluginLoadError(WorkflowError, ImportError):
    """An executor plugin entry point could not be imported or called."""


def format_error(exc: BaseException) -> str:
    """Render an exception as the message stored on a failed node."""

    message = str(exc).strip()
    return message or exc.__class__.__name__
