"""Tests for port wiring and input resolution.

These tests verify:
- Wired inputs take the upstream output (narrowed by source port)
- Static node data becomes single-item inputs
- Missing upstream outputs and required inputs fail the node
"""

from __future__ import annotations

import pytest

from conftest import workflow
from nodeflow.config import EngineSettings
from nodeflow.domain.models import Item, NodeDefinition, NodeOutput, PortDefinition
from nodeflow.errors import MissingRequiredInput, MissingUpstreamOutput, NodeFailure
from nodeflow.execution.ports import PortMap
from nodeflow.execution.resolver import STATIC_SOURCE, InputResolver


def _resolver(definition, **settings) -> InputResolver:
    quiet = EngineSettings(trace=False, **settings)
    return InputResolver(PortMap.from_definition(definition, verbose=False), quiet)


class TestPortMap:
    def test_connections_by_target(self):
        definition = workflow(
            [("a", "x"), ("b", "x"), ("c", "x")],
            [
                {"id": "e1", "source": "a", "target": "c", "targetHandle": "left"},
                {"id": "e2", "source": "b", "sourceHandle": "out", "target": "c", "targetHandle": "right"},
            ],
        )
        ports = PortMap.from_definition(definition, verbose=False)

        inputs = ports.inputs_for("c")
        assert set(inputs) == {"left", "right"}
        assert inputs["right"].source_node == "b"
        assert inputs["right"].source_port == "out"
        assert inputs["right"].edge_id == "e2"
        assert ports.inputs_for("a") == {}

    def test_last_connection_wins(self):
        ports = PortMap(verbose=False)
        ports.add_connection("a", "default", "c", "default")
        ports.add_connection("b", "default", "c", "default")

        assert ports.inputs_for("c")["default"].source_node == "b"
        assert len(ports.connections) == 2

    def test_dependents(self):
        ports = PortMap(verbose=False)
        ports.add_connection("a", "default", "b", "default")
        ports.add_connection("a", "default", "c", "x")

        assert ports.get_dependents("a") == {"b", "c"}
        assert ports.get_dependents("c") == set()

    def test_repr(self):
        ports = PortMap(verbose=False)
        conn = ports.add_connection("a", "out", "b", "in")
        assert repr(conn) == "a.out → b.in"

    def test_trace_output(self, capsys):
        ports = PortMap()
        ports.add_connection("a", "default", "c", "default")
        ports.add_connection("b", "default", "c", "default")

        err = capsys.readouterr().err
        assert "[PORTS] Connection: a.default → c.default" in err
        assert "replaces a.default → c.default" in err


class TestInputResolver:
    def test_wired_input(self):
        definition = workflow([("a", "x"), ("b", "x")], [("a", "b")])
        upstream = NodeOutput.from_value(5, "a")

        inputs = _resolver(definition).resolve(definition.get_node("b"), {"a": upstream})

        assert inputs == {"default": upstream}

    def test_source_port_narrows_items(self):
        definition = workflow(
            [("a", "x"), ("b", "x")],
            [{"source": "a", "sourceHandle": "true", "target": "b"}],
        )
        upstream = NodeOutput.from_items(
            [Item.create(1, output_type="true"), Item.create(2, output_type="false")]
        )

        inputs = _resolver(definition).resolve(definition.get_node("b"), {"a": upstream})

        assert inputs["default"].payloads() == [1]

    def test_static_data_synthesized(self):
        definition = workflow([("a", "x", {"value": 5, "label": "Five", "_ui": {}})])

        inputs = _resolver(definition).resolve(definition.get_node("a"), {})

        assert set(inputs) == {"value"}
        item = inputs["value"].first()
        assert inputs["value"].item_count == 1
        assert item.payload == 5
        assert item.metadata.source == STATIC_SOURCE

    def test_null_data_value_is_a_static_item(self):
        definition = workflow([("a", "x", {"x": None, "y": 1})])

        inputs = _resolver(definition).resolve(definition.get_node("a"), {})

        assert set(inputs) == {"x", "y"}
        assert inputs["x"].item_count == 1
        assert inputs["x"].first_payload() is None
        assert inputs["x"].first().metadata.source == STATIC_SOURCE

    def test_null_data_value_satisfies_required_port(self):
        definition = workflow([("a", "x", {"text": None})])
        node_def = NodeDefinition(type="x", inputs={"text": PortDefinition(required=True)})

        inputs = _resolver(definition).resolve(definition.get_node("a"), {}, node_def)

        assert inputs["text"].first_payload() is None

    def test_wire_beats_static_data(self):
        definition = workflow([("a", "x"), ("b", "x", {"default": "static"})], [("a", "b")])

        inputs = _resolver(definition).resolve(
            definition.get_node("b"), {"a": NodeOutput.from_value("wired")}
        )

        assert inputs["default"].first_payload() == "wired"

    def test_reserved_keys_from_settings(self):
        definition = workflow([("a", "x", {"label": "shown", "note": "hidden"})])

        inputs = _resolver(definition, reserved_data_keys=frozenset({"note"})).resolve(
            definition.get_node("a"), {}
        )

        assert set(inputs) == {"label"}

    def test_missing_upstream_output(self):
        definition = workflow([("a", "x"), ("b", "x")], [("a", "b")])

        with pytest.raises(MissingUpstreamOutput) as exc_info:
            _resolver(definition).resolve(definition.get_node("b"), {})

        error = exc_info.value
        assert isinstance(error, NodeFailure)
        assert (error.node_id, error.port, error.source_id) == ("b", "default", "a")

    def test_required_input_missing(self):
        definition = workflow([("a", "x")])
        node_def = NodeDefinition(type="x", inputs={"text": PortDefinition(required=True)})

        with pytest.raises(MissingRequiredInput, match="'text'"):
            _resolver(definition).resolve(definition.get_node("a"), {}, node_def)

    def test_required_input_default(self):
        definition = workflow([("a", "x")])
        node_def = NodeDefinition(type="x", inputs={"n": PortDefinition(required=True, default=3)})

        inputs = _resolver(definition).resolve(definition.get_node("a"), {}, node_def)

        assert inputs["n"].first_payload() == 3

    def test_required_check_can_be_disabled(self):
        definition = workflow([("a", "x")])
        node_def = NodeDefinition(type="x", inputs={"text": PortDefinition(required=True)})

        inputs = _resolver(definition, check_required_inputs=False).resolve(
            definition.get_node("a"), {}, node_def
        )

        assert inputs == {}

    def test_optional_ports_left_out(self):
        definition = workflow([("a", "x")])
        node_def = NodeDefinition(type="x", inputs={"extra": PortDefinition(default="d")})

        assert _resolver(definition).resolve(definition.get_node("a"), {}, node_def) == {}
