"""Tests for the editor's in-memory graph model."""
from __future__ import annotations

import itertools

import pytest

from pipeline_designer.domain.errors import ValidationError
from pipeline_designer.editor.graph_model import DEFAULT_NODE_POSITION, GraphModel
from pipeline_designer.schemas.api_schemas import (
    PipelineConnection,
    PipelineNode,
    PipelineProject,
    Position,
)


@pytest.fixture
def project():
    return PipelineProject(
        id="p1",
        nodes=[
            PipelineNode(id="n1", type="source", position=Position(x=0, y=0), properties={"pressure": 5}),
            PipelineNode(id="n2", type="pipe", position=Position(x=50, y=0), properties={}),
            PipelineNode(id="n3", type="consumer", position=Position(x=100, y=0), properties={}),
        ],
        connections=[
            PipelineConnection(id="c1", source_id="n1", target_id="n2", properties={}),
            PipelineConnection(id="c2", source_id="n2", target_id="n3", properties={}),
            PipelineConnection(id="c3", source_id="n3", target_id="n1", properties={}),
        ],
    )


@pytest.fixture
def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


class TestGraphQueries:
    """Test lookups."""

    def test_find_element(self, project):
        graph = GraphModel(project)
        assert graph.find_element("n2").type == "pipe"
        assert graph.find_element("c2").source_id == "n2"
        assert graph.find_element("missing") is None

    def test_connections_for_node(self, project):
        graph = GraphModel(project)
        assert [c.id for c in graph.connections_for_node("n1")] == ["c1", "c3"]

    def test_dangling_connections(self, project):
        project.connections.append(PipelineConnection(id="c4", source_id="n1", target_id="ghost"))
        assert [c.id for c in GraphModel(project).dangling_connections()] == ["c4"]


class TestGraphMutations:
    """Test mutations and their invariants."""

    def test_delete_node_removes_touching_connections(self, project):
        graph = GraphModel(project)

        assert graph.delete_element("n2") is True

        assert [node.id for node in project.nodes] == ["n1", "n3"]
        assert [c.id for c in project.connections] == ["c3"]
        assert all("n2" not in (c.source_id, c.target_id) for c in project.connections)

    def test_delete_every_node_leaves_no_orphans(self, project):
        graph = GraphModel(project)
        for node_id in ["n1", "n2", "n3"]:
            graph.delete_element(node_id)
        assert project.nodes == []
        assert project.connections == []

    def test_delete_connection_keeps_nodes(self, project):
        graph = GraphModel(project)
        assert graph.delete_element("c1") is True
        assert len(project.nodes) == 3
        assert [c.id for c in project.connections] == ["c2", "c3"]

    def test_delete_unknown_element(self, project):
        assert GraphModel(project).delete_element("missing") is False
        assert len(project.connections) == 3

    def test_add_connection_twice_yields_one(self, sequential_ids):
        project = PipelineProject(id="p1")
        graph = GraphModel(project, id_factory=sequential_ids)

        first = graph.add_connection("n1", "n2")
        second = graph.add_connection("n1", "n2")

        assert first.id == "id-1"
        assert second is None
        assert [(c.source_id, c.target_id) for c in project.connections] == [("n1", "n2")]
        assert project.connections[0].properties == {}

    def test_add_connection_reverse_direction_is_distinct(self, project):
        graph = GraphModel(project)
        assert graph.add_connection("n2", "n1") is not None
        assert len(project.connections) == 4

    def test_add_connection_does_not_check_endpoints(self, project):
        graph = GraphModel(project)
        assert graph.add_connection("n1", "nowhere") is not None
        assert graph.add_connection("n1", "n1") is not None

    def test_update_node_properties_merges(self, project):
        graph = GraphModel(project)

        assert graph.update_node_properties("n2", {"a": 1}) is True
        assert graph.update_node_properties("n2", {"b": 2}) is True

        assert graph.find_node("n2").properties == {"a": 1, "b": 2}

    def test_update_node_properties_overwrites_same_key(self, project):
        graph = GraphModel(project)
        graph.update_node_properties("n1", {"pressure": 7})
        assert graph.find_node("n1").properties == {"pressure": 7}

    def test_update_unknown_node(self, project):
        graph = GraphModel(project)
        assert graph.update_node_properties("missing", {"a": 1}) is False
        assert graph.update_node_position("missing", {"x": 1, "y": 1}) is False

    def test_update_node_position(self, project):
        graph = GraphModel(project)
        assert graph.update_node_position("n3", {"x": 12.5, "y": -4}) is True
        assert graph.find_node("n3").position == Position(x=12.5, y=-4)

    def test_add_node_without_catalog(self, sequential_ids):
        project = PipelineProject(id="p1")
        graph = GraphModel(project, id_factory=sequential_ids)

        node = graph.add_node("valve")

        assert node.id == "id-1"
        assert node.position == DEFAULT_NODE_POSITION
        assert node.properties == {}
        assert project.nodes == [node]

    def test_add_node_default_position_is_not_shared(self):
        graph = GraphModel(PipelineProject(id="p1"))
        first = graph.add_node("valve")
        second = graph.add_node("valve")
        graph.update_node_position(first.id, {"x": 1, "y": 1})
        assert second.position == DEFAULT_NODE_POSITION


class TestGraphWithCatalog:
    """Test catalog defaults and property checks."""

    def test_add_node_merges_defaults(self, catalog):
        graph = GraphModel(PipelineProject(id="p1"), catalog)

        node = graph.add_node("valve", Position(x=5, y=5), {"diameter": 1.0})

        assert node.properties["status"] == "open"
        assert node.properties["diameter"] == 1.0
        assert node.properties["name"].startswith("Valve_")
        assert node.position == Position(x=5, y=5)

    def test_add_node_keeps_given_name(self, catalog):
        node = GraphModel(PipelineProject(id="p1"), catalog).add_node("tank", properties={"name": "T-1"})
        assert node.properties["name"] == "T-1"

    def test_add_node_unknown_type(self, catalog):
        node = GraphModel(PipelineProject(id="p1"), catalog).add_node("teleporter", properties={"x": 1})
        assert node.properties == {"x": 1}

    def test_add_node_rejects_bad_property(self, catalog):
        project = PipelineProject(id="p1")
        with pytest.raises(ValidationError):
            GraphModel(project, catalog).add_node("valve", properties={"status": "ajar"})
        assert project.nodes == []

    def test_update_rejects_schema_violation(self, project, catalog):
        graph = GraphModel(project, catalog)

        with pytest.raises(ValidationError):
            graph.update_node_properties("n1", {"pressure": "high"})

        assert graph.find_node("n1").properties == {"pressure": 5}

    def test_update_accepts_unknown_keys(self, project, catalog):
        graph = GraphModel(project, catalog)
        assert graph.update_node_properties("n1", {"vendorTag": "A7"}) is True
        assert graph.find_node("n1").properties == {"pressure": 5, "vendorTag": "A7"}
