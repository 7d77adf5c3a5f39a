"""In-memory graph of one pipeline project: mutations that keep its invariants, plus queries."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from pipeline_designer.domain.errors import ValidationError
from pipeline_designer.domain.specifications import (
    ConnectionBetween,
    ConnectionIsDangling,
    ConnectionTouchesNode,
    ElementWithId,
    NotSpecification,
    filter_by_specification,
    first_matching,
)
from pipeline_designer.schemas.api_schemas import (
    PipelineConnection,
    PipelineNode,
    PipelineProject,
    Position,
)
from pipeline_designer.services.element_catalog import ElementCatalog

logger = logging.getLogger(__name__)

DEFAULT_NODE_POSITION = Position(x=100.0, y=100.0)

PositionLike = Union[Position, Dict[str, float]]


def new_element_id() -> str:
    return str(uuid.uuid4())


def _as_position(position: PositionLike) -> Position:
    if isinstance(position, Position):
        return position.model_copy()
    return Position.model_validate(position)


class GraphModel:
    """Owns the node and connection lists of a project.

    Mutators return whether they changed anything, so the caller decides when to persist.
    Connection endpoints are not checked against existing nodes when a connection is added;
    deleting a node removes every connection that touches it.
    """

    def __init__(
        self,
        project: PipelineProject,
        catalog: ElementCatalog | None = None,
        id_factory: Callable[[], str] = new_element_id,
    ) -> None:
        self.project = project
        self._catalog = catalog
        self._new_id = id_factory

    @property
    def nodes(self) -> List[PipelineNode]:
        return self.project.nodes

    @property
    def connections(self) -> List[PipelineConnection]:
        return self.project.connections

    # Queries

    def find_node(self, node_id: str) -> Optional[PipelineNode]:
        return first_matching(self.project.nodes, ElementWithId(node_id))

    def find_connection(self, connection_id: str) -> Optional[PipelineConnection]:
        return first_matching(self.project.connections, ElementWithId(connection_id))

    def find_element(self, element_id: str) -> Optional[Union[PipelineNode, PipelineConnection]]:
        return self.find_node(element_id) or self.find_connection(element_id)

    def connections_for_node(self, node_id: str) -> List[PipelineConnection]:
        return filter_by_specification(self.project.connections, ConnectionTouchesNode(node_id))

    def dangling_connections(self) -> List[PipelineConnection]:
        node_ids = [node.id for node in self.project.nodes if node.id]
        return filter_by_specification(self.project.connections, ConnectionIsDangling(node_ids))

    # Mutations

    def add_node(
        self,
        node_type: str,
        position: PositionLike | None = None,
        properties: Dict[str, Any] | None = None,
    ) -> PipelineNode:
        """
        Append a node with a fresh id. Caller properties override the catalog defaults.

        Raises:
            ValidationError: if a supplied property contradicts the element's schema
        """
        properties = dict(properties or {})
        merged: Dict[str, Any] = {}
        if self._catalog is not None:
            self._check_properties(node_type, properties)
            merged.update(self._catalog.default_properties(node_type))
            if "name" not in properties and self._catalog.element_definition(node_type) is not None:
                merged["name"] = self._catalog.generate_node_name(node_type)
        merged.update(properties)

        node = PipelineNode(
            id=self._new_id(),
            type=node_type,
            position=_as_position(position) if position is not None else DEFAULT_NODE_POSITION.model_copy(),
            properties=merged,
        )
        self.project.nodes.append(node)
        return node

    def update_node_position(self, node_id: str, position: PositionLike) -> bool:
        node = self.find_node(node_id)
        if node is None:
            return False
        node.position = _as_position(position)
        return True

    def update_node_properties(self, node_id: str, properties: Dict[str, Any]) -> bool:
        """
        Shallow-merge properties into the node's property map.

        Raises:
            ValidationError: if a value contradicts the element's property schema
        """
        node = self.find_node(node_id)
        if node is None:
            return False
        if self._catalog is not None:
            self._check_properties(node.type, properties)
        node.properties = {**(node.properties or {}), **properties}
        return True

    def add_connection(self, source_id: str, target_id: str) -> Optional[PipelineConnection]:
        """
        Connect source to target unless that ordered pair is already connected.

        Returns:
            The new connection, or None when it already existed
        """
        if first_matching(self.project.connections, ConnectionBetween(source_id, target_id)):
            return None
        connection = PipelineConnection(
            id=self._new_id(),
            source_id=source_id,
            target_id=target_id,
            properties={},
        )
        self.project.connections.append(connection)
        return connection

    def delete_element(self, element_id: str) -> bool:
        """
        Remove the node or connection with this id; a removed node takes its connections along.

        Returns:
            True if anything was removed
        """
        keep = NotSpecification(ElementWithId(element_id))
        nodes = filter_by_specification(self.project.nodes, keep)
        connections = filter_by_specification(
            self.project.connections,
            keep.and_(NotSpecification(ConnectionTouchesNode(element_id))),
        )
        removed = (len(self.project.nodes) - len(nodes)) + (len(self.project.connections) - len(connections))
        self.project.nodes = nodes
        self.project.connections = connections
        if removed:
            logger.debug(f"Deleted element {element_id} ({removed} item(s) removed)")
        return removed > 0

    def _check_properties(self, node_type: str, properties: Dict[str, Any]) -> None:
        if self._catalog.element_definition(node_type) is None:
            return
        problems = self._catalog.validate_properties(node_type, properties, partial=True)
        if problems:
            raise ValidationError(f"Invalid properties for {node_type}: {'; '.join(problems)}")
