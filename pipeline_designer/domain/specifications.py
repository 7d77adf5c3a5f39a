"""Specification pattern for reusable query logic over graph elements."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, TypeVar

T = TypeVar("T")


class Specification(ABC):
    """Abstract base for specifications (query filters)."""
    
    @abstractmethod
    def is_satisfied_by(self, candidate: Any) -> bool:
        """Check if candidate satisfies this specification."""
        pass
    
    def and_(self, other: Specification) -> Specification:
        """Combine with AND logic."""
        return AndSpecification(self, other)
    
    def or_(self, other: Specification) -> Specification:
        """Combine with OR logic."""
        return OrSpecification(self, other)
    
    def not_(self) -> Specification:
        """Negate this specification."""
        return NotSpecification(self)


class AndSpecification(Specification):
    """AND composite specification."""
    
    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right
    
    def is_satisfied_by(self, candidate: Any) -> bool:
        return self.left.is_satisfied_by(candidate) and self.right.is_satisfied_by(candidate)


class OrSpecification(Specification):
    """OR composite specification."""
    
    def __init__(self, left: Specification, right: Specification):
        self.left = left
        self.right = right
    
    def is_satisfied_by(self, candidate: Any) -> bool:
        return self.left.is_satisfied_by(candidate) or self.right.is_satisfied_by(candidate)


class NotSpecification(Specification):
    """NOT specification."""
    
    def __init__(self, spec: Specification):
        self.spec = spec
    
    def is_satisfied_by(self, candidate: Any) -> bool:
        return not self.spec.is_satisfied_by(candidate)


# Element Specifications

class ElementWithId(Specification):
    """Nodes or connections with a given id."""
    
    def __init__(self, element_id: str):
        self.element_id = element_id
    
    def is_satisfied_by(self, element: Any) -> bool:
        return element.id == self.element_id


class NodeOfType(Specification):
    """Nodes of a given element kind."""
    
    def __init__(self, node_type: str):
        self.node_type = node_type
    
    def is_satisfied_by(self, node: Any) -> bool:
        return node.type == self.node_type


# Connection Specifications

class ConnectionBetween(Specification):
    """Connections for one ordered (source, target) pair."""
    
    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
    
    def is_satisfied_by(self, connection: Any) -> bool:
        return connection.source_id == self.source_id and connection.target_id == self.target_id


class ConnectionTouchesNode(Specification):
    """Connections that start or end at a node."""
    
    def __init__(self, node_id: str):
        self.node_id = node_id
    
    def is_satisfied_by(self, connection: Any) -> bool:
        return connection.source_id == self.node_id or connection.target_id == self.node_id


class ConnectionIsDangling(Specification):
    """Connections referencing at least one node id that is not in the project."""
    
    def __init__(self, node_ids: Iterable[str]):
        """
        Args:
            node_ids: Ids of the nodes that currently exist in the project
        """
        self.node_ids = set(node_ids)
    
    def is_satisfied_by(self, connection: Any) -> bool:
        return connection.source_id not in self.node_ids or connection.target_id not in self.node_ids


class ConnectionIsSelfLoop(Specification):
    """Connections whose source and target are the same node."""
    
    def is_satisfied_by(self, connection: Any) -> bool:
        return connection.source_id == connection.target_id


# Helper functions to filter collections

def filter_by_specification(items: Iterable[T], spec: Specification) -> List[T]:
    """Filter a collection using a specification."""
    return [item for item in items if spec.is_satisfied_by(item)]


def first_matching(items: Iterable[T], spec: Specification) -> T | None:
    """Return the first item satisfying the specification, or None."""
    for item in items:
        if spec.is_satisfied_by(item):
            return item
    return None
