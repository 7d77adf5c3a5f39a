"""Service for project validation logic."""
from __future__ import annotations

from pipeline_designer.domain.specifications import (
    ConnectionIsDangling,
    ConnectionIsSelfLoop,
    filter_by_specification,
)
from pipeline_designer.schemas.api_schemas import PipelineProject, ValidationResult
from pipeline_designer.services.element_catalog import ElementCatalog


class ProjectValidationService:
    """Checks a project snapshot against the element catalog.

    Findings are reported as warnings only: a project is always considered valid
    because the simulator accepts any graph.
    """

    def __init__(self, catalog: ElementCatalog) -> None:
        self._catalog = catalog

    def validate(self, project: PipelineProject) -> ValidationResult:
        warnings = []

        allowed = set(self._catalog.elements_for_project_type(project.type.value))
        for node in project.nodes:
            label = f"Node {node.id or '<new>'} ({node.type})"
            if self._catalog.element_definition(node.type) is None:
                warnings.append(f"{label}: unknown element type")
                continue
            if allowed and node.type not in allowed:
                warnings.append(f"{label}: not available in {project.type.value} projects")
            for problem in self._catalog.validate_properties(node.type, node.properties or {}):
                warnings.append(f"{label}: {problem}")

        node_ids = [node.id for node in project.nodes if node.id]
        for connection in filter_by_specification(project.connections, ConnectionIsDangling(node_ids)):
            warnings.append(
                f"Connection {connection.id or '<new>'} references a missing node "
                f"({connection.source_id} -> {connection.target_id})"
            )
        for connection in filter_by_specification(project.connections, ConnectionIsSelfLoop()):
            warnings.append(f"Connection {connection.id or '<new>'} connects node {connection.source_id} to itself")

        return ValidationResult(is_valid=True, errors=[], warnings=warnings)
