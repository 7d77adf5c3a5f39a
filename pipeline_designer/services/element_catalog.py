"""Element catalog: static definitions of pipeline element kinds, their defaults and property schemas."""
from __future__ import annotations

import json
import logging
import time
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class PropertyKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    SELECT = "select"
    BOOLEAN = "boolean"


class CatalogModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SelectOption(CatalogModel):
    value: str
    label: str


class PropertyDefinition(CatalogModel):
    type: PropertyKind
    label: str
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: List[SelectOption] = Field(default_factory=list)


class GeometryDefinition(CatalogModel):
    type: str
    radius: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    length: Optional[float] = None


class ElementDefinition(CatalogModel):
    name: str
    category: str
    icon: str = ""
    color: str = ""
    geometry: GeometryDefinition
    default_properties: Dict[str, Any] = Field(default_factory=dict)
    property_schema: Dict[str, PropertyDefinition] = Field(default_factory=dict)


class ProjectTypeDefinition(CatalogModel):
    name: str
    description: str = ""
    elements: List[str] = Field(default_factory=list)


class CategoryDefinition(CatalogModel):
    name: str
    order: int = 0


class CatalogDocument(CatalogModel):
    version: str
    project_types: Dict[str, ProjectTypeDefinition] = Field(default_factory=dict)
    elements: Dict[str, ElementDefinition] = Field(default_factory=dict)
    categories: Dict[str, CategoryDefinition] = Field(default_factory=dict)


def _check_value(key: str, definition: PropertyDefinition, value: Any) -> Optional[str]:
    if definition.type == PropertyKind.BOOLEAN:
        if not isinstance(value, bool):
            return f"'{key}' must be a boolean"
        return None
    if definition.type == PropertyKind.STRING:
        if not isinstance(value, str):
            return f"'{key}' must be a string"
        return None
    if definition.type == PropertyKind.SELECT:
        allowed = [option.value for option in definition.options]
        if value not in allowed:
            return f"'{key}' must be one of {', '.join(allowed)}"
        return None
    # bool is an int subclass but never a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return f"'{key}' must be a number"
    if definition.min is not None and value < definition.min:
        return f"'{key}' must be >= {definition.min:g}"
    if definition.max is not None and value > definition.max:
        return f"'{key}' must be <= {definition.max:g}"
    return None


class ElementCatalog:
    """Read-only view over a loaded catalog document."""

    def __init__(self, document: CatalogDocument) -> None:
        self._document = document

    @property
    def version(self) -> str:
        return self._document.version

    def project_types(self) -> Dict[str, ProjectTypeDefinition]:
        return dict(self._document.project_types)

    def project_type(self, project_type: str) -> Optional[ProjectTypeDefinition]:
        return self._document.project_types.get(project_type)

    def elements_for_project_type(self, project_type: str) -> List[str]:
        definition = self.project_type(project_type)
        return list(definition.elements) if definition else []

    def element_definition(self, element_type: str) -> Optional[ElementDefinition]:
        return self._document.elements.get(element_type)

    def all_elements(self) -> Dict[str, ElementDefinition]:
        return dict(self._document.elements)

    def categories(self) -> Dict[str, CategoryDefinition]:
        return dict(self._document.categories)

    def elements_by_category(self, project_type: str | None = None) -> List[Dict[str, Any]]:
        """
        Group element definitions by category, ordered by the category order.

        Args:
            project_type: When given, only elements allowed for that project type

        Returns:
            List of {"category": CategoryDefinition, "elements": [(type, ElementDefinition), ...]}
        """
        elements = self.all_elements()
        if project_type:
            allowed = set(self.elements_for_project_type(project_type))
            elements = {key: value for key, value in elements.items() if key in allowed}

        grouped: Dict[str, List[tuple[str, ElementDefinition]]] = {}
        for element_type, definition in elements.items():
            grouped.setdefault(definition.category, []).append((element_type, definition))

        categories = self._document.categories
        groups = [
            {
                "category": categories.get(category_id, CategoryDefinition(name=category_id, order=len(categories))),
                "elements": members,
            }
            for category_id, members in grouped.items()
        ]
        return sorted(groups, key=lambda group: group["category"].order)

    def default_properties(self, element_type: str) -> Dict[str, Any]:
        """Copy of the default property map for an element kind; empty for unknown kinds."""
        definition = self.element_definition(element_type)
        return dict(definition.default_properties) if definition else {}

    def generate_node_name(self, element_type: str) -> str:
        definition = self.element_definition(element_type)
        base_name = definition.name if definition else element_type
        timestamp = str(int(time.time() * 1000))[-4:]
        return f"{base_name}_{timestamp}"

    def validate_properties(self, element_type: str, properties: Dict[str, Any], partial: bool = False) -> List[str]:
        """
        Check a property map against the element's property schema.

        Keys that the schema does not describe are accepted as they are.

        Args:
            element_type: Element kind key
            properties: Property map to check
            partial: Skip required-field checks (for partial updates)

        Returns:
            Human-readable problems; empty when the map conforms
        """
        definition = self.element_definition(element_type)
        if definition is None:
            return [f"Unknown element type '{element_type}'"]

        problems = []
        for key, property_definition in definition.property_schema.items():
            if key not in properties or properties[key] is None:
                if property_definition.required and not partial:
                    problems.append(f"'{key}' is required")
                continue
            problem = _check_value(key, property_definition, properties[key])
            if problem:
                problems.append(problem)
        return problems


@lru_cache(maxsize=None)
def load_catalog(path: str) -> ElementCatalog:
    """Load and cache the catalog document at path."""
    with Path(path).open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    document = CatalogDocument.model_validate(raw)
    logger.info(f"Loaded element catalog v{document.version} with {len(document.elements)} element types")
    return ElementCatalog(document)
