"""
API Request/Response Schemas using Pydantic.

Structure of HTTP requests and responses for the Pipeline Designer API. The same
models are used by the editor core on the client side, so field names are
snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional, Any
from datetime import datetime
from enum import Enum


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectType(str, Enum):
    GAS = "gas"
    OIL = "oil"

# Graph element schemas
class Position(WireModel):
    x: float = Field(0.0, description="Horizontal canvas coordinate")
    y: float = Field(0.0, description="Vertical canvas coordinate")

class PipelineNode(WireModel):
    id: Optional[str] = Field(None, description="Node identifier, assigned by the server when missing")
    type: str = Field(..., description="Element kind key from the element catalog")
    position: Optional[Position] = Field(None, description="Canvas position, defaults to (100, 100) on save")
    properties: Optional[Dict[str, Any]] = Field(None, description="Open key/value property map")

class PipelineConnection(WireModel):
    id: Optional[str] = Field(None, description="Connection identifier, assigned by the server when missing")
    source_id: str = Field(..., description="ID of the source node")
    target_id: str = Field(..., description="ID of the target node")
    properties: Optional[Dict[str, Any]] = Field(None, description="Open key/value property map")

# Project schemas
class PipelineProject(WireModel):
    id: Optional[str] = Field(None, description="Project identifier, assigned by the server when missing")
    name: str = Field("New Project", description="Name of the project", max_length=255)
    type: ProjectType = Field(ProjectType.GAS, description="Transported medium")
    nodes: List[PipelineNode] = Field(default_factory=list, description="Placed pipeline elements")
    connections: List[PipelineConnection] = Field(default_factory=list, description="Directed edges between nodes")
    created_at: Optional[datetime] = Field(None, description="Server-stamped creation time")
    updated_at: Optional[datetime] = Field(None, description="Server-stamped time of the last save")
    revision: Optional[int] = Field(None, description="Optimistic version token; stale writes are rejected")

class ProjectSummary(WireModel):
    id: str = Field(..., description="Unique identifier for the project")
    name: str = Field(..., description="Name of the project")
    type: ProjectType = Field(..., description="Transported medium")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Timestamp of the last save")

class ProjectDeleteResponse(WireModel):
    message: str = Field("Project deleted successfully", description="Outcome of the deletion")

# Validation schemas
class ValidationResult(WireModel):
    is_valid: bool = Field(True, description="Whether the project can be simulated")
    errors: List[str] = Field(default_factory=list, description="Blocking problems")
    warnings: List[str] = Field(default_factory=list, description="Non-blocking problems")

# Simulation schemas
class SimulationRequest(WireModel):
    project_id: str = Field(..., description="ID of the project to simulate")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Simulation parameters")

class SimulationResult(WireModel):
    project_id: str = Field(..., description="ID of the simulated project")
    task_id: str = Field("", description="ID of the simulation task")
    user_id: str = Field("", description="ID of the requesting user")
    node_results: Dict[str, Any] = Field(default_factory=dict, description="Per-node results")
    connection_results: Dict[str, Any] = Field(default_factory=dict, description="Per-connection results")
    is_successful: bool = Field(True, description="Whether the simulation succeeded")
    error_message: str = Field("", description="Failure description when unsuccessful")
    simulation_time: Optional[datetime] = Field(None, description="When the result was produced")
