"""
Database Models using SQLAlchemy.

These define the database schema for pipeline projects and their nodes and connections.
They are NOT the wire format (see pipeline_designer.schemas.api_schemas); the project
service converts between the two.
"""
from sqlalchemy import Column, ForeignKey, Integer, String, DateTime, JSON
from sqlalchemy.orm import declarative_base, relationship
import datetime
import uuid

Base = declarative_base()

def generate_uuid():
    return str(uuid.uuid4())

def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="gas")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    revision = Column(Integer, nullable=False, default=1)
    
    # Relationships
    nodes = relationship(
        "Node",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Node.ordinal",
        passive_deletes=True,
    )
    connections = relationship(
        "Connection",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Connection.ordinal",
        passive_deletes=True,
    )

class Node(Base):
    __tablename__ = "pipeline_nodes"

    # Node ids are only unique within their project
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    id = Column(String, primary_key=True, default=generate_uuid)
    ordinal = Column(Integer, nullable=False, default=0)
    type = Column(String, nullable=False)
    position = Column(JSON, nullable=False)
    properties = Column(JSON, nullable=False, default=dict)
    
    # Relationships
    project = relationship("Project", back_populates="nodes")

class Connection(Base):
    __tablename__ = "pipeline_connections"

    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True)
    id = Column(String, primary_key=True, default=generate_uuid)
    ordinal = Column(Integer, nullable=False, default=0)
    # Endpoints are not foreign keys: a connection may name a node that does not exist yet
    source_id = Column(String, nullable=False)
    target_id = Column(String, nullable=False)
    properties = Column(JSON, nullable=False, default=dict)
    
    # Relationships
    project = relationship("Project", back_populates="connections")
