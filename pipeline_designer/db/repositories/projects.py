from sqlalchemy import delete, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError
from pipeline_designer.db.models import Project, Node, Connection
from typing import Any, Dict, List, Optional
import datetime


class ProjectRepository:
    """Repository for pipeline project operations."""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_project(self, project_id: str) -> Optional[Project]:
        """
        Get a project with its nodes and connections by ID.
        
        Args:
            project_id: Project ID
            
        Returns:
            Project if found, None otherwise
        """
        return (
            self.db.query(Project)
            .options(selectinload(Project.nodes), selectinload(Project.connections))
            .filter(Project.id == project_id)
            .first()
        )
    
    def get_recent_projects(self, limit: int) -> List[Project]:
        """
        Get the most recently updated projects, newest first.
        
        Args:
            limit: Maximum number of projects to return
            
        Returns:
            List of projects without their children loaded
        """
        return (
            self.db.query(Project)
            .order_by(Project.updated_at.desc())
            .limit(limit)
            .all()
        )
    
    def count_projects(self) -> int:
        return self.db.query(Project).count()
    
    def create_project(
        self,
        project_id: str,
        name: str,
        project_type: str,
        nodes: List[Dict[str, Any]],
        connections: List[Dict[str, Any]],
        timestamp: datetime.datetime,
    ) -> Project:
        """
        Insert a project together with its children.
        
        Args:
            project_id: Project ID
            name: Project name
            project_type: "gas" or "oil"
            nodes: Normalized node rows (id, type, position, properties)
            connections: Normalized connection rows (id, source_id, target_id, properties)
            timestamp: Value for both created_at and updated_at
            
        Returns:
            Created project
        """
        project = Project(
            id=project_id,
            name=name,
            type=project_type,
            created_at=timestamp,
            updated_at=timestamp,
            revision=1,
        )
        project.nodes = self._node_rows(project_id, nodes)
        project.connections = self._connection_rows(project_id, connections)
        try:
            self.db.add(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.get_project(project_id)
    
    def replace_project(
        self,
        project_id: str,
        name: str,
        project_type: str,
        nodes: List[Dict[str, Any]],
        connections: List[Dict[str, Any]],
        timestamp: datetime.datetime,
        expected_revision: Optional[int] = None,
    ) -> Project:
        """
        Replace a project's fields and all of its children in one transaction.
        
        The project row is updated with a single conditional UPDATE that bumps the
        revision in the database, so two overlapping writers cannot both pass the
        revision check. Children are deleted by project_id at the table level, which
        also removes rows this session never loaded, and the given ones inserted.
        On any failure the transaction is rolled back and the previous state stays intact.
        
        Args:
            project_id: Project ID
            expected_revision: Revision the caller based its edit on; None writes unconditionally
            
        Returns:
            The refreshed project
            
        Raises:
            StaleDataError: if the project is missing or no longer at expected_revision
        """
        # Loaded children would collide with re-inserted rows that reuse their keys
        self.db.expunge_all()
        statement = (
            update(Project)
            .where(Project.id == project_id)
            .values(
                name=name,
                type=project_type,
                updated_at=timestamp,
                revision=Project.revision + 1,
            )
        )
        if expected_revision is not None:
            statement = statement.where(Project.revision == expected_revision)
        try:
            result = self.db.execute(statement, execution_options={"synchronize_session": False})
            if result.rowcount != 1:
                raise StaleDataError(
                    f"Project {project_id} is not at revision {expected_revision}"
                )
            self.db.execute(
                delete(Node).where(Node.project_id == project_id),
                execution_options={"synchronize_session": False},
            )
            self.db.execute(
                delete(Connection).where(Connection.project_id == project_id),
                execution_options={"synchronize_session": False},
            )
            self.db.add_all(self._node_rows(project_id, nodes))
            self.db.add_all(self._connection_rows(project_id, connections))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.get_project(project_id)
    
    def delete_project(self, project_id: str) -> bool:
        """
        Delete a project by ID, cascading to its nodes and connections.
        
        Args:
            project_id: Project ID
            
        Returns:
            True if project was deleted, False otherwise
        """
        project = self.get_project(project_id)
        if not project:
            return False
        
        try:
            self.db.delete(project)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True
    
    @staticmethod
    def _node_rows(project_id: str, nodes: List[Dict[str, Any]]) -> List[Node]:
        return [
            Node(project_id=project_id, ordinal=index, **node)
            for index, node in enumerate(nodes)
        ]
    
    @staticmethod
    def _connection_rows(project_id: str, connections: List[Dict[str, Any]]) -> List[Connection]:
        return [
            Connection(project_id=project_id, ordinal=index, **connection)
            for index, connection in enumerate(connections)
        ]
