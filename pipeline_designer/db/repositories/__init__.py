from pipeline_designer.db.repositories.projects import ProjectRepository

__all__ = ['ProjectRepository']
