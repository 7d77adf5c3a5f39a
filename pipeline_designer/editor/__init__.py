from pipeline_designer.editor.connection_draft import ConnectionDraft, ConnectionKind, DraftState
from pipeline_designer.editor.graph_model import GraphModel
from pipeline_designer.editor.project_store import ProjectStore

__all__ = ['ConnectionDraft', 'ConnectionKind', 'DraftState', 'GraphModel', 'ProjectStore']
