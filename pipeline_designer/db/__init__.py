from pipeline_designer.db.models import Base
from pipeline_designer.db.database import engine, get_db
from pipeline_designer.db.init_db import init_database


def init_db():
    """Prepare storage at startup: database, directory and tables as needed."""
    init_database()
