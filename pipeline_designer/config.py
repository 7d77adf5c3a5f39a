from pydantic_settings import BaseSettings
from pathlib import Path
from urllib.parse import urlparse

# Get the repository root directory (parent of the package directory)
REPO_ROOT = Path(__file__).parent.parent.absolute()
PACKAGE_ROOT = Path(__file__).parent.absolute()

class Settings(BaseSettings):
    """Application settings."""
    
    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 5000
    API_RELOAD: bool = True
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    
    # Version and environment
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    
    # Database settings
    DATABASE_URL: str = f"sqlite:///{REPO_ROOT / 'storage' / 'pipeline.db'}"
    
    # Element catalog
    ELEMENT_CATALOG_PATH: str = str(PACKAGE_ROOT / "resources" / "pipeline-elements.json")
    
    # Project listing
    PROJECT_LIST_LIMIT: int = 50
    
    # Simulation settings
    SIMULATION_STEPS: int = 10
    SIMULATION_STEP_DELAY: float = 0.2
    SIMULATION_REST_DELAY: float = 1.0
    
    # Client settings (used by the editor core)
    API_BASE_URL: str = "http://localhost:5000/api"
    HUB_URL: str = "ws://localhost:5000/simulationHub"
    CLIENT_TIMEOUT: float = 10.0
    
    class Config:
        env_file = ".env"

settings = Settings()


def get_db_components() -> dict:
    """
    Split the configured database URL into the pieces needed to create the database.
    
    Returns:
        Dict with db_url, db_name, db_url_without_name and dialect
    """
    db_url = str(settings.DATABASE_URL)
    parsed = urlparse(db_url)
    dialect = parsed.scheme.split("+")[0]
    
    if dialect == "sqlite":
        return {
            "db_url": db_url,
            "db_name": parsed.path.lstrip("/"),
            "db_url_without_name": None,
            "dialect": dialect,
        }
    
    db_name = parsed.path.lstrip("/")
    if not db_name.replace("_", "").replace("-", "").isalnum():
        raise ValueError(f"Invalid database name in DATABASE_URL: {db_name!r}")
    
    # Connect to the maintenance database to create ours
    db_url_without_name = parsed._replace(path="/postgres").geturl()
    return {
        "db_url": db_url,
        "db_name": db_name,
        "db_url_without_name": db_url_without_name,
        "dialect": dialect,
    }
