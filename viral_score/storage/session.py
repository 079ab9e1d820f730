"""Database engine and session management."""

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from viral_score.storage.models import Base


def get_database_path() -> Path:
    """Get default database path."""
    db_dir = Path.home() / ".viral_score"
    db_dir.mkdir(parents=True, exist_ok=True)
    return db_dir / "artifacts.db"


def get_database_url(db_path: Optional[Path] = None) -> str:
    """Get SQLite database URL."""
    if db_path is None:
        db_path = get_database_path()
    else:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def init_db(db_url: Optional[str] = None) -> Engine:
    """Create an engine for db_url and make sure the tables exist."""
    if db_url is None:
        db_url = get_database_url()

    engine = create_engine(db_url, echo=False, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
