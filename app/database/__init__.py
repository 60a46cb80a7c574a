from app.database.base import Base
from app.database.engine import build_engine, init_db
from app.database.session import build_session_factory, get_db

__all__ = ["Base", "build_engine", "build_session_factory", "get_db", "init_db"]
