from smartbilling.database.base import Base
from smartbilling.database.engine import build_engine, engine
from smartbilling.database.migrations import apply_migrations
from smartbilling.database.session import SessionLocal, get_db, session_scope

__all__ = [
    "Base",
    "SessionLocal",
    "apply_migrations",
    "build_engine",
    "engine",
    "get_db",
    "session_scope",
]
