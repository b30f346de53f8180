"""Data layer: database engine, ORM models, repository, and store implementations."""

from cafe_directory.data.database import Base, create_db_engine, create_session_factory, init_db
from cafe_directory.data.models import Cafe, CafeTag, ImportLog
from cafe_directory.data.repository import CafeRepository
from cafe_directory.data.store import CafeStore, DatabaseCafeStore, NullCafeStore, create_store

__all__ = [
    "Base", "create_db_engine", "create_session_factory", "init_db",
    "Cafe", "CafeTag", "ImportLog",
    "CafeRepository",
    "CafeStore", "DatabaseCafeStore", "NullCafeStore", "create_store",
]
