# SQLAlchemy persistence for the concept store
from .database import init_db, make_engine, make_session_factory, session_scope
from .models import Base, ConceptRow, ModuleRow
from .sql_store import SqlConceptStore

__all__ = [
    "Base",
    "ConceptRow",
    "ModuleRow",
    "SqlConceptStore",
    "init_db",
    "make_engine",
    "make_session_factory",
    "session_scope",
]
