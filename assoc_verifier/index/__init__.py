"""Off-chain association index (SQLAlchemy)."""

from .models import AssociationRow, Base
from .session import create_index_engine, create_session_factory, init_index, session_scope
from .store import AssociationIndex, StoredAssociation

__all__ = [
    "AssociationIndex",
    "AssociationRow",
    "Base",
    "StoredAssociation",
    "create_index_engine",
    "create_session_factory",
    "init_index",
    "session_scope",
]
