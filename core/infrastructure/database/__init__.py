"""Database infrastructure."""

from .config import close_database, get_session_factory, init_database, ping_database
from .unit_of_work import UnitOfWork, create_uow

__all__ = [
    "UnitOfWork",
    "close_database",
    "create_uow",
    "get_session_factory",
    "init_database",
    "ping_database",
]
