"""Persistence layer: models, session management and repository functions."""

from .models import (
    Base,
    Profile,
    Project,
    GlobalCircleMember,
    ProjectCircleMember,
    CompetitorEdge,
)
from .session import (
    DatabaseConfigError,
    get_database_url,
    create_db_engine,
    get_engine,
    get_session_factory,
    create_session_factory,
    get_db,
    get_db_context,
    init_db,
    check_db_connection,
)

__all__ = [
    "Base",
    "Profile",
    "Project",
    "GlobalCircleMember",
    "ProjectCircleMember",
    "CompetitorEdge",
    "DatabaseConfigError",
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "create_session_factory",
    "get_db",
    "get_db_context",
    "init_db",
    "check_db_connection",
]
