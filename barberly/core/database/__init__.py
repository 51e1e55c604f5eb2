from .adapter import (
    DatabaseAdapter,
    DatabaseBackend,
    DatabaseConfig,
    IntegrityConflict,
    close_database,
    get_database,
    rows_affected,
    to_datetime,
    to_uuid,
)
from .schema import init_schema

__all__ = [
    "DatabaseAdapter",
    "DatabaseBackend",
    "DatabaseConfig",
    "IntegrityConflict",
    "close_database",
    "get_database",
    "rows_affected",
    "to_datetime",
    "to_uuid",
    "init_schema",
]
