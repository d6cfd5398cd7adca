"""Persistence module for the instance registry database."""

from gateway.persistence.database import (
    close_pool,
    get_database_url,
    get_db_connection,
    get_pool_stats,
    init_pool,
)

__all__ = [
    "close_pool",
    "get_database_url",
    "get_db_connection",
    "get_pool_stats",
    "init_pool",
]
