"""Minimal relational database helper built on psycopg2."""

from .config import DatabaseConfig, build_config, config_from_env, driver_defaults
from .database import Benchmark, Database, PreparedStatement, sql_hash
from .errors import DatabaseConnectionError, DatabaseError
from .log_config import attach_query_log, setup_logging

__all__ = [
    "Benchmark",
    "Database",
    "DatabaseConfig",
    "DatabaseConnectionError",
    "DatabaseError",
    "PreparedStatement",
    "attach_query_log",
    "build_config",
    "config_from_env",
    "driver_defaults",
    "setup_logging",
    "sql_hash",
]
