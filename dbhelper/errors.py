"""Exceptions raised by the database helper."""

from typing import Optional


class DatabaseError(Exception):
    """Base class for database helper errors."""


class DatabaseConnectionError(DatabaseError, ConnectionError):
    """Raised when the driver fails to open a connection.

    Carries the driver's message and error code (psycopg2's ``pgcode``,
    which is usually None for connection-level failures).
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
