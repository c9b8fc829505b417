"""Database helper: lazy connection, table prefixing, statements and timing."""

import hashlib
import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Optional, Union

import psycopg2
from psycopg2.extensions import encodings
from psycopg2.extras import RealDictCursor

from .config import DatabaseConfig, build_config, config_from_env
from .errors import DatabaseConnectionError
from .log_config import QUERY_LOGGER, attach_query_log

logger = logging.getLogger(__name__)
query_logger = logging.getLogger(QUERY_LOGGER)

_HAS_PLACEHOLDER = re.compile(r"\{(.*)\}")
_PLACEHOLDER = re.compile(r"\{([a-zA-Z]*)\}")


@dataclass(frozen=True)
class PreparedStatement:
    """A statement waiting to be executed."""

    sql: str
    params: tuple
    text: str


@dataclass(frozen=True)
class Benchmark:
    """Timing of the last execution of one SQL text."""

    sql: str
    start: float
    end: Optional[float] = None
    diff: Optional[float] = None


def sql_hash(sql: str) -> str:
    """Benchmark key for a SQL text."""
    return hashlib.md5(sql.encode("utf-8")).hexdigest()


class Database:
    """
    Thin helper around a single psycopg2 connection.

    Not safe for concurrent use: the pending statement and the benchmark
    table are plain instance state. Use one instance per caller.
    """

    def __init__(
        self,
        config: Union[DatabaseConfig, Mapping, None] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        if isinstance(config, DatabaseConfig):
            self.config = config
        else:
            self.config = build_config(config, environ=environ)

        self._link = None
        self._connected = False
        self._number_of_queries = 0
        self._benchmarks: dict[str, Benchmark] = {}
        self._statement: Optional[PreparedStatement] = None

        if self.config.query_log:
            attach_query_log(self.config.query_log, self.config.query_log_level)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Database":
        """Create a helper configured from DATABASE_URL and DB_* variables."""
        return cls(config_from_env(environ))

    # --- Connection ---

    def connect(self):
        """
        Open the connection if it is not open yet.

        Returns:
            The psycopg2 connection

        Raises:
            DatabaseConnectionError: If the driver cannot connect
        """
        if self._connected:
            return self._link

        cfg = self.config
        host = cfg.host
        # libpq takes the socket directory in place of a host name
        if cfg.socket and host == "localhost":
            host = cfg.socket

        kwargs = {
            "host": host,
            "user": cfg.user,
            "password": cfg.password,
            "dbname": cfg.database,
        }
        if cfg.port:
            kwargs["port"] = cfg.port

        logger.info(f"Connecting to {cfg.database} on {host} as {cfg.user}")
        try:
            link = psycopg2.connect(**kwargs)
        except psycopg2.Error as e:
            message = str(e).strip()
            logger.warning(f"Connection to {host} failed: {message}")
            raise DatabaseConnectionError(
                f"Connection error: {message}", getattr(e, "pgcode", None)
            ) from e

        link.autocommit = True
        self._link = link
        self._connected = True
        return link

    def is_connected(self) -> bool:
        return self._connected

    # --- Statements ---

    def prefix_table(self, text: str) -> str:
        """
        Add the table prefix.

        Every {table} placeholder is replaced by the prefixed name. A string
        without placeholders is treated as a table name and prefixed whole.
        When marking is disabled the placeholders are only unwrapped.
        """
        prefix = self.config.prefix if self.config.mark else ""

        if _HAS_PLACEHOLDER.search(text):
            return _PLACEHOLDER.sub(lambda m: prefix + m.group(1), text)
        return prefix + text

    def prepare(self, sql: str, *values) -> "Database":
        """
        Store a statement for execute().

        Table placeholders are prefixed and `values` are bound to the %s
        placeholders by the driver, which quotes and escapes them.

        Args:
            sql: Statement with {table} and %s placeholders
            *values: Values for the %s placeholders, in order

        Returns:
            self, for chaining
        """
        sql = self.prefix_table(sql)
        params = tuple(values)

        link = self.connect()
        with link.cursor() as cur:
            text = self._render(cur, sql, params)

        self._statement = PreparedStatement(sql=sql, params=params, text=text)
        return self

    def execute(self, sql: Optional[str] = None, *values, as_list: bool = False):
        """
        Run the pending statement, preparing it first if `sql` is given.

        Returns:
            The query result, or False when no statement is pending
        """
        if sql is not None:
            self.prepare(sql, *values)

        statement = self._statement
        if statement is None or not statement.text:
            return False

        result = self._run(statement.sql, statement.params, statement.text, as_list)
        self._statement = None

        return result

    def query(self, sql: str, as_list: bool = False, params: Optional[tuple] = None):
        """
        Run a SQL statement directly.

        Args:
            sql: SQL text, with %s placeholders if `params` is given
            as_list: Drain the result set into a list of dicts instead of
                returning the live cursor (costly for large results)
            params: Values bound to the placeholders

        Returns:
            Cursor, list of row dicts, or False for an empty statement
        """
        if not sql:
            return False

        params = tuple(params) if params else ()
        text = sql
        if params:
            link = self.connect()
            with link.cursor() as cur:
                text = self._render(cur, sql, params)

        return self._run(sql, params, text, as_list)

    def _run(self, sql: str, params: tuple, text: str, as_list: bool):
        link = self.connect()
        self._number_of_queries += 1

        key = sql_hash(text)
        cur = link.cursor(cursor_factory=RealDictCursor)
        self.start_benchmark(key, text)
        try:
            cur.execute(sql, params or None)
        finally:
            self.end_benchmark(key)

        query_logger.debug(f"Query took {self._benchmarks[key].diff:.6f}s: {text}")

        if not as_list:
            return cur

        rows = cur.fetchall() if cur.description is not None else []
        cur.close()
        return [dict(row) for row in rows]

    @staticmethod
    def _render(cur, sql: str, params: tuple) -> str:
        rendered = cur.mogrify(sql, params or None)
        if isinstance(rendered, bytes):
            rendered = rendered.decode(encodings[cur.connection.encoding])
        return rendered

    # --- Introspection ---

    def get_number_of_queries(self) -> int:
        return self._number_of_queries

    def get_statement(self) -> str:
        """Rendered text of the pending statement, or "" if none."""
        return self._statement.text if self._statement else ""

    def start_benchmark(self, key: str, sql: str) -> None:
        self._benchmarks[key] = Benchmark(sql=sql, start=time.time())

    def end_benchmark(self, key: str) -> None:
        bench = self._benchmarks[key]
        end = time.time()
        self._benchmarks[key] = replace(bench, end=end, diff=end - bench.start)

    def get_benchmarks(self) -> dict[str, Benchmark]:
        return dict(self._benchmarks)
