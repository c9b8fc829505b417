"""Connection configuration for the database helper."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Optional

from psycopg2.extensions import parse_dsn

DEFAULT_PORT = 5432

# Short option names accepted by build_config(), mapped to DatabaseConfig fields
OPTION_KEYS = {
    "host": "host",
    "user": "user",
    "pass": "password",
    "data": "database",
    "port": "port",
    "sock": "socket",
    "mark": "mark",
    "pref": "prefix",
    "qlog": "query_log",
    "qlvl": "query_log_level",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class DatabaseConfig:
    """Settings used to open the connection and prefix tables."""

    host: str = "localhost"
    user: str = "root"
    password: str = ""
    database: str = "database"
    port: Optional[int] = DEFAULT_PORT
    socket: str = ""
    mark: bool = True
    prefix: str = ""
    query_log: str = ""
    query_log_level: str = "DEBUG"


def driver_defaults(environ: Optional[Mapping[str, str]] = None) -> dict:
    """
    Resolve the driver's port and socket defaults from the environment.

    libpq reads PGPORT and PGHOST; a PGHOST starting with "/" names the
    directory holding the Unix socket.

    Args:
        environ: Environment mapping (default: os.environ)

    Returns:
        Dict with "port" and "socket" keys
    """
    env = os.environ if environ is None else environ

    port = _to_port(env.get("PGPORT")) or DEFAULT_PORT
    pghost = env.get("PGHOST", "")
    socket = pghost if pghost.startswith("/") else ""

    return {"port": port, "socket": socket}


def build_config(
    options: Optional[Mapping] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DatabaseConfig:
    """
    Build a DatabaseConfig from defaults plus caller-supplied options.

    Recognized keys are the short names in OPTION_KEYS or the DatabaseConfig
    field names. Anything else is ignored, as is a non-mapping `options`.

    Args:
        options: Mapping of option name to value
        environ: Environment used for the driver defaults

    Returns:
        Immutable DatabaseConfig
    """
    values = driver_defaults(environ)

    if isinstance(options, Mapping):
        field_names = {f.name for f in fields(DatabaseConfig)}
        for key, value in options.items():
            name = OPTION_KEYS.get(key, key if key in field_names else None)
            if name is None:
                continue
            values[name] = value

    if "port" in values:
        values["port"] = _to_port(values["port"])
    if "mark" in values:
        values["mark"] = _to_bool(values["mark"])
    if "query_log_level" in values:
        values["query_log_level"] = str(values["query_log_level"]).upper()

    return DatabaseConfig(**values)


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> DatabaseConfig:
    """
    Build a DatabaseConfig from environment variables.

    DATABASE_URL supplies host, user, password, database and port.
    DB_TABLE_PREFIX and DB_MARK_TABLES control table prefixing.
    DB_QUERY_LOG and DB_QUERY_LOG_LEVEL enable the query timing log.
    """
    env = os.environ if environ is None else environ
    options = {}

    database_url = env.get("DATABASE_URL")
    if database_url:
        dsn = parse_dsn(database_url)
        for dsn_key, option in (
            ("host", "host"),
            ("user", "user"),
            ("password", "pass"),
            ("dbname", "data"),
            ("port", "port"),
        ):
            if dsn.get(dsn_key):
                options[option] = dsn[dsn_key]

    if "DB_TABLE_PREFIX" in env:
        options["pref"] = env["DB_TABLE_PREFIX"]
    if "DB_MARK_TABLES" in env:
        options["mark"] = env["DB_MARK_TABLES"]
    if "DB_QUERY_LOG" in env:
        options["qlog"] = env["DB_QUERY_LOG"]
    if "DB_QUERY_LOG_LEVEL" in env:
        options["qlvl"] = env["DB_QUERY_LOG_LEVEL"]

    return build_config(options, environ=env)


def _to_port(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _to_bool(value) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Invalid boolean value: {value!r}")
    return bool(value)
