"""Open a database backend from ClientOptions."""

from __future__ import annotations

import logging

from sqlrecord.db.backend import Database
from sqlrecord.db.proxy import Socks5Tunnel, verify_socks5_url
from sqlrecord.errors import ConfigError, ConnectError, ExecError
from sqlrecord.options import ClientOptions, Endpoint, format_url, parse_address

logger = logging.getLogger(__name__)

SQLITE_DRIVERS = frozenset({"sqlite", "sqlite3"})
POSTGRES_DRIVERS = frozenset({"postgres", "postgresql"})
MYSQL_DRIVERS = frozenset({"mysql", "mariadb"})

_MYSQL_DEFAULT_PORT = 3306
_POSTGRES_DEFAULT_PORT = 5432

# Address params understood by aiomysql.connect, with their value types
_MYSQL_PARAMS = {
    "charset": str,
    "sql_mode": str,
    "init_command": str,
    "connect_timeout": float,
    "auth_plugin": str,
    "program_name": str,
}


async def open_database(options: ClientOptions) -> tuple[Database, Socks5Tunnel | None]:
    """Open and ping a backend for ``options.driver_name``.

    Returns the backend and the SOCKS5 tunnel it dials through, if any; the
    caller owns both. Raises ConfigError or ConnectError.
    """
    driver = options.driver_name.lower()
    if options.socks5_proxy:
        verify_socks5_url(options.socks5_proxy)

    tunnel: Socks5Tunnel | None = None
    if driver in SQLITE_DRIVERS:
        if options.socks5_proxy:
            raise ConfigError("sqlite databases cannot be reached through a proxy")
        db = await _create_sqlite(options)
    elif driver in POSTGRES_DRIVERS:
        db, tunnel = await _create_postgres(options)
    elif driver in MYSQL_DRIVERS:
        db, tunnel = await _create_mysql(options)
    else:
        raise ConfigError(f"unknown driver {options.driver_name!r}")

    try:
        await ping(db)
    except ConnectError:
        await db.close()
        if tunnel is not None:
            await tunnel.close()
        raise
    logger.info("connected to %s database", driver)
    return db, tunnel


async def ping(db: Database) -> None:
    """Run ``SELECT 1``; raises ConnectError when the database is unreachable."""
    try:
        cursor = await db.execute("SELECT 1")
        await cursor.close()
    except ExecError as exc:
        raise ConnectError(f"ping failed: {exc}") from exc


async def _start_tunnel(
    options: ClientOptions, endpoint: Endpoint, default_port: int
) -> Socks5Tunnel | None:
    if not options.socks5_proxy:
        return None
    tunnel = Socks5Tunnel(
        options.socks5_proxy, endpoint.host or "localhost", endpoint.port or default_port
    )
    await tunnel.start()
    return tunnel


async def _create_sqlite(options: ClientOptions) -> Database:
    from sqlrecord.db.sqlite_backend import SQLiteBackend

    path = options.open_url or options.db_name or ":memory:"
    return await SQLiteBackend.create(path)


async def _create_postgres(options: ClientOptions) -> tuple[Database, Socks5Tunnel | None]:
    from sqlrecord.db.postgres_backend import PostgresBackend

    url = options.open_url or format_url(options, "postgresql")
    tunnel = await _start_tunnel(options, parse_address(url), _POSTGRES_DEFAULT_PORT)
    host, port = tunnel.local_address if tunnel else (None, None)
    try:
        db = await PostgresBackend.create(
            url,
            max_conns=options.max_conns,
            max_lifetime=options.max_lifetime,
            host=host,
            port=port,
        )
    except ConnectError:
        if tunnel is not None:
            await tunnel.close()
        raise
    return db, tunnel


def mysql_connect_kwargs(endpoint: Endpoint) -> dict[str, object]:
    """Translate a parsed address into aiomysql.connect keyword arguments."""
    kwargs: dict[str, object] = {"user": endpoint.user, "password": endpoint.password}
    if endpoint.db_name:
        kwargs["db"] = endpoint.db_name
    if endpoint.protocol == "unix":
        kwargs["unix_socket"] = endpoint.host
    else:
        kwargs["host"] = endpoint.host or "localhost"
        kwargs["port"] = endpoint.port or _MYSQL_DEFAULT_PORT
    for key, value in endpoint.params.items():
        convert = _MYSQL_PARAMS.get(key)
        if convert is None:
            logger.debug("ignoring unsupported mysql address param %s", key)
            continue
        try:
            kwargs[key] = convert(value)
        except ValueError as exc:
            raise ConfigError(f"malformed address param {key}={value!r}") from exc
    return kwargs


async def _create_mysql(options: ClientOptions) -> tuple[Database, Socks5Tunnel | None]:
    from sqlrecord.db.mysql_backend import MySQLBackend

    endpoint = parse_address(options.address())
    kwargs = mysql_connect_kwargs(endpoint)
    if options.socks5_proxy and "unix_socket" in kwargs:
        raise ConfigError("unix socket addresses cannot be reached through a proxy")
    tunnel = await _start_tunnel(options, endpoint, _MYSQL_DEFAULT_PORT)
    if tunnel is not None:
        kwargs["host"], kwargs["port"] = tunnel.local_address
    try:
        db = await MySQLBackend.create(
            kwargs, max_conns=options.max_conns, max_lifetime=options.max_lifetime
        )
    except ConnectError:
        if tunnel is not None:
            await tunnel.close()
        raise
    return db, tunnel
