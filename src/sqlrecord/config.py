"""Environment-variable-based configuration."""

import os

from sqlrecord.options import ClientOptions


def get_driver_name() -> str:
    """Return the driver name from SQLRECORD_DRIVER."""
    return os.environ.get("SQLRECORD_DRIVER", "mysql")


def get_database_url() -> str:
    """Return the raw connection URL from SQLRECORD_DATABASE_URL (empty if unset)."""
    return os.environ.get("SQLRECORD_DATABASE_URL", "")


def get_max_conns() -> int:
    """Return the pool size from SQLRECORD_MAX_CONNS (0 means the default)."""
    return int(os.environ.get("SQLRECORD_MAX_CONNS", "0"))


def get_max_lifetime() -> float:
    """Return the connection lifetime in seconds from SQLRECORD_MAX_LIFETIME."""
    return float(os.environ.get("SQLRECORD_MAX_LIFETIME", "0"))


def get_socks5_proxy() -> str:
    """Return the SOCKS5 proxy URL from SQLRECORD_SOCKS5_PROXY."""
    return os.environ.get("SQLRECORD_SOCKS5_PROXY", "")


def get_log_level() -> str:
    """Return the logging level from SQLRECORD_LOG_LEVEL."""
    return os.environ.get("SQLRECORD_LOG_LEVEL", "WARNING")


def load_options() -> ClientOptions:
    """Build ClientOptions from the environment."""
    return ClientOptions(
        driver_name=get_driver_name(),
        open_url=get_database_url(),
        max_conns=get_max_conns(),
        max_lifetime=get_max_lifetime(),
        socks5_proxy=get_socks5_proxy(),
    )
