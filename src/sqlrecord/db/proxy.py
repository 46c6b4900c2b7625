"""SOCKS5 tunnelling for database connections.

Drivers dial plain TCP, so the client starts a loopback listener and points
the driver at it. Each accepted connection is forwarded to the database
endpoint through the SOCKS5 proxy. Nothing is registered globally; each
client owns its tunnel.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlsplit

from python_socks import ProxyError
from python_socks.async_.asyncio import Proxy

from sqlrecord.errors import ConfigError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def verify_socks5_url(url: str) -> str:
    """Validate a proxy URL; only ``socks5://host:port`` is accepted."""
    parts = urlsplit(url)
    if parts.scheme != "socks5":
        raise ConfigError(f"only socks5 proxies are supported, got {parts.scheme or url!r}")
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigError(f"malformed proxy address: {url!r}") from exc
    if not parts.hostname or port is None:
        raise ConfigError(f"malformed proxy address: {url!r}")
    return url


async def _pipe(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    try:
        while data := await reader.read(_CHUNK_SIZE):
            writer.write(data)
            await writer.drain()
    except ConnectionError:
        logger.debug("tunnel connection reset")
    finally:
        writer.close()


class Socks5Tunnel:
    """Loopback listener forwarding connections to one remote endpoint via SOCKS5."""

    def __init__(self, proxy_url: str, remote_host: str, remote_port: int) -> None:
        self.proxy_url = verify_socks5_url(proxy_url)
        self.remote_host = remote_host
        self.remote_port = remote_port
        self._server: asyncio.Server | None = None

    @property
    def local_address(self) -> tuple[str, int]:
        """``(host, port)`` the driver should dial."""
        if self._server is None:
            raise RuntimeError("tunnel is not started")
        return self._server.sockets[0].getsockname()[:2]

    async def start(self) -> tuple[str, int]:
        """Start listening on an ephemeral loopback port."""
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        host, port = self.local_address
        logger.info(
            "socks5 tunnel %s:%d -> %s:%d",
            host,
            port,
            self.remote_host,
            self.remote_port,
        )
        return host, port

    async def _handle(
        self, client_reader: asyncio.StreamReader, client_writer: asyncio.StreamWriter
    ) -> None:
        proxy = Proxy.from_url(self.proxy_url)
        try:
            sock = await proxy.connect(dest_host=self.remote_host, dest_port=self.remote_port)
            remote_reader, remote_writer = await asyncio.open_connection(sock=sock)
        except (ProxyError, OSError, asyncio.TimeoutError):
            logger.warning(
                "socks5 dial to %s:%d failed", self.remote_host, self.remote_port, exc_info=True
            )
            client_writer.close()
            return
        await asyncio.gather(
            _pipe(client_reader, remote_writer),
            _pipe(remote_reader, client_writer),
        )

    async def close(self) -> None:
        """Stop accepting connections."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
