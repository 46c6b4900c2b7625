"""Tests for SOCKS5 proxy validation and the loopback tunnel."""

import asyncio
import socket
from unittest.mock import patch

import pytest

from sqlrecord.db.proxy import Socks5Tunnel, verify_socks5_url
from sqlrecord.errors import ConfigError


class TestVerifySocks5Url:
    def test_valid(self):
        assert verify_socks5_url("socks5://user:pw@proxy:1080") == "socks5://user:pw@proxy:1080"

    @pytest.mark.parametrize("url", ["http://proxy:8080", "socks4://proxy:1080", "proxy:1080"])
    def test_other_schemes(self, url):
        with pytest.raises(ConfigError, match="only socks5"):
            verify_socks5_url(url)

    @pytest.mark.parametrize("url", ["socks5://proxy", "socks5://:1080", "socks5://proxy:99999"])
    def test_malformed(self, url):
        with pytest.raises(ConfigError, match="malformed"):
            verify_socks5_url(url)


class FakeProxy:
    """Stands in for python_socks Proxy: dials the destination directly."""

    dialed: list[tuple[str, int]] = []

    @classmethod
    def from_url(cls, url):
        return cls()

    async def connect(self, dest_host, dest_port):
        FakeProxy.dialed.append((dest_host, dest_port))
        sock = socket.create_connection((dest_host, dest_port))
        sock.setblocking(False)
        return sock


async def _echo(reader, writer):
    while data := await reader.read(1024):
        writer.write(data)
        await writer.drain()
    writer.close()


@pytest.mark.asyncio
async def test_tunnel_forwards_through_proxy():
    server = await asyncio.start_server(_echo, "127.0.0.1", 0)
    remote_host, remote_port = server.sockets[0].getsockname()[:2]
    FakeProxy.dialed.clear()

    with patch("sqlrecord.db.proxy.Proxy", FakeProxy):
        tunnel = Socks5Tunnel("socks5://proxy.example:1080", remote_host, remote_port)
        local_host, local_port = await tunnel.start()
        assert (local_host, local_port) == tunnel.local_address
        assert local_port != remote_port

        reader, writer = await asyncio.open_connection(local_host, local_port)
        writer.write(b"ping")
        await writer.drain()
        assert await reader.readexactly(4) == b"ping"
        writer.close()
        await writer.wait_closed()
        await tunnel.close()

    assert FakeProxy.dialed == [(remote_host, remote_port)]
    server.close()
    await server.wait_closed()


def test_tunnel_rejects_bad_proxy():
    with pytest.raises(ConfigError):
        Socks5Tunnel("https://proxy:443", "db", 3306)


def test_local_address_before_start():
    tunnel = Socks5Tunnel("socks5://proxy:1080", "db", 3306)
    with pytest.raises(RuntimeError, match="not started"):
        tunnel.local_address
