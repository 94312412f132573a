"""Tests for the TCP probe."""

import asyncio
import socket

import pytest
from unittest.mock import patch

from healthmon.config.models import Target
from healthmon.probes.tcp_probe import TcpProbe
from healthmon.utils.metrics import STATUS_NONE


def free_port() -> int:
    """Return a localhost port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_tcp_probe_connects(logger):
    """A listening port yields a successful result."""
    async def handle(reader, writer):
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    try:
        target = Target(name="local", address=f"127.0.0.1:{port}", timeout_ms=1000)
        result = await TcpProbe(target, logger).check()
    finally:
        server.close()
        await server.wait_closed()

    assert result.success is True
    assert result.kind == "tcp"
    assert result.status_code == STATUS_NONE
    assert result.error is None


@pytest.mark.asyncio
async def test_tcp_probe_connection_refused(logger):
    """A closed port is a failure, not an exception."""
    target = Target(name="closed", address=f"127.0.0.1:{free_port()}", timeout_ms=1000)

    result = await TcpProbe(target, logger).check()

    assert result.success is False
    assert result.error.startswith("Connection error")
    assert result.status_code == STATUS_NONE


@pytest.mark.asyncio
async def test_tcp_probe_timeout(logger):
    """A connect that never completes is cut off at the target timeout."""
    target = Target(name="blackhole", address="10.255.255.1:81", timeout_ms=100)

    async def never_connects(*args, **kwargs):
        await asyncio.sleep(10)

    with patch("asyncio.open_connection", never_connects):
        result = await TcpProbe(target, logger).check()

    assert result.success is False
    assert result.error.startswith("Timeout")
    assert 90 <= result.elapsed_ms < 2000


@pytest.mark.asyncio
async def test_tcp_probe_dns_failure(logger):
    """Resolution errors are reported as connection errors."""
    target = Target(name="nowhere", address="no-such-host.invalid:80", timeout_ms=1000)

    async def unresolvable(*args, **kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    with patch("asyncio.open_connection", unresolvable):
        result = await TcpProbe(target, logger).check()

    assert result.success is False
    assert "Name or service not known" in result.error
