"""Tests for BaseProbe, safe_probe and the probe factory."""

import logging

import pytest

from healthmon.config.models import Target
from healthmon.probes import BaseProbe, HttpProbe, TcpProbe, build_probe, safe_probe
from healthmon.utils.metrics import ProbeResult, STATUS_NONE


class ExplodingProbe(BaseProbe):
    """Probe whose check always raises."""

    kind = "http"

    @safe_probe
    async def check(self) -> ProbeResult:
        raise ValueError("bad payload")


class TestBuildProbe:
    """Probe selection by target kind."""

    def test_http_target_gets_http_probe(self, http_target):
        assert isinstance(build_probe(http_target), HttpProbe)

    def test_tcp_target_gets_tcp_probe(self, tcp_target):
        assert isinstance(build_probe(tcp_target), TcpProbe)

    def test_probe_uses_child_logger(self, http_target):
        parent = logging.getLogger("test_parent")
        probe = build_probe(http_target, parent)

        assert probe.logger.parent == parent
        assert probe.logger.name == "test_parent.HttpProbe"


class TestSafeProbe:
    """Exception conversion at the probe boundary."""

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self, http_target):
        result = await ExplodingProbe(http_target).check()

        assert result.success is False
        assert result.error == "Unexpected error: bad payload"
        assert result.status_code == STATUS_NONE
        assert result.target_name == http_target.name
        assert result.elapsed_ms >= 0

    def test_result_helper_fills_target_fields(self):
        target = Target(name="svc", address="http://svc.test/")
        result = ExplodingProbe(target)._result(True, 12.5, 200)

        assert result.target_name == "svc"
        assert result.address == "http://svc.test/"
        assert result.success is True
        assert result.elapsed_ms == 12.5
        assert result.status_code == 200
        assert result.timestamp > 0
