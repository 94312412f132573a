"""Tests for the runtime metrics snapshot."""

import threading
import time
from unittest.mock import patch

import psutil
import pytest

from healthmon.services import runtime_metrics
from healthmon.services.runtime_metrics import collect_runtime_metrics


@pytest.fixture
def fresh_process(monkeypatch):
    """Drop the cached process handle so the next snapshot creates one."""
    monkeypatch.setattr(runtime_metrics, "_process", None)


def test_snapshot_contains_process_counters():
    metrics = collect_runtime_metrics()

    for key in (
        "rss_mb",
        "memory_usage_percentage",
        "thread_count",
        "cpu_percent",
        "uptime_seconds",
        "uptime_formatted",
        "available_processors",
        "python_version",
        "gc_collections",
    ):
        assert key in metrics
    assert "error" not in metrics
    assert metrics["thread_count"] >= 1
    assert 0.0 <= metrics["memory_usage_percentage"] <= 100.0


def test_uptime_formatting():
    metrics = collect_runtime_metrics()

    assert metrics["uptime_formatted"].endswith("seconds")
    assert "hours" in metrics["uptime_formatted"]


def test_cpu_percent_reflects_load_between_snapshots(fresh_process):
    done = threading.Event()

    def spin():
        while not done.is_set():
            sum(range(1000))

    worker = threading.Thread(target=spin, daemon=True)
    worker.start()
    readings = []
    try:
        for _ in range(4):
            readings.append(collect_runtime_metrics()["cpu_percent"])
            time.sleep(0.3)
    finally:
        done.set()
        worker.join()

    assert any(value > 0 for value in readings), readings


def test_process_handle_reused_across_snapshots(fresh_process):
    with patch("healthmon.services.runtime_metrics.psutil.Process", wraps=psutil.Process) as mock_process:
        collect_runtime_metrics()
        collect_runtime_metrics()
        collect_runtime_metrics()

    assert mock_process.call_count == 1


@patch("healthmon.services.runtime_metrics.psutil.Process")
def test_psutil_failure_reported_not_raised(mock_process, fresh_process):
    mock_process.side_effect = psutil.AccessDenied(pid=1)

    metrics = collect_runtime_metrics()

    assert "error" in metrics
    assert "memory_usage_percentage" not in metrics
    assert "python_version" in metrics
    assert runtime_metrics._process is None
