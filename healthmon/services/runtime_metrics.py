"""Read-only snapshot of the monitor process's own runtime counters."""

import gc
import logging
import os
import platform
import threading
import time
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)

MB = 1024 * 1024

_process_lock = threading.Lock()
_process: Optional[psutil.Process] = None


def _format_uptime(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours} hours, {minutes} minutes, {secs} seconds"


def _current_process() -> psutil.Process:
    """
    Return the Process handle shared by all snapshots of this process.

    cpu_percent() reports usage since the previous call on the same handle,
    so the handle is kept across cycles and primed once when created. A
    forked child gets its own handle.
    """
    global _process
    with _process_lock:
        if _process is None or _process.pid != os.getpid():
            process = psutil.Process()
            # First non-blocking call only sets the baseline and returns 0.0
            process.cpu_percent(interval=None)
            _process = process
        return _process


def collect_runtime_metrics() -> Dict[str, Any]:
    """
    Snapshot memory, thread, uptime and GC counters of this process.

    ``cpu_percent`` covers the time since the previous snapshot.

    Returns:
        Dict[str, Any]: Flat key/value map. psutil failures are logged and
        reported under an ``error`` key rather than raised.
    """
    metrics: Dict[str, Any] = {
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "gc_collections": sum(stat.get("collections", 0) for stat in gc.get_stats()),
    }

    try:
        process = _current_process()
        with process.oneshot():
            memory = process.memory_info()
            metrics["rss_mb"] = memory.rss / MB
            metrics["vms_mb"] = memory.vms / MB
            metrics["memory_usage_percentage"] = process.memory_percent()
            metrics["thread_count"] = process.num_threads()
            metrics["cpu_percent"] = process.cpu_percent(interval=None)
            uptime = max(0.0, time.time() - process.create_time())

        metrics["uptime_seconds"] = uptime
        metrics["uptime_formatted"] = _format_uptime(uptime)
        metrics["system_memory_percentage"] = psutil.virtual_memory().percent
        metrics["available_processors"] = psutil.cpu_count()

    except psutil.Error as e:
        logger.warning(f"Failed to read runtime metrics: {e}")
        metrics["error"] = str(e)

    return metrics
