"""Raw TCP connect health probe."""

import asyncio
import time

from ..config.models import split_host_port
from ..utils.metrics import ProbeResult, STATUS_NONE
from .base import BaseProbe, safe_probe


class TcpProbe(BaseProbe):
    """Probe that succeeds when a TCP connection establishes in time."""

    kind = "tcp"

    @safe_probe
    async def check(self) -> ProbeResult:
        host, port = split_host_port(self.target.address)
        timeout = self.target.timeout_seconds

        start_time = time.perf_counter()

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.warning(f"Timeout connecting to {self.target.name}")
            return self._result(
                False, elapsed_ms, STATUS_NONE,
                error=f"Timeout: connection not established within {timeout:g}s"
            )
        except OSError as e:
            # Refused connections and DNS failures both land here
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.warning(f"Connection error for {self.target.name}: {e}")
            return self._result(False, elapsed_ms, STATUS_NONE, error=f"Connection error: {e}")

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            self.logger.debug(f"Error closing connection to {self.target.name}: {e}")

        return self._result(True, elapsed_ms, STATUS_NONE)
