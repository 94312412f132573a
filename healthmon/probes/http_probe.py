"""HTTP endpoint health probe."""

import asyncio
import time

import httpx

from .. import __version__
from ..utils.metrics import ProbeResult, STATUS_NONE
from .base import BaseProbe, safe_probe

# Response body excerpt attached to status mismatch errors
MAX_BODY_CHARS = 1000

HEADERS = {
    "User-Agent": f"healthmon/{__version__}",
    "Accept": "application/json,text/plain,*/*",
}


def _excerpt(text: str) -> str:
    if len(text) > MAX_BODY_CHARS:
        return text[:MAX_BODY_CHARS] + "..."
    return text


class HttpProbe(BaseProbe):
    """Probe issuing one HTTP GET and comparing the status code."""

    kind = "http"

    @safe_probe
    async def check(self) -> ProbeResult:
        """
        GET the target URL within the target timeout.

        Returns:
            ProbeResult: Successful iff the response status equals the
            target's expected status
        """
        timeout = self.target.timeout_seconds
        self.logger.debug(f"Checking {self.target.name} at {self.target.address}")

        start_time = time.perf_counter()

        try:
            # httpx timeouts apply per operation; wait_for bounds the whole request
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers=HEADERS
            ) as client:
                response = await asyncio.wait_for(
                    client.get(self.target.address),
                    timeout=timeout
                )

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            status_code = response.status_code
            expected = self.target.expected_status

            if status_code != expected:
                self.logger.debug(
                    f"{self.target.name} returned {status_code}, expected {expected}"
                )
                error = f"Expected status {expected} but got {status_code}"
                body = _excerpt(response.text)
                if body:
                    error += f". Response: {body}"
                return self._result(False, elapsed_ms, status_code, error=error)

            return self._result(True, elapsed_ms, status_code)

        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.warning(f"Timeout checking {self.target.name}")
            detail = str(e) or f"no response within {timeout:g}s"
            return self._result(False, elapsed_ms, STATUS_NONE, error=f"Timeout: {detail}")

        except httpx.RequestError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.warning(f"Connection error checking {self.target.name}: {e}")
            return self._result(False, elapsed_ms, STATUS_NONE, error=f"Connection error: {e}")
