"""Health probes for HTTP and TCP targets."""

import logging
from typing import Optional

from ..config.models import ProbeKind, Target
from .base import BaseProbe, safe_probe
from .http_probe import HttpProbe
from .tcp_probe import TcpProbe

PROBES = {
    ProbeKind.HTTP: HttpProbe,
    ProbeKind.TCP: TcpProbe,
}


def build_probe(target: Target, logger: Optional[logging.Logger] = None) -> BaseProbe:
    """Create the probe matching the target's kind."""
    return PROBES[target.kind](target, logger)


__all__ = ["BaseProbe", "HttpProbe", "TcpProbe", "build_probe", "safe_probe"]
