"""Pydantic configuration models for the health monitor."""

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ProbeKind(str, Enum):
    """Kind of health check performed against a target."""
    HTTP = "http"
    TCP = "tcp"


def split_host_port(address: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` address, accepting bracketed IPv6 hosts.

    Raises:
        ValueError: If the address has no host or no valid port
    """
    host, sep, port = address.rpartition(':')
    if not sep or not host:
        raise ValueError('TCP address must be in host:port form')
    host = host.strip('[]')
    if not host:
        raise ValueError('TCP address must include a host')
    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError(f'Invalid TCP port: {port!r}')
    return host, int(port)


class Target(BaseModel):
    """Immutable descriptor of one monitored endpoint."""
    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    kind: ProbeKind = ProbeKind.HTTP
    expected_status: int = Field(default=200, ge=100, le=599)
    timeout_ms: int = Field(default=5000, ge=1)

    @model_validator(mode='before')
    @classmethod
    def infer_kind(cls, data):
        """Infer the probe kind from the address when it is not given."""
        if isinstance(data, dict) and not data.get('kind'):
            address = str(data.get('address') or '').strip()
            data = dict(data)
            if address.startswith(('http://', 'https://')):
                data['kind'] = ProbeKind.HTTP
            else:
                data['kind'] = ProbeKind.TCP
        return data

    @field_validator('name', 'address')
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject empty names and addresses."""
        v = v.strip()
        if not v:
            raise ValueError('must not be empty')
        return v

    @model_validator(mode='after')
    def validate_address(self) -> 'Target':
        """Check the address matches the probe kind."""
        if self.kind == ProbeKind.HTTP:
            if not self.address.startswith(('http://', 'https://')):
                raise ValueError('URL must start with http:// or https://')
        else:
            split_host_port(self.address)
        return self

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class MonitoringConfig(BaseModel):
    """Sampling cadence, history and dispatch settings."""
    interval_seconds: float = Field(default=30.0, gt=0)
    history_size: int = Field(default=100, ge=1)
    max_workers: int = Field(default=10, ge=1)
    deadline_factor: float = Field(default=2.0, ge=1.0)


class ReportConfig(BaseModel):
    """Report output configuration."""
    output_dir: str = "./reports"
    formats: List[str] = Field(default_factory=lambda: ["json"])

    @field_validator('formats')
    @classmethod
    def validate_formats(cls, v: List[str]) -> List[str]:
        """Only json, html and csv reports are supported."""
        formats = [f.lower() for f in v]
        unknown = sorted(set(formats) - {"json", "html", "csv"})
        if unknown:
            raise ValueError(f"Unsupported report format(s): {', '.join(unknown)}")
        return formats


class MonitoringSystemConfig(BaseModel):
    """Root configuration model for the health monitor."""
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    targets: List[Target] = Field(default_factory=list)
    reports: ReportConfig = Field(default_factory=ReportConfig)

    @model_validator(mode='after')
    def unique_target_names(self) -> 'MonitoringSystemConfig':
        """Target names identify results, so they must be unique."""
        seen = set()
        for target in self.targets:
            if target.name in seen:
                raise ValueError(f"Duplicate target name: {target.name}")
            seen.add(target.name)
        return self
