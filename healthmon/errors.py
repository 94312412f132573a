"""Exception hierarchy for the health monitor."""


class HealthMonitorError(Exception):
    """Base class for all health monitor errors."""


class ConfigurationError(HealthMonitorError):
    """Invalid target definition or monitoring configuration."""


class CycleFailure(HealthMonitorError):
    """Unexpected error while assembling one sample."""


class SamplerStateError(HealthMonitorError):
    """Sampler operation not allowed in its current state."""
