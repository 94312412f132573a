"""Thread-safe list of monitored targets."""

import logging
import threading
from typing import Iterable, Optional, Tuple

from pydantic import ValidationError

from ..config.models import Target
from ..errors import ConfigurationError


class TargetRegistry:
    """
    Ordered set of targets shared between the sampler and its callers.

    Mutations are whole-entry additions, removals or a full replacement,
    all under one lock. Readers receive tuple snapshots.
    """

    def __init__(
        self,
        targets: Iterable[Target] = (),
        logger: Optional[logging.Logger] = None
    ):
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._lock = threading.Lock()
        self._targets: Tuple[Target, ...] = ()
        self.replace(targets)

    def add(self, target: Target) -> Target:
        """
        Add one target.

        Raises:
            ConfigurationError: If a target with the same name exists
        """
        with self._lock:
            if any(t.name == target.name for t in self._targets):
                raise ConfigurationError(f"Target already exists: {target.name}")
            self._targets = self._targets + (target,)

        self.logger.info(f"Added target to monitor: {target.name} -> {target.address}")
        return target

    def add_from(self, name: str, address: str, **options) -> Target:
        """
        Validate a target definition and add it.

        Args:
            name: Target name
            address: URL or host:port
            **options: Other Target fields (kind, expected_status, timeout_ms)

        Returns:
            Target: The added target

        Raises:
            ConfigurationError: If the definition is invalid or the name is taken
        """
        try:
            target = Target(name=name, address=address, **options)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid target {name!r}: {e}") from e
        return self.add(target)

    def remove(self, name: str) -> bool:
        """Remove a target by name. Returns False if it was not present."""
        with self._lock:
            remaining = tuple(t for t in self._targets if t.name != name)
            removed = len(remaining) != len(self._targets)
            self._targets = remaining

        if removed:
            self.logger.info(f"Removed target: {name}")
        return removed

    def replace(self, targets: Iterable[Target]) -> None:
        """
        Replace the whole target list.

        Raises:
            ConfigurationError: If target names are not unique
        """
        targets = tuple(targets)
        names = [t.name for t in targets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate target name(s): {', '.join(duplicates)}")

        with self._lock:
            self._targets = targets

    def snapshot(self) -> Tuple[Target, ...]:
        """Return the current targets."""
        with self._lock:
            return self._targets

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)
