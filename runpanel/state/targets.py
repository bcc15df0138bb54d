"""Target registry with least-recently-used eviction.

This module provides the single source of truth for which targets exist.
Targets are never removed by callers; they fall out of the registry when
it grows past its capacity and they are neither protected nor in use.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable
from collections.abc import Iterator
from typing import TYPE_CHECKING

from runpanel.constants import MAX_TARGETS

if TYPE_CHECKING:
    from runpanel.models import Target

logger = logging.getLogger(__name__)


class TargetRegistry:
    """Registry of targets ordered by recency of use.

    Example:
        >>> registry = TargetRegistry(capacity=2)
        >>> registry.add(Target(id="build", log_path=Path("/tmp/build.log")))
        []
        >>> registry.touch("build")
        >>> "build" in registry
        True
    """

    def __init__(self, capacity: int = MAX_TARGETS) -> None:
        """Initialize an empty registry.

        Args:
            capacity: Number of targets kept before eviction starts.
        """
        self.capacity = capacity
        self._targets: OrderedDict[str, Target] = OrderedDict()

    def __contains__(self, target_id: object) -> bool:
        return target_id in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(list(self._targets.values()))

    def get(self, target_id: str) -> Target | None:
        return self._targets.get(target_id)

    def touch(self, target_id: str) -> None:
        """Mark a target as most recently used."""
        if target_id in self._targets:
            self._targets.move_to_end(target_id)

    def add(
        self,
        target: Target,
        protected: Callable[[str], bool] | None = None,
    ) -> list[Target]:
        """Add or replace a target and evict the least recently used overflow.

        Args:
            target: Target to register; replaces any target with the same id.
            protected: Predicate naming target ids that must not be evicted.

        Returns:
            The targets that were evicted to make room.
        """
        self._targets[target.id] = target
        self._targets.move_to_end(target.id)

        evicted: list[Target] = []
        for candidate_id in list(self._targets):
            if len(self._targets) <= self.capacity:
                break
            if candidate_id == target.id or (protected is not None and protected(candidate_id)):
                continue
            evicted.append(self._targets.pop(candidate_id))
            logger.debug("Evicted target %s", candidate_id)
        return evicted
