"""
Collector interface and registry
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..models.schemas import RawEvent


class Collector(ABC):
    """
    A source of raw events.

    Subclasses set `name` and implement `collect()`. `roles` tags the
    collector for role-based selection (e.g. "scheduled", "on_demand").
    """

    name: str = "collector"
    roles: Iterable[str] = ()
    enabled: bool = True

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    def collect(self) -> List[RawEvent]:
        """Return the events currently available from this source"""

    def truncate(self, text: str, max_len: int = 5000) -> str:
        if len(text) <= max_len:
            return text
        return text[:max_len] + "…"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class CollectorRegistry:
    """Collectors keyed by name, in registration order"""

    def __init__(self, collectors: Optional[Iterable[Collector]] = None):
        self._collectors: Dict[str, Collector] = {}
        for collector in collectors or ():
            self.register(collector)

    def register(self, collector: Collector) -> None:
        if collector.name in self._collectors:
            raise ValueError(f"Collector already registered: {collector.name}")
        self._collectors[collector.name] = collector

    def get(self, name: str) -> Optional[Collector]:
        return self._collectors.get(name)

    def names(self) -> List[str]:
        return list(self._collectors)

    def enabled(self) -> List[Collector]:
        return [c for c in self._collectors.values() if c.enabled]

    def by_role(self, role: str) -> List[Collector]:
        return [c for c in self.enabled() if role in c.roles]

    def __len__(self) -> int:
        return len(self._collectors)

    def __iter__(self):
        return iter(self._collectors.values())
