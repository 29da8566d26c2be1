"""
Collectors that read events already gathered by another process
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from ..models.schemas import RawEvent
from .base import Collector


class JsonFileCollector(Collector):
    """
    Reads a JSON array of raw events from disk on every collect().

    Items that fail validation are logged and skipped; a missing file yields
    no events. Unreadable or malformed files raise, so the pipeline records
    the collector as failed.
    """

    roles = ("scheduled", "on_demand")

    def __init__(
        self,
        name: str,
        path: Union[str, Path],
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger=logger)
        self.name = name
        self.path = Path(path)

    def collect(self) -> List[RawEvent]:
        if not self.path.exists():
            self.logger.info("[%s] No events file at %s", self.name, self.path)
            return []

        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValueError(f"{self.path} must contain a JSON array of events")

        events = []
        for index, item in enumerate(data):
            try:
                event = RawEvent.model_validate(item)
            except ValidationError as e:
                self.logger.warning("[%s] Skipping invalid event #%d: %s", self.name, index, e)
                continue
            events.append(event.model_copy(update={"body": self.truncate(event.body)}))

        self.logger.info("[%s] Loaded %d events from %s", self.name, len(events), self.path)
        return events


class StaticCollector(Collector):
    """Serves a fixed list of events; used for in-process producers and tests"""

    roles = ("on_demand",)

    def __init__(
        self,
        name: str,
        events: Iterable[RawEvent],
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(logger=logger)
        self.name = name
        self.events = list(events)

    def collect(self) -> List[RawEvent]:
        return list(self.events)
