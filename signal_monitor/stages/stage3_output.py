"""
Stage 3: Structured Output
==========================
Writes validated BuyingSignalEvent records to:
- output/events/<event_id>.json   one file per event
- output/runs/<run_id>.jsonl      one line per event for the run
- output/latest.json              rolling summary of the most recent run
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..models.schemas import BuyingSignalEvent, utcnow

LATEST_EVENT_LIMIT = 50


def validate_event(event: Union[BuyingSignalEvent, dict]) -> BuyingSignalEvent:
    """
    Re-validate an event against the BuyingSignalEvent schema.

    Raises:
        ValidationError: if the record does not match the schema
    """
    if isinstance(event, BuyingSignalEvent):
        return BuyingSignalEvent.model_validate(event.model_dump())
    return BuyingSignalEvent.model_validate(event)


class OutputWriter:
    """
    Stage 3: Persist signal events as JSON.
    """

    def __init__(self, output_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.output_dir = Path(output_dir)
        self.events_dir = self.output_dir / "events"
        self.runs_dir = self.output_dir / "runs"

        self.events_dir.mkdir(parents=True, exist_ok=True)
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def write_event(self, event: Union[BuyingSignalEvent, dict]) -> bool:
        """Write one event file; returns False if the event fails validation"""
        try:
            valid = validate_event(event)
        except ValidationError as e:
            event_id = event.get("event_id") if isinstance(event, dict) else event.event_id
            self.logger.warning("Event %s failed validation: %s", event_id, e)
            return False

        path = self.events_dir / f"{valid.event_id}.json"
        path.write_text(valid.model_dump_json(indent=2), encoding="utf-8")
        return True

    def write_batch(self, events: List[BuyingSignalEvent], run_id: str) -> str:
        """Append the run's valid events to a JSONL file and refresh latest.json"""
        run_file = self.runs_dir / f"{run_id}.jsonl"

        valid_events = []
        for event in events:
            try:
                valid_events.append(validate_event(event))
            except ValidationError as e:
                self.logger.warning("Skipping invalid event in batch %s: %s", run_id, e)

        with run_file.open("a", encoding="utf-8") as handle:
            for event in valid_events:
                handle.write(event.model_dump_json() + "\n")

        self.write_latest(valid_events)
        self.logger.info("Wrote %d events to %s", len(valid_events), run_file)
        return str(run_file)

    def write_latest(self, events: List[BuyingSignalEvent]) -> Path:
        latest_path = self.output_dir / "latest.json"
        summary = {
            "updated_at": utcnow().isoformat(),
            "total_events": len(events),
            "signal_count": sum(1 for e in events if e.signal.is_signal),
            "by_category": _count_by(events, lambda e: e.signal.category.value),
            "by_strength": _count_by(events, lambda e: e.signal.strength.value),
            "by_source": _count_by(events, lambda e: e.source.platform.value),
            "events": [e.model_dump(mode="json") for e in events[:LATEST_EVENT_LIMIT]],
        }
        latest_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        return latest_path


def _count_by(
    events: List[BuyingSignalEvent], key: Callable[[BuyingSignalEvent], str]
) -> Dict[str, int]:
    return dict(Counter(key(e) for e in events))
