"""
Persistent user preferences (single-item store) and signal feedback log.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..models.schemas import FeedbackEntry, FeedbackType, UserPreferences, utcnow
from .memory_store import MemoryStore


class UserPreferencesStore:
    """One preferences record per memory directory"""

    FILE_NAME = "preferences.json"

    def __init__(self, memory_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.store: MemoryStore[UserPreferences] = MemoryStore(
            Path(memory_dir) / self.FILE_NAME, UserPreferences, logger=logger
        )

    def get(self) -> UserPreferences:
        items = self.store.get_all()
        return items[0] if items else UserPreferences()

    def update(self, **fields: Any) -> UserPreferences:
        """Merge the given fields into the stored preferences"""
        merged = self.get().model_dump()
        merged.update(fields)
        merged["updated_at"] = utcnow()
        updated = UserPreferences.model_validate(merged)
        return self.store.upsert(lambda item: True, lambda existing: updated, updated)

    def set_focus_companies(self, companies: List[str]) -> UserPreferences:
        return self.update(focus_companies=companies)

    def set_focus_industries(self, industries: List[str]) -> UserPreferences:
        return self.update(focus_industries=industries)

    def set_min_confidence(self, confidence: float) -> UserPreferences:
        return self.update(min_confidence=max(0.0, min(1.0, confidence)))

    def reset(self) -> None:
        self.store.clear()


class FeedbackStore:
    """Append-only log of user feedback on delivered signals"""

    FILE_NAME = "feedback.json"

    def __init__(self, memory_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.store: MemoryStore[FeedbackEntry] = MemoryStore(
            Path(memory_dir) / self.FILE_NAME, FeedbackEntry, logger=logger
        )

    def record(self, event_id: str, feedback: FeedbackType, comment: Optional[str] = None) -> FeedbackEntry:
        entry = FeedbackEntry(event_id=event_id, feedback=FeedbackType(feedback), comment=comment)
        self.store.append(entry)
        return entry

    def get_for_event(self, event_id: str) -> List[FeedbackEntry]:
        return self.store.filter(lambda item: item.event_id == event_id)

    def summary(self) -> Dict[str, int]:
        counts = Counter(item.feedback.value for item in self.store.get_all())
        return {kind.value: counts.get(kind.value, 0) for kind in FeedbackType}

    @property
    def size(self) -> int:
        return self.store.size
