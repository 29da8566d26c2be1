"""
Past signal storage with deduplication and trend detection.
"""

import logging
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union

from ..models.schemas import (
    BuyingSignalEvent,
    SignalCategory,
    StoredSignal,
    Trend,
    TrendResult,
    utcnow,
)
from ..utils import to_base36
from .memory_store import MemoryStore

_WHITESPACE = re.compile(r"\s+")


def hash_body(body: str) -> str:
    """
    Fingerprint of the normalized body: lower-cased, whitespace collapsed,
    first 200 UTF-16 code units, folded into a signed 32-bit hash
    (h * 31 + c), rendered as base36 with an "h" prefix.
    """
    normalized = _WHITESPACE.sub(" ", body.lower()).strip()
    units = [unit for char in normalized for unit in _utf16_units(char)][:200]
    value = 0
    for unit in units:
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return f"h{to_base36(abs(value))}"


def _utf16_units(char: str):
    code = ord(char)
    if code < 0x10000:
        return (code,)
    code -= 0x10000
    return (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SignalHistory:
    """Append-only log of recorded signals"""

    FILE_NAME = "signals.json"

    def __init__(self, memory_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.store: MemoryStore[StoredSignal] = MemoryStore(
            Path(memory_dir) / self.FILE_NAME, StoredSignal, logger=self.logger
        )

    def record(self, event: BuyingSignalEvent) -> bool:
        """
        Record a signal.

        Returns:
            False if an entry with the same body hash or URL exists, else True
        """
        body_hash = hash_body(event.raw_content.body)
        url = event.source.url

        if self.store.find(lambda item: item.body_hash == body_hash or item.url == url):
            self.logger.debug("Duplicate signal %s (%s)", event.event_id, url)
            return False

        self.store.append(
            StoredSignal(
                event_id=event.event_id,
                company_name=event.company.company_name,
                category=event.signal.category,
                strength=event.signal.strength,
                confidence=event.signal.confidence,
                buying_stage=event.signal.buying_stage,
                source=event.source.platform,
                url=url,
                title=event.raw_content.title,
                body_hash=body_hash,
                timestamp=event.timestamp,
            )
        )
        return True

    def is_duplicate(self, url: str, body: str) -> bool:
        body_hash = hash_body(body)
        return self.store.find(lambda item: item.body_hash == body_hash or item.url == url) is not None

    def get_by_company(self, company_name: str) -> List[StoredSignal]:
        name = company_name.lower()
        return self.store.filter(lambda item: item.company_name.lower() == name)

    def get_by_category(self, category: SignalCategory) -> List[StoredSignal]:
        category = SignalCategory(category)
        return self.store.filter(lambda item: item.category == category)

    def get_recent(self, limit: int = 50) -> List[StoredSignal]:
        return self.store.query(
            sort_key=lambda item: _as_utc(item.timestamp),
            reverse=True,
            limit=limit,
        )

    def get_since(self, since: datetime) -> List[StoredSignal]:
        since = _as_utc(since)
        return self.store.filter(lambda item: _as_utc(item.timestamp) >= since)

    def detect_trends(self, window_days: int = 7, now: Optional[datetime] = None) -> List[TrendResult]:
        """
        Compare per-category counts in the last `window_days` against the
        window before it. Categories absent from both windows are omitted.
        """
        now = _as_utc(now or utcnow())
        window = timedelta(days=window_days)

        recent_counts: Counter = Counter()
        older_counts: Counter = Counter()
        for item in self.store.get_all():
            age = now - _as_utc(item.timestamp)
            if age < window:
                recent_counts[item.category] += 1
            elif age < window * 2:
                older_counts[item.category] += 1

        results = []
        for category in SignalCategory:
            if category not in recent_counts and category not in older_counts:
                continue
            recent = recent_counts[category]
            older = older_counts[category]
            if recent > older:
                trend = Trend.UP
            elif recent < older:
                trend = Trend.DOWN
            else:
                trend = Trend.STABLE
            results.append(TrendResult(category=category, count=recent, trend=trend))
        return results

    @property
    def size(self) -> int:
        return self.store.size
