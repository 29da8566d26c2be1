"""
Company-level knowledge accumulation.
Tracks signals per company, category distribution and buying stage progression.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..models.schemas import BuyingSignalEvent, BuyingStage, CompanyKnowledge, utcnow
from .memory_store import MemoryStore


class CompanyMemory:
    """One CompanyKnowledge record per company (case-insensitive, alias-aware)"""

    FILE_NAME = "companies.json"

    def __init__(self, memory_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.store: MemoryStore[CompanyKnowledge] = MemoryStore(
            Path(memory_dir) / self.FILE_NAME, CompanyKnowledge, logger=self.logger
        )

    def record_signal(self, event: BuyingSignalEvent) -> CompanyKnowledge:
        """Create or update knowledge for the event's company"""
        company_name = event.company.company_name
        category = event.signal.category.value
        stage = event.signal.buying_stage
        now = utcnow()

        def update(existing: CompanyKnowledge) -> CompanyKnowledge:
            existing.categories[category] = existing.categories.get(category, 0) + 1

            # Never regress to an earlier stage
            current = existing.latest_buying_stage
            if current is None or stage.rank > current.rank:
                existing.latest_buying_stage = stage

            existing.signal_count += 1
            existing.last_seen_at = now
            if event.event_id not in existing.signal_ids:
                existing.signal_ids.append(event.event_id)
            return existing

        return self.store.upsert(
            lambda item: item.matches_name(company_name),
            update,
            CompanyKnowledge(
                company_name=company_name,
                signal_count=1,
                categories={category: 1},
                latest_buying_stage=stage,
                first_seen_at=now,
                last_seen_at=now,
                signal_ids=[event.event_id],
            ),
        )

    def get_company(self, name: str) -> Optional[CompanyKnowledge]:
        return self.store.find(lambda item: item.matches_name(name))

    def get_all_companies(self) -> List[CompanyKnowledge]:
        return self.store.get_all()

    def get_top_companies(self, limit: int = 10) -> List[CompanyKnowledge]:
        return self.store.query(
            sort_key=lambda item: item.signal_count,
            reverse=True,
            limit=limit,
        )

    def get_companies_by_stage(self, stage: BuyingStage) -> List[CompanyKnowledge]:
        stage = BuyingStage(stage)
        return self.store.filter(lambda item: item.latest_buying_stage == stage)

    def add_note(self, company_name: str, note: str) -> Optional[CompanyKnowledge]:
        """Append a timestamped note; does nothing if the company is unknown"""
        company = self.get_company(company_name)
        if company is None:
            return None

        def update(existing: CompanyKnowledge) -> CompanyKnowledge:
            existing.notes.append(f"[{utcnow().isoformat()}] {note}")
            return existing

        updated = self.store.upsert(lambda item: item.matches_name(company_name), update, company)
        self.logger.debug("Added note to %s", company_name)
        return updated

    def add_alias(self, company_name: str, alias: str) -> CompanyKnowledge:
        """Register an alias, creating a stub record if the company is unknown"""

        def update(existing: CompanyKnowledge) -> CompanyKnowledge:
            if alias.lower() not in (a.lower() for a in existing.aliases):
                existing.aliases.append(alias)
            return existing

        return self.store.upsert(
            lambda item: item.company_name.lower() == company_name.lower(),
            update,
            CompanyKnowledge(company_name=company_name, aliases=[alias]),
        )

    @property
    def size(self) -> int:
        return self.store.size
