import json
from datetime import datetime, timezone

import pytest

from signal_monitor.models.icp_config import ICPCriteria, ICPCustomRule
from signal_monitor.models.pipeline_config import PipelineSettings
from signal_monitor.models.schemas import (
    BuyingSignalEvent,
    BuyingStage,
    CompanyMatch,
    EventSource,
    PipelineInfo,
    RawContent,
    RawEvent,
    SignalCategory,
    SignalClassification,
    SignalStrength,
    SourcePlatform,
)


class StubLLMClient:
    """Deterministic stand-in for a chat completion client."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append(user_prompt)
        idx = min(len(self.calls) - 1, len(self._responses) - 1)
        response = self._responses[idx]
        if isinstance(response, Exception):
            raise response
        return response


def make_event(event_id="evt_1", **overrides) -> RawEvent:
    payload = {
        "id": event_id,
        "source": SourcePlatform.LINKEDIN,
        "content_type": "post",
        "url": f"https://www.linkedin.com/posts/{event_id}",
        "title": None,
        "body": "Generic update about our team",
        "author": "Jane Doe",
        "author_role": "VP Supply Chain",
        "company_hint": "Globex",
        "collected_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    }
    payload.update(overrides)
    return RawEvent(**payload)


def make_signal_event(
    event_id="evt_1",
    company="Globex",
    category=SignalCategory.TMS_LOGISTICS,
    stage=BuyingStage.EVALUATION,
    confidence=0.85,
    body="We are issuing an RFP for a new TMS",
    url=None,
    timestamp=None,
) -> BuyingSignalEvent:
    now = timestamp or datetime.now(timezone.utc)
    return BuyingSignalEvent(
        event_id=event_id,
        timestamp=now,
        source=EventSource(
            platform=SourcePlatform.LINKEDIN,
            content_type="post",
            url=url or f"https://www.linkedin.com/posts/{event_id}",
            author="Jane Doe",
            author_role="VP Supply Chain",
        ),
        company=CompanyMatch(
            company_name=company,
            match_score=0.8,
            matched_criteria=["target_role"],
            unmatched_criteria=[],
        ),
        signal=SignalClassification(
            is_signal=True,
            confidence=confidence,
            category=category,
            strength=SignalStrength.STRONG,
            buying_stage=stage,
            reasoning="test",
            keywords=["tms"],
            suggested_actions=[],
        ),
        raw_content=RawContent(title=None, body=body),
        pipeline=PipelineInfo(
            collected_at=now,
            processed_at=now,
            pipeline_version="1.0.0",
        ),
    )


@pytest.fixture
def criteria() -> ICPCriteria:
    return ICPCriteria(
        name="Supply Chain Buyers",
        industries=["manufacturing", "retail"],
        tech_stack=["SAP", "Blue Yonder"],
        target_roles=["supply chain", "procurement"],
        exclude_companies=["Competitor Co"],
        custom_rules=[],
    )


@pytest.fixture
def icp_file(tmp_path, criteria):
    path = tmp_path / "icp.json"
    path.write_text(criteria.model_dump_json(by_alias=True), encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path, icp_file) -> PipelineSettings:
    return PipelineSettings(
        output_dir=str(tmp_path / "output"),
        memory_dir=str(tmp_path / "memory"),
        icp_config_path=str(icp_file),
        signal_confidence_threshold=0.6,
        max_events_per_run=500,
        classifier_concurrency=2,
        enable_memory=True,
        log_file="",
        events_file="",
    )


@pytest.fixture
def write_json(tmp_path):
    def _write(name, payload):
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
