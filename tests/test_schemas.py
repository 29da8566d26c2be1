import pytest
from pydantic import ValidationError

from conftest import make_event, make_signal_event
from signal_monitor.models.schemas import BuyingSignalEvent, BuyingStage, RawEvent


def _record(**signal_overrides):
    record = make_signal_event("evt_1").model_dump(mode="json")
    record["signal"].update(signal_overrides)
    return record


def test_accepts_well_formed_event():
    event = BuyingSignalEvent.model_validate(_record(confidence=0.85))
    assert event.signal.confidence == 0.85


@pytest.mark.parametrize("confidence", [1.5, -0.1])
def test_rejects_confidence_out_of_range(confidence):
    with pytest.raises(ValidationError):
        BuyingSignalEvent.model_validate(_record(confidence=confidence))


def test_rejects_match_score_out_of_range():
    record = _record()
    record["company"]["match_score"] = 1.2
    with pytest.raises(ValidationError):
        BuyingSignalEvent.model_validate(record)


@pytest.mark.parametrize("url", ["not a url", "/relative/path", "linkedin.com/post/1"])
def test_rejects_invalid_url(url):
    record = _record()
    record["source"]["url"] = url
    with pytest.raises(ValidationError):
        BuyingSignalEvent.model_validate(record)


def test_rejects_invalid_timestamp():
    record = _record()
    record["timestamp"] = "yesterday"
    with pytest.raises(ValidationError):
        BuyingSignalEvent.model_validate(record)


def test_raw_event_accepts_camel_case():
    event = RawEvent.model_validate(
        {
            "id": "evt_1",
            "source": "reddit",
            "contentType": "comment",
            "url": "https://reddit.com/r/supplychain/1",
            "body": "Anyone using Blue Yonder?",
            "authorRole": "Planner",
            "companyHint": "Initech",
            "collectedAt": "2024-05-01T12:00:00Z",
        }
    )
    assert event.content_type == "comment"
    assert event.company_hint == "Initech"


def test_raw_event_is_immutable():
    event = make_event()
    with pytest.raises(ValidationError):
        event.body = "changed"


def test_raw_event_text_is_lower_cased_title_and_body():
    event = make_event(title="RFP Notice", body="New TMS")
    assert event.text == "rfp notice new tms"


def test_buying_stage_rank_follows_funnel():
    ranks = [stage.rank for stage in BuyingStage]
    assert ranks == sorted(ranks)
    assert BuyingStage.IMPLEMENTATION.rank > BuyingStage.AWARENESS.rank
