from datetime import datetime, timedelta, timezone

from conftest import make_signal_event
from signal_monitor.memory.signal_history import SignalHistory, hash_body
from signal_monitor.models.schemas import SignalCategory, Trend

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _at(days_ago, **kwargs):
    return make_signal_event(timestamp=NOW - timedelta(days=days_ago), **kwargs)


def test_hash_body_normalizes():
    assert hash_body("Hello   World") == hash_body("  hello world ")
    assert hash_body("a") == "h2p"
    assert hash_body("") == "h0"
    assert hash_body("hello") != hash_body("hello!")


def test_hash_body_uses_first_200_characters():
    prefix = "x" * 200
    assert hash_body(prefix + "tail one") == hash_body(prefix + "tail two")


def test_hash_body_counts_astral_characters_as_two_units():
    rockets = "\U0001F680" * 100
    assert hash_body(rockets * 2 + " tail") == hash_body(rockets)
    assert hash_body(rockets) == "hp7qnfw"
    assert hash_body("\U0001F680" * 99 + "x") != hash_body(rockets)


def test_hash_body_handles_32_bit_overflow():
    value = hash_body("this body is long enough to overflow a 32-bit hash many times over")
    assert value.startswith("h")
    assert value[1:].isalnum()


def test_record_rejects_duplicates(tmp_path):
    history = SignalHistory(tmp_path)

    assert history.record(make_signal_event("evt_1", body="Same body")) is True
    # same body, different url
    assert history.record(make_signal_event("evt_2", body="same   BODY")) is False
    # same url, different body
    assert history.record(
        make_signal_event("evt_3", body="Other", url="https://www.linkedin.com/posts/evt_1")
    ) is False
    assert history.size == 1


def test_is_duplicate(tmp_path):
    history = SignalHistory(tmp_path)
    history.record(make_signal_event("evt_1", body="Body text"))

    assert history.is_duplicate("https://example.com/new", "body text")
    assert history.is_duplicate("https://www.linkedin.com/posts/evt_1", "new text")
    assert not history.is_duplicate("https://example.com/new", "new text")


def test_lookups(tmp_path):
    history = SignalHistory(tmp_path)
    history.record(_at(3, event_id="evt_1", company="Globex", body="one"))
    history.record(_at(1, event_id="evt_2", company="Initech", body="two",
                       category=SignalCategory.ERP_MIGRATION))
    history.record(_at(2, event_id="evt_3", company="globex", body="three"))

    assert [s.event_id for s in history.get_by_company("GLOBEX")] == ["evt_1", "evt_3"]
    assert [s.event_id for s in history.get_by_category(SignalCategory.ERP_MIGRATION)] == ["evt_2"]
    assert [s.event_id for s in history.get_recent(limit=2)] == ["evt_2", "evt_3"]
    assert [s.event_id for s in history.get_since(NOW - timedelta(days=2, hours=1))] == ["evt_2", "evt_3"]


def test_stored_signal_fields(tmp_path):
    history = SignalHistory(tmp_path)
    event = make_signal_event("evt_1", body="Some body")
    history.record(event)

    stored = history.get_recent()[0]

    assert stored.company_name == "Globex"
    assert stored.body_hash == hash_body("Some body")
    assert stored.url == event.source.url
    assert stored.confidence == 0.85


def test_detect_trends(tmp_path):
    history = SignalHistory(tmp_path)
    n = 0

    def add(days_ago, category):
        nonlocal n
        n += 1
        history.record(_at(days_ago, event_id=f"evt_{n}", body=f"body {n}", category=category))

    for days in (0, 1, 2, 3, 4):
        add(days, SignalCategory.TMS_LOGISTICS)
    for days in (8, 9):
        add(days, SignalCategory.TMS_LOGISTICS)
    add(1, SignalCategory.ERP_MIGRATION)
    add(10, SignalCategory.ERP_MIGRATION)
    add(12, SignalCategory.SUPPLIER_RISK)
    # older than both windows
    add(30, SignalCategory.NETWORK_DESIGN)

    trends = {t.category: t for t in history.detect_trends(window_days=7, now=NOW)}

    assert set(trends) == {
        SignalCategory.TMS_LOGISTICS,
        SignalCategory.ERP_MIGRATION,
        SignalCategory.SUPPLIER_RISK,
    }
    assert trends[SignalCategory.TMS_LOGISTICS].trend == Trend.UP
    assert trends[SignalCategory.TMS_LOGISTICS].count == 5
    assert trends[SignalCategory.ERP_MIGRATION].trend == Trend.STABLE
    assert trends[SignalCategory.SUPPLIER_RISK].trend == Trend.DOWN
    assert trends[SignalCategory.SUPPLIER_RISK].count == 0


def test_detect_trends_empty(tmp_path):
    assert SignalHistory(tmp_path).detect_trends(now=NOW) == []
