import json

from conftest import make_signal_event
from signal_monitor.models.schemas import SignalCategory
from signal_monitor.stages.stage3_output import OutputWriter


def test_creates_output_directories(tmp_path):
    OutputWriter(tmp_path / "out")
    assert (tmp_path / "out" / "events").is_dir()
    assert (tmp_path / "out" / "runs").is_dir()


def test_write_event(tmp_path):
    writer = OutputWriter(tmp_path)
    event = make_signal_event("evt_1")

    assert writer.write_event(event) is True

    data = json.loads((tmp_path / "events" / "evt_1.json").read_text(encoding="utf-8"))
    assert data["event_id"] == "evt_1"
    assert data["signal"]["confidence"] == 0.85
    assert data["source"]["platform"] == "linkedin"


def test_write_event_rejects_invalid_record(tmp_path):
    writer = OutputWriter(tmp_path)
    record = make_signal_event("evt_bad").model_dump(mode="json")
    record["signal"]["confidence"] = 1.5

    assert writer.write_event(record) is False
    assert not (tmp_path / "events" / "evt_bad.json").exists()


def test_write_batch_appends_jsonl_and_latest(tmp_path):
    writer = OutputWriter(tmp_path)
    events = [
        make_signal_event("evt_1"),
        make_signal_event("evt_2", category=SignalCategory.ERP_MIGRATION),
        make_signal_event("evt_3"),
    ]

    path = writer.write_batch(events, "run_abc")
    writer.write_batch(events[:1], "run_abc")

    lines = (tmp_path / "runs" / "run_abc.jsonl").read_text(encoding="utf-8").splitlines()
    assert path.endswith("run_abc.jsonl")
    assert [json.loads(line)["event_id"] for line in lines] == ["evt_1", "evt_2", "evt_3", "evt_1"]

    latest = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
    assert latest["total_events"] == 1
    assert latest["by_category"] == {"tms_logistics": 1}


def test_latest_summary_groups(tmp_path):
    writer = OutputWriter(tmp_path)
    events = [
        make_signal_event("evt_1"),
        make_signal_event("evt_2", category=SignalCategory.ERP_MIGRATION),
        make_signal_event("evt_3"),
    ]
    writer.write_batch(events, "run_1")

    latest = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))

    assert latest["total_events"] == 3
    assert latest["signal_count"] == 3
    assert latest["by_category"] == {"tms_logistics": 2, "erp_migration": 1}
    assert latest["by_strength"] == {"strong": 3}
    assert latest["by_source"] == {"linkedin": 3}
    assert [e["event_id"] for e in latest["events"]] == ["evt_1", "evt_2", "evt_3"]
    assert "updated_at" in latest


def test_latest_keeps_first_fifty_events(tmp_path):
    writer = OutputWriter(tmp_path)
    events = [make_signal_event(f"evt_{i}") for i in range(60)]

    writer.write_batch(events, "run_big")

    latest = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
    assert latest["total_events"] == 60
    assert len(latest["events"]) == 50


def test_empty_batch_still_writes_files(tmp_path):
    writer = OutputWriter(tmp_path)
    path = writer.write_batch([], "run_empty")

    assert (tmp_path / "runs" / "run_empty.jsonl").read_text(encoding="utf-8") == ""
    assert json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))["total_events"] == 0
    assert path.endswith("run_empty.jsonl")
