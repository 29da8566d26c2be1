import threading

import pytest

from signal_monitor.models.schemas import PipelineResult, utcnow
from signal_monitor.scheduler import PipelineScheduler


class FakePipeline:
    def __init__(self, gate=None, error=None):
        self.gate = gate
        self.error = error
        self.started = threading.Event()

    def run(self):
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        now = utcnow()
        return PipelineResult(run_id="run_test", started_at=now, completed_at=now, total_signals=2)


def test_tick_runs_a_fresh_pipeline():
    built = []

    def factory():
        built.append(FakePipeline())
        return built[-1]

    scheduler = PipelineScheduler(factory, "0 */4 * * *")

    assert scheduler.tick().total_signals == 2
    assert scheduler.tick().run_id == "run_test"
    assert len(built) == 2
    assert scheduler.running is False


def test_tick_is_skipped_while_busy():
    calls = []
    scheduler = PipelineScheduler(lambda: calls.append(1) or FakePipeline(), "0 */4 * * *")
    scheduler.running = True

    assert scheduler.tick() is None
    assert calls == []


def test_overlapping_tick_is_skipped():
    gate = threading.Event()
    pipeline = FakePipeline(gate=gate)
    scheduler = PipelineScheduler(lambda: pipeline, "0 */4 * * *")

    worker = threading.Thread(target=scheduler.tick)
    worker.start()
    assert pipeline.started.wait(timeout=5)

    assert scheduler.tick() is None

    gate.set()
    worker.join(timeout=5)
    assert scheduler.running is False


def test_failed_run_releases_busy_flag():
    scheduler = PipelineScheduler(lambda: FakePipeline(error=RuntimeError("boom")), "0 */4 * * *")

    assert scheduler.tick() is None
    assert scheduler.running is False


def test_start_and_stop():
    scheduler = PipelineScheduler(FakePipeline, "*/5 * * * *")

    scheduler.start(run_immediately=False)
    assert scheduler.is_started
    scheduler.stop()
    assert not scheduler.is_started


def test_start_runs_immediately():
    built = []

    def factory():
        built.append(FakePipeline())
        return built[-1]

    scheduler = PipelineScheduler(factory, "0 0 1 1 *")
    try:
        scheduler.start(run_immediately=True)
        assert len(built) == 1
    finally:
        scheduler.stop()


def test_invalid_cron_is_rejected():
    with pytest.raises(ValueError):
        PipelineScheduler(FakePipeline, "every four hours").start(run_immediately=False)
