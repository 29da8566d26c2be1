"""
ICP Signal Monitor - Main Pipeline
==================================
Orchestrates one end-to-end run:
  Collect → Stage 1: ICP Matching → Stage 2: Signal Classification →
  Stage 3: Structured Output → Memory

Key properties:
- Collectors run in parallel; one failing source never fails the run
- Events with no ICP overlap are dropped before any LLM call
- Classification runs in bounded, sequential chunks
- A run always returns a PipelineResult, even under partial failure
"""

import json
import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from .collectors import Collector, CollectorRegistry, create_collectors
from .config.settings import LLM_CONFIG, PIPELINE_VERSION
from .memory.company_memory import CompanyMemory
from .memory.signal_history import SignalHistory
from .models.pipeline_config import PipelineSettings, load_pipeline_settings
from .models.schemas import (
    BuyingSignalEvent,
    CompanyMatch,
    EventSource,
    PipelineInfo,
    PipelineResult,
    RawContent,
    RawEvent,
    SignalClassification,
    utcnow,
)
from .stages.stage1_icp_match import ICPMatcher
from .stages.stage2_classifier import SignalClassifier
from .stages.stage3_output import OutputWriter
from .utils import generate_event_id

RAW_STAGING_FILE = "temp_raw_events.json"


class SignalPipeline:
    """
    Main pipeline that ties collectors, the three stages and memory together.
    """

    def __init__(
        self,
        settings: PipelineSettings,
        collectors: Union[CollectorRegistry, Iterable[Collector]],
        matcher: Optional[ICPMatcher] = None,
        classifier: Optional[SignalClassifier] = None,
        writer: Optional[OutputWriter] = None,
        company_memory: Optional[CompanyMemory] = None,
        signal_history: Optional[SignalHistory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Pipeline configuration
            collectors: Registry (or plain iterable) of collectors to run
            matcher: Stage 1 matcher (built from settings.icp_config_path if omitted)
            classifier: Stage 2 classifier (built from LLM_CONFIG if omitted)
            writer: Stage 3 writer (built on settings.output_dir if omitted)
            company_memory: Company knowledge store (only used when memory is enabled)
            signal_history: Signal history store (only used when memory is enabled)
            logger: Logger to report to

        Raises:
            ICPConfigError: if the matcher has to be built and the ICP file is invalid
        """
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

        if isinstance(collectors, CollectorRegistry):
            self.collectors = collectors
        else:
            self.collectors = CollectorRegistry(collectors)

        self.matcher = matcher or ICPMatcher(settings.icp_config_path, logger=logger)
        self.classifier = classifier or SignalClassifier(logger=logger)
        self.writer = writer or OutputWriter(settings.output_dir, logger=logger)

        if settings.enable_memory:
            self.company_memory = company_memory or CompanyMemory(settings.memory_dir, logger=logger)
            self.signal_history = signal_history or SignalHistory(settings.memory_dir, logger=logger)
        else:
            self.company_memory = None
            self.signal_history = None

        self.stats = {
            "total_runs": 0,
            "total_collected": 0,
            "total_matched": 0,
            "total_signals": 0,
            "invalid_events": 0,
            "duplicate_signals": 0,
            "collector_failures": 0,
            "total_processing_time_ms": 0,
        }

    def run(self) -> PipelineResult:
        """
        Execute one pipeline run.

        Returns:
            PipelineResult with counts by source and category
        """
        start_time = time.time()
        run_id = generate_event_id("run")
        started_at = utcnow()
        self.stats["total_runs"] += 1

        collectors = self.collectors.enabled()
        self.logger.info("Pipeline run %s started", run_id)
        self.logger.info("Active collectors: %s", ", ".join(c.name for c in collectors) or "none")

        # =====================================================================
        # COLLECT
        # =====================================================================
        raw_events, failed_collectors = self._collect_all(collectors)
        self.logger.info("Collected %d raw events", len(raw_events))
        staged_file = self._stage_raw_events(raw_events)

        capped = raw_events[: self.settings.max_events_per_run]
        if len(raw_events) > self.settings.max_events_per_run:
            self.logger.warning(
                "Capped from %d to %d events", len(raw_events), self.settings.max_events_per_run
            )

        # =====================================================================
        # STAGE 1: ICP Matching
        # =====================================================================
        matched: List[Tuple[RawEvent, CompanyMatch]] = []
        for event in capped:
            company = self.matcher.match(event)
            if company.match_score > 0:
                matched.append((event, company))
        self.logger.info("%d/%d events passed ICP filter", len(matched), len(capped))

        # =====================================================================
        # STAGE 2: Signal Classification
        # =====================================================================
        classifications = self.classifier.classify_batch(
            [event for event, _ in matched],
            concurrency=self.settings.classifier_concurrency,
        )

        # =====================================================================
        # STAGE 3: Assemble and Output
        # =====================================================================
        signal_events: List[BuyingSignalEvent] = []
        for event, company in matched:
            signal = classifications.get(event.id)
            if signal is None:
                continue
            if not signal.is_signal or signal.confidence < self.settings.signal_confidence_threshold:
                continue

            buying_event = self._assemble(event, company, signal)
            if buying_event is None:
                continue

            if not self.writer.write_event(buying_event):
                self.stats["invalid_events"] += 1
                continue
            signal_events.append(buying_event)
            self._remember(buying_event)

        output_file = self.writer.write_batch(signal_events, run_id)
        self._cleanup(staged_file)

        # =====================================================================
        # Assemble Result
        # =====================================================================
        result = PipelineResult(
            run_id=run_id,
            started_at=started_at,
            completed_at=utcnow(),
            total_collected=len(raw_events),
            total_matched=len(matched),
            total_signals=len(signal_events),
            total_noise=len(raw_events) - len(signal_events),
            output_file=output_file,
            events_by_source=dict(Counter(e.source.platform.value for e in signal_events)),
            events_by_category=dict(Counter(e.signal.category.value for e in signal_events)),
            failed_collectors=failed_collectors,
        )

        self.stats["total_collected"] += result.total_collected
        self.stats["total_matched"] += result.total_matched
        self.stats["total_signals"] += result.total_signals
        self.stats["total_processing_time_ms"] += (time.time() - start_time) * 1000

        self.logger.info(
            "Pipeline run %s completed: %d signals from %d collected",
            run_id,
            result.total_signals,
            result.total_collected,
        )
        return result

    # =========================================================================
    # Internals
    # =========================================================================

    def _collect_all(self, collectors: List[Collector]) -> Tuple[List[RawEvent], List[str]]:
        """Run every collector in parallel; failures are logged and isolated"""
        if not collectors:
            return [], []

        results: Dict[str, List[RawEvent]] = {}
        failed = set()

        with ThreadPoolExecutor(max_workers=len(collectors)) as executor:
            futures = {executor.submit(c.collect): c for c in collectors}
            for future in as_completed(futures):
                collector = futures[future]
                try:
                    results[collector.name] = future.result()
                except Exception as e:
                    self.stats["collector_failures"] += 1
                    failed.add(collector.name)
                    self.logger.error("Collector %s failed: %s", collector.name, e)

        # Keep registration order regardless of completion order
        events: List[RawEvent] = []
        for collector in collectors:
            events.extend(results.get(collector.name, []))
        return events, [c.name for c in collectors if c.name in failed]

    def _stage_raw_events(self, raw_events: List[RawEvent]) -> Optional[Path]:
        raw_dir = Path(self.settings.output_dir) / "raw"
        staged_file = raw_dir / RAW_STAGING_FILE
        try:
            raw_dir.mkdir(parents=True, exist_ok=True)
            payload = [e.model_dump(mode="json", by_alias=True) for e in raw_events]
            staged_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as e:
            self.logger.error("Failed to stage raw events: %s", e)
            return None
        self.logger.info("Staged raw events to %s", staged_file)
        return staged_file

    def _cleanup(self, staged_file: Optional[Path]) -> None:
        if staged_file is None:
            return
        try:
            staged_file.unlink(missing_ok=True)
        except OSError as e:
            self.logger.error("Failed to delete staged raw events %s: %s", staged_file, e)

    def _assemble(
        self, event: RawEvent, company: CompanyMatch, signal: SignalClassification
    ) -> Optional[BuyingSignalEvent]:
        """Build the output record; events that fail validation are skipped"""
        try:
            return BuyingSignalEvent(
                event_id=event.id,
                timestamp=utcnow(),
                source=EventSource(
                    platform=event.source,
                    content_type=event.content_type,
                    url=event.url,
                    author=event.author,
                    author_role=event.author_role,
                ),
                company=company,
                signal=signal,
                raw_content=RawContent(
                    title=event.title,
                    body=event.body,
                    published_at=event.published_at,
                ),
                pipeline=PipelineInfo(
                    collected_at=event.collected_at,
                    processed_at=utcnow(),
                    pipeline_version=PIPELINE_VERSION,
                ),
            )
        except ValidationError as e:
            self.stats["invalid_events"] += 1
            self.logger.warning("Skipping event %s: %s", event.id, e)
            return None

    def _remember(self, event: BuyingSignalEvent) -> None:
        if self.signal_history is None or self.company_memory is None:
            return
        if self.signal_history.record(event):
            self.company_memory.record_signal(event)
        else:
            self.stats["duplicate_signals"] += 1

    def get_stats(self) -> Dict:
        """Get pipeline statistics"""
        stats = self.stats.copy()
        if stats["total_runs"] > 0:
            stats["avg_processing_time_ms"] = round(
                stats["total_processing_time_ms"] / stats["total_runs"], 2
            )
        stats["classifier"] = self.classifier.get_stats()
        return stats

    def reset_stats(self):
        """Reset statistics counters"""
        for key in self.stats:
            self.stats[key] = 0


# =============================================================================
# CONVENIENCE FACTORY
# =============================================================================

def create_pipeline(
    settings: Optional[PipelineSettings] = None,
    collectors: Optional[Union[CollectorRegistry, Iterable[Collector]]] = None,
    logger: Optional[logging.Logger] = None,
) -> SignalPipeline:
    """
    Build a pipeline from the process-wide default configuration.

    Example:
        pipeline = create_pipeline()
        result = pipeline.run()
    """
    settings = settings or load_pipeline_settings()
    if collectors is None:
        collectors = create_collectors(settings, logger=logger)
    classifier = SignalClassifier(
        api_key=LLM_CONFIG.get("api_key"),
        provider=LLM_CONFIG.get("provider"),
        model=LLM_CONFIG.get("model"),
        logger=logger,
    )
    return SignalPipeline(settings, collectors, classifier=classifier, logger=logger)
