"""
FastAPI Endpoints for the ICP Signal Monitor
============================================
RESTful API over the matcher, the classifier, the pipeline and memory.

Base URL: http://localhost:8000

Endpoints:
- GET  /                          - API info
- GET  /api/health                - Health check
- POST /api/icp/match             - Match one raw event against the ICP
- POST /api/signals/classify      - Classify one raw event
- POST /api/pipeline/run          - Run the pipeline once
- GET  /api/companies             - Top companies (or by buying stage)
- GET  /api/companies/{name}      - Knowledge for one company
- GET  /api/signals/recent        - Most recent stored signals
- GET  /api/signals/trends        - Category trends
- POST /api/feedback              - Record feedback on a signal
- GET  /api/feedback/summary      - Feedback counts per type
- GET  /api/preferences           - Get user preferences
- PUT  /api/preferences           - Update user preferences
- GET  /api/stats                 - Pipeline and classifier statistics
"""

import logging
import threading
from typing import Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()

from ..collectors import StaticCollector, create_collectors
from ..config.settings import PIPELINE_VERSION
from ..errors import SignalMonitorError
from ..memory import CompanyMemory, FeedbackStore, SignalHistory, UserPreferencesStore
from ..models.pipeline_config import PipelineSettings, load_pipeline_settings
from ..models.schemas import (
    BuyingStage,
    CompanyKnowledge,
    CompanyMatch,
    FeedbackEntry,
    FeedbackType,
    OutputFormat,
    PipelineResult,
    RawEvent,
    SignalCategory,
    SignalClassification,
    SourcePlatform,
    StoredSignal,
    TrendResult,
    UserPreferences,
    utcnow,
)
from ..pipeline import SignalPipeline
from ..stages.stage1_icp_match import ICPMatcher
from ..stages.stage2_classifier import SignalClassifier

logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="ICP Signal Monitor API",
    description="""
## Buying-Signal Monitoring

Collects public content, keeps what matches your Ideal Customer Profile (ICP)
and flags what looks like an active buying signal.

### Features:
- **3-Stage Pipeline**: ICP Matching → Signal Classification → Structured Output
- **LLM Classification**: via OpenRouter, OpenAI or Anthropic, with a keyword fallback
- **Memory**: per-company knowledge, signal history and trend detection
    """,
    version=PIPELINE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Service State
# =============================================================================

class ServiceState:
    """Components shared by all requests"""

    def __init__(
        self,
        settings: PipelineSettings,
        classifier: Optional[SignalClassifier] = None,
    ):
        self.settings = settings
        self.classifier = classifier or SignalClassifier()
        self.company_memory = CompanyMemory(settings.memory_dir)
        self.signal_history = SignalHistory(settings.memory_dir)
        self.preferences = UserPreferencesStore(settings.memory_dir)
        self.feedback = FeedbackStore(settings.memory_dir)
        self.run_lock = threading.Lock()
        self.last_run: Optional[PipelineResult] = None
        self._matcher: Optional[ICPMatcher] = None

    @property
    def matcher(self) -> ICPMatcher:
        """Loaded on first use so the API can start without an ICP file"""
        if self._matcher is None:
            self._matcher = ICPMatcher(self.settings.icp_config_path)
        return self._matcher

    def build_pipeline(self, events: Optional[List[RawEvent]] = None) -> SignalPipeline:
        collectors = create_collectors(self.settings)
        if events:
            collectors.register(StaticCollector("api", events))
        return SignalPipeline(
            self.settings,
            collectors,
            matcher=self.matcher,
            classifier=self.classifier,
            company_memory=self.company_memory,
            signal_history=self.signal_history,
        )


_state: Optional[ServiceState] = None


def configure(
    settings: Optional[PipelineSettings] = None,
    classifier: Optional[SignalClassifier] = None,
) -> ServiceState:
    """Replace the shared service state (used at startup and in tests)"""
    global _state
    _state = ServiceState(settings or load_pipeline_settings(), classifier=classifier)
    return _state


def get_state() -> ServiceState:
    if _state is None:
        return configure()
    return _state


# =============================================================================
# Request Models
# =============================================================================

class PipelineRunRequest(BaseModel):
    """Optional events to process alongside the configured collectors"""
    events: List[RawEvent] = Field(default_factory=list)


class FeedbackRequest(BaseModel):
    event_id: str = Field(..., description="Event the feedback refers to")
    feedback: FeedbackType
    comment: Optional[str] = None


class PreferencesUpdate(BaseModel):
    focus_industries: Optional[List[str]] = None
    focus_companies: Optional[List[str]] = None
    min_confidence: Optional[float] = Field(None, ge=0, le=1)
    preferred_sources: Optional[List[SourcePlatform]] = None
    signal_categories: Optional[List[SignalCategory]] = None
    output_format: Optional[OutputFormat] = None


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "ICP Signal Monitor",
        "version": PIPELINE_VERSION,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "ICP Match": "POST /api/icp/match",
            "Classify": "POST /api/signals/classify",
            "Run Pipeline": "POST /api/pipeline/run",
            "Companies": "GET /api/companies",
            "Recent Signals": "GET /api/signals/recent",
            "Trends": "GET /api/signals/trends",
            "Health": "GET /api/health",
        }
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    state = get_state()
    return {
        "status": "healthy",
        "service": "ICP Signal Monitor",
        "version": PIPELINE_VERSION,
        "timestamp": utcnow().isoformat(),
        "llm_configured": state.classifier.client is not None,
        "companies_tracked": state.company_memory.size,
        "signals_stored": state.signal_history.size,
    }


@app.get("/api/stats", tags=["Info"])
async def get_stats():
    """Classifier statistics and the last pipeline run"""
    state = get_state()
    return {
        "classifier": state.classifier.get_stats(),
        "last_run": state.last_run.model_dump(mode="json") if state.last_run else None,
    }


# =============================================================================
# Matching & Classification Endpoints
# =============================================================================

@app.post("/api/icp/match", response_model=CompanyMatch, tags=["Signals"])
def match_event(event: RawEvent):
    """Score one raw event against the configured ICP"""
    return get_state().matcher.match(event)


@app.post("/api/signals/classify", response_model=SignalClassification, tags=["Signals"])
def classify_event(event: RawEvent):
    """
    Classify one raw event as a buying signal.

    Falls back to keyword classification when no LLM is configured or the
    model call fails.
    """
    return get_state().classifier.classify(event)


@app.post("/api/pipeline/run", response_model=PipelineResult, tags=["Pipeline"])
def run_pipeline(request: Optional[PipelineRunRequest] = None):
    """
    Run the pipeline once over the configured collectors plus any events
    posted in the request body. Only one run may be active at a time.
    """
    state = get_state()
    if not state.run_lock.acquire(blocking=False):
        raise HTTPException(status_code=409, detail="A pipeline run is already in progress")
    try:
        events = request.events if request else []
        result = state.build_pipeline(events).run()
        state.last_run = result
        return result
    finally:
        state.run_lock.release()


# =============================================================================
# Memory Endpoints
# =============================================================================

@app.get("/api/companies", response_model=List[CompanyKnowledge], tags=["Memory"])
async def list_companies(
    limit: int = Query(10, ge=1, le=500, description="Maximum companies to return"),
    stage: Optional[BuyingStage] = Query(None, description="Only companies at this buying stage"),
):
    """Companies with the most signals, optionally filtered by buying stage"""
    memory = get_state().company_memory
    if stage is not None:
        return memory.get_companies_by_stage(stage)[:limit]
    return memory.get_top_companies(limit)


@app.get("/api/companies/{name}", response_model=CompanyKnowledge, tags=["Memory"])
async def get_company(name: str):
    company = get_state().company_memory.get_company(name)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@app.get("/api/signals/recent", response_model=List[StoredSignal], tags=["Memory"])
async def recent_signals(limit: int = Query(50, ge=1, le=1000)):
    return get_state().signal_history.get_recent(limit)


@app.get("/api/signals/trends", response_model=List[TrendResult], tags=["Memory"])
async def signal_trends(window_days: int = Query(7, ge=1, le=365)):
    """Per-category counts in the last window compared with the one before"""
    return get_state().signal_history.detect_trends(window_days)


@app.post("/api/feedback", response_model=FeedbackEntry, tags=["Memory"])
def record_feedback(request: FeedbackRequest):
    return get_state().feedback.record(request.event_id, request.feedback, request.comment)


@app.get("/api/feedback/summary", tags=["Memory"])
async def feedback_summary() -> Dict[str, int]:
    return get_state().feedback.summary()


@app.get("/api/preferences", response_model=UserPreferences, tags=["Memory"])
async def get_preferences():
    return get_state().preferences.get()


@app.put("/api/preferences", response_model=UserPreferences, tags=["Memory"])
def update_preferences(update: PreferencesUpdate):
    """Merge the given fields into the stored preferences"""
    return get_state().preferences.update(**update.model_dump(exclude_unset=True))


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(SignalMonitorError)
async def signal_monitor_exception_handler(request, exc: SignalMonitorError):
    logger.error("%s: %s", exc.code, exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc),
            "code": exc.code,
            "type": type(exc).__name__,
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
