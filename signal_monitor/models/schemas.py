"""
Pydantic schemas for the ICP Signal Monitor
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class SourcePlatform(str, Enum):
    """Platform a raw event was collected from"""
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    REDDIT = "reddit"
    GITHUB = "github"
    RSS = "rss"
    HACKERNEWS = "hackernews"


class SignalCategory(str, Enum):
    """Closed set of buying-signal categories (order is significant)"""
    PLANNING_VISIBILITY = "planning_visibility"
    INVENTORY_OPTIMIZATION = "inventory_optimization"
    PROCUREMENT_SOURCING = "procurement_sourcing"
    TMS_LOGISTICS = "tms_logistics"
    WMS_WAREHOUSE = "wms_warehouse"
    S2P_TRANSFORMATION = "s2p_transformation"
    ERP_MIGRATION = "erp_migration"
    SUPPLIER_RISK = "supplier_risk"
    NETWORK_DESIGN = "network_design"
    ANALYTICS_REPORTING = "analytics_reporting"
    GENERAL_OPERATIONS = "general_operations"


class SignalStrength(str, Enum):
    """Coarse signal strength bucket"""
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class BuyingStage(str, Enum):
    """Buying funnel position, ordered from earliest to latest"""
    AWARENESS = "awareness"
    RESEARCH = "research"
    EVALUATION = "evaluation"
    DECISION = "decision"
    IMPLEMENTATION = "implementation"

    @property
    def rank(self) -> int:
        return list(BuyingStage).index(self)


class FeedbackType(str, Enum):
    """User verdict on a delivered signal"""
    RELEVANT = "relevant"
    IRRELEVANT = "irrelevant"
    PARTIALLY_RELEVANT = "partially_relevant"


class OutputFormat(str, Enum):
    DETAILED = "detailed"
    SUMMARY = "summary"
    MINIMAL = "minimal"


class Trend(str, Enum):
    UP = "up"
    STABLE = "stable"
    DOWN = "down"


# =============================================================================
# INPUT SCHEMAS
# =============================================================================

class RawEvent(BaseModel):
    """A unit of collected content, produced by a collector.

    Accepts both snake_case and camelCase keys so that event files written by
    other tools can be loaded directly.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    source: SourcePlatform
    content_type: str
    url: str
    title: Optional[str] = None
    body: str
    author: Optional[str] = None
    author_role: Optional[str] = None
    company_hint: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    collected_at: datetime = Field(default_factory=utcnow)
    published_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        """Lower-cased title + body used by the keyword matchers"""
        return f"{self.title or ''} {self.body}".lower()


# =============================================================================
# STAGE RESULT SCHEMAS
# =============================================================================

class CompanyMatch(BaseModel):
    """Result of ICP matching for a single event"""
    company_name: str
    match_score: float = Field(ge=0, le=1)
    matched_criteria: List[str] = Field(default_factory=list)
    unmatched_criteria: List[str] = Field(default_factory=list)


class SignalClassification(BaseModel):
    """Result of buying-signal classification"""
    is_signal: bool
    confidence: float = Field(ge=0, le=1)
    category: SignalCategory
    strength: SignalStrength
    buying_stage: BuyingStage
    reasoning: str = ""
    keywords: List[str] = Field(default_factory=list)
    suggested_actions: List[str] = Field(default_factory=list)


# =============================================================================
# OUTPUT SCHEMAS
# =============================================================================

class EventSource(BaseModel):
    """Where a signal came from"""
    platform: SourcePlatform
    content_type: str
    url: str
    author: Optional[str] = None
    author_role: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _require_absolute_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid URL: {value!r}")
        return value


class RawContent(BaseModel):
    """Snapshot of the collected content"""
    title: Optional[str] = None
    body: str
    published_at: Optional[datetime] = None


class PipelineInfo(BaseModel):
    """Pipeline provenance"""
    collected_at: datetime
    processed_at: datetime
    pipeline_version: str


class BuyingSignalEvent(BaseModel):
    """The persisted unit of pipeline output. Written once, never mutated."""
    event_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    source: EventSource
    company: CompanyMatch
    signal: SignalClassification
    raw_content: RawContent
    pipeline: PipelineInfo


# =============================================================================
# MEMORY SCHEMAS
# =============================================================================

class CompanyKnowledge(BaseModel):
    """Accumulated per-company knowledge"""
    company_name: str
    aliases: List[str] = Field(default_factory=list)
    signal_count: int = 0
    categories: Dict[str, int] = Field(default_factory=dict)
    latest_buying_stage: Optional[BuyingStage] = None
    first_seen_at: datetime = Field(default_factory=utcnow)
    last_seen_at: datetime = Field(default_factory=utcnow)
    notes: List[str] = Field(default_factory=list)
    signal_ids: List[str] = Field(default_factory=list)

    def matches_name(self, name: str) -> bool:
        """Case-insensitive match against the canonical name or any alias"""
        needle = name.lower()
        if self.company_name.lower() == needle:
            return True
        return any(alias.lower() == needle for alias in self.aliases)


class StoredSignal(BaseModel):
    """Denormalized signal-history entry"""
    event_id: str
    company_name: str
    category: SignalCategory
    strength: SignalStrength
    confidence: float
    buying_stage: BuyingStage
    source: SourcePlatform
    url: str
    title: Optional[str] = None
    body_hash: str
    timestamp: datetime


class FeedbackEntry(BaseModel):
    """User feedback on a delivered signal"""
    event_id: str
    feedback: FeedbackType
    comment: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class UserPreferences(BaseModel):
    """Persistent user preferences"""
    focus_industries: Optional[List[str]] = None
    focus_companies: Optional[List[str]] = None
    min_confidence: Optional[float] = Field(default=None, ge=0, le=1)
    preferred_sources: Optional[List[SourcePlatform]] = None
    signal_categories: Optional[List[SignalCategory]] = None
    output_format: Optional[OutputFormat] = None
    updated_at: datetime = Field(default_factory=utcnow)


class TrendResult(BaseModel):
    """Category trend between the recent and the previous window"""
    category: SignalCategory
    count: int
    trend: Trend


# =============================================================================
# PIPELINE RESULT
# =============================================================================

class PipelineResult(BaseModel):
    """Statistics for one pipeline run"""
    run_id: str
    started_at: datetime
    completed_at: datetime
    total_collected: int = 0
    total_matched: int = 0
    total_signals: int = 0
    total_noise: int = 0
    output_file: Optional[str] = None
    events_by_source: Dict[str, int] = Field(default_factory=dict)
    events_by_category: Dict[str, int] = Field(default_factory=dict)
    failed_collectors: List[str] = Field(default_factory=list)
