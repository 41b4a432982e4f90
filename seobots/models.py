"""Pydantic models for the SEO bots analyzer."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union
import uuid

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Category(str, Enum):
    """The six fixed analysis dimensions."""
    TECHNICAL = "technical"
    CONTENT = "content"
    PERFORMANCE = "performance"
    MOBILE = "mobile"
    SECURITY = "security"
    ACCESSIBILITY = "accessibility"


# Bot slot i belongs to CATEGORIES[i]
CATEGORIES = tuple(Category)


class BotStatus(str, Enum):
    """Lifecycle of a single analyzer bot."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class Severity(str, Enum):
    """Issue criticality level."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CategoryStatus(str, Enum):
    """Qualitative bucket derived from a category score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    POOR = "poor"


class Effort(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class JobStatus(str, Enum):
    """Status of an analysis job in the service layer."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def status_from_score(score: int) -> CategoryStatus:
    """Map a 0-100 score to its status bucket."""
    if score >= 80:
        return CategoryStatus.EXCELLENT
    if score >= 60:
        return CategoryStatus.GOOD
    if score >= 40:
        return CategoryStatus.WARNING
    return CategoryStatus.POOR


class ProxyEndpoint(BaseModel):
    """A proxy the fetcher falls back to when a direct request fails."""
    prefix: str
    json_envelope: bool = False  # body is {"contents": ..., "status": {"http_code": ...}}


class BotState(BaseModel):
    """Progress record of one analyzer bot."""
    name: str
    description: str
    icon: str = ""
    status: BotStatus = BotStatus.IDLE
    progress: int = Field(default=0, ge=0, le=100)
    findings: int = Field(default=0, ge=0)

    @property
    def is_terminal(self) -> bool:
        return self.status in (BotStatus.COMPLETED, BotStatus.ERROR)


class Issue(BaseModel):
    """A single problem found by an analyzer."""
    id: str
    severity: Severity
    title: str
    description: str
    recommendation: str
    affected_pages: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class CategoryReport(BaseModel):
    """Scored result of one category analyzer."""
    score: int = Field(ge=0, le=100)
    status: CategoryStatus
    issues: List[Issue] = Field(default_factory=list)
    positives: List[str] = Field(default_factory=list)
    metrics: Dict[str, Union[int, str]] = Field(default_factory=dict)

    class Config:
        frozen = True


class Recommendation(BaseModel):
    """Actionable item derived from exactly one issue."""
    id: str
    category: str
    priority: Severity
    title: str
    description: str
    impact: str
    effort: Effort
    steps: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class AnalysisMetadata(BaseModel):
    crawled_pages: int = Field(default=1, ge=1)
    total_links: int = 0
    analysis_duration: int = 0
    last_modified: datetime = Field(default_factory=utcnow)

    class Config:
        frozen = True


class SiteAnalysis(BaseModel):
    """Final artifact of an analysis run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    url: str
    timestamp: datetime = Field(default_factory=utcnow)
    overall_score: int = Field(ge=0, le=100)
    categories: Dict[Category, CategoryReport]
    recommendations: List[Recommendation] = Field(default_factory=list)
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)

    class Config:
        frozen = True

    @field_validator("categories")
    @classmethod
    def _all_categories_present(cls, value: Dict[Category, CategoryReport]) -> Dict[Category, CategoryReport]:
        missing = [c.value for c in CATEGORIES if c not in value]
        if missing:
            raise ValueError(f"missing category reports: {', '.join(missing)}")
        return value


class PageData(BaseModel):
    """A document retrieved by the fetcher."""
    url: str
    final_url: Optional[str] = None
    status_code: int = 200
    text: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    elapsed: float = 0.0  # seconds, including fallbacks and retries
    proxy: Optional[str] = None  # proxy prefix used, None for a direct fetch

    # Cached parsed HTML (not serialized)
    _soup_cache: Optional[BeautifulSoup] = None

    @property
    def size_bytes(self) -> int:
        return len(self.text.encode("utf-8"))

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive response header lookup."""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    def get_soup(self) -> BeautifulSoup:
        """Get cached BeautifulSoup object or parse the text on first use."""
        if self._soup_cache is None:
            self._soup_cache = BeautifulSoup(self.text, "lxml")
        return self._soup_cache


class AnalyzeRequest(BaseModel):
    """Request to start a new analysis."""
    url: str


class ProgressEvent(BaseModel):
    """SSE progress event carrying the full bot snapshot."""
    status: JobStatus
    bots: List[BotState] = Field(default_factory=list)
    message: str = ""
    overall_score: Optional[int] = None


class AnalysisJob(BaseModel):
    """In-memory record of a running or finished analysis."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    url: str
    status: JobStatus = JobStatus.PENDING
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    bots: List[BotState] = Field(default_factory=list)
    analysis: Optional[SiteAnalysis] = None
    error_message: Optional[str] = None
