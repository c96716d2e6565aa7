"""
Pydantic models for the learning-path engine.

Content: watchable items fetched from the video search API.
Paths: learning paths, their completion criteria and the classifier output.
Progress: per-path aggregates, per-item watch annotations and analytics.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =========================================================================
# Literals
# =========================================================================

Level = Literal["beginner", "intermediate", "advanced"]
LEVELS = ("beginner", "intermediate", "advanced")

SortOrder = Literal["relevance", "date", "viewCount"]
DurationFilter = Literal["all", "short", "medium", "long"]


# =========================================================================
# Content
# =========================================================================


class ContentItem(BaseModel):
    """A watchable video. Immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    duration_seconds: int = Field(default=0, ge=0)
    topics: List[str] = Field(default_factory=list)
    channel_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_at: Optional[datetime] = None
    view_count: int = 0


# =========================================================================
# Paths
# =========================================================================


class CompletionCriteria(BaseModel):
    """Thresholds a path's progress must meet to count as completed.

    Zero / empty values make the matching clause trivially satisfied.
    """

    min_items_watched: int = 0
    min_time_spent_seconds: int = 0
    required_topics: List[str] = Field(default_factory=list)


class LearningPath(BaseModel):
    """Named, ordered collection of content items."""

    id: str
    name: str
    description: str = ""
    level: Level = "beginner"
    topics: List[str] = Field(default_factory=list)
    items: List[ContentItem] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)
    completion_criteria: CompletionCriteria = Field(default_factory=CompletionCriteria)
    color: str = "bg-slate-500"
    estimated_hours: float = 0.0

    @field_validator("topics", "prerequisites")
    @classmethod
    def _dedupe(cls, values: List[str]) -> List[str]:
        """Keep first occurrence of each entry (ordered set semantics)."""
        seen: Dict[str, None] = {}
        for v in values:
            seen.setdefault(v, None)
        return list(seen)


class ClassificationResult(BaseModel):
    """Outcome of classifying one content item."""

    path_id: str
    topics: List[str]
    required_watch_seconds: int
    level: Optional[Level] = None


# =========================================================================
# Progress
# =========================================================================


class ItemWatch(BaseModel):
    """Derived watch annotation for one item inside one path."""

    item_id: str
    time_spent_seconds: int = 0
    last_watched_at: Optional[datetime] = None
    completed: bool = False
    topics: List[str] = Field(default_factory=list)


class PathProgress(BaseModel):
    """Aggregate watch/completion state for one learning path."""

    path_id: str
    completed_count: int = 0
    total_count: int = 0
    time_spent_seconds: int = 0
    completed_topics: List[str] = Field(default_factory=list)
    started_at: datetime
    last_watched_at: datetime
    item_watches: Dict[str, ItemWatch] = Field(default_factory=dict)
    watch_dates: List[str] = Field(default_factory=list)


class Milestone(BaseModel):
    type: str = "completion"
    value: int = 25
    progress: float = 0.0


class PathAnalytics(BaseModel):
    """Derived analytics for one path."""

    path_id: str
    completion_rate: float = 0.0
    time_spent_today: int = 0
    streak_days: int = 0
    topics_progress: Dict[str, float] = Field(default_factory=dict)
    estimated_time_left: float = 0.0
    next_milestone: Milestone = Field(default_factory=Milestone)


class DashboardSummary(BaseModel):
    """Totals shown on the dashboard landing page."""

    total_videos_watched: int = 0
    total_watch_seconds: int = 0
    active_paths: int = 0
    topics_covered: int = 0


# =========================================================================
# Video search
# =========================================================================


class FeedFilters(BaseModel):
    """Feed search filters."""

    search: str = "AI coding practices"
    category: str = "coding tutorials"
    sort_by: SortOrder = "relevance"
    duration: DurationFilter = "all"
    level: Literal["beginner", "intermediate", "advanced", "all"] = "all"


class SearchPage(BaseModel):
    """One page of video search results."""

    videos: List[ContentItem] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    total_results: int = 0
    from_mock: bool = False
