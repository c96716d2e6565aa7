"""Shared builders for the test suite."""

from datetime import datetime, timedelta
from typing import List, Optional

from learnpath.models import CompletionCriteria, ContentItem, LearningPath, PathProgress

NOW = datetime(2026, 10, 19, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


def make_path(
    path_id: str,
    level: str = "beginner",
    topics: Optional[List[str]] = None,
    prerequisites: Optional[List[str]] = None,
    criteria: Optional[CompletionCriteria] = None,
    items: Optional[List[ContentItem]] = None,
) -> LearningPath:
    return LearningPath(
        id=path_id,
        name=path_id.upper(),
        level=level,
        topics=topics if topics is not None else ["python"],
        prerequisites=prerequisites or [],
        completion_criteria=criteria or CompletionCriteria(),
        items=items or [],
    )


def make_item(item_id: str, title: str, description: str = "", duration: int = 600, topics=None) -> ContentItem:
    return ContentItem(
        id=item_id,
        title=title,
        description=description,
        duration_seconds=duration,
        topics=topics or [],
    )


def make_progress(path_id: str, completed: int = 1, seconds: int = 600, topics=None) -> PathProgress:
    return PathProgress(
        path_id=path_id,
        completed_count=completed,
        total_count=completed,
        time_spent_seconds=seconds,
        completed_topics=topics or [],
        started_at=NOW,
        last_watched_at=NOW,
    )
