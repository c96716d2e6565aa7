"""
Progress tracking: per-path aggregates updated from watch events.

``ProgressTracker.record_watch`` is the single mutation point for progress
state. Everything else here is a read query or a pure helper over a
``PathProgress`` snapshot.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, Optional, Sequence

from learnpath.classifier import detect_topics, scan_text
from learnpath.errors import PathNotFoundError
from learnpath.models import (
    ContentItem,
    ItemWatch,
    LearningPath,
    Milestone,
    PathAnalytics,
    PathProgress,
)
from learnpath.utils import local_now, to_local_date

logger = logging.getLogger(__name__)

MILESTONES = (25, 50, 75, 100)


# =========================================================================
# Pure helpers
# =========================================================================


def is_completed(path: LearningPath, progress: Optional[PathProgress]) -> bool:
    """Return ``True`` when *progress* satisfies *path*'s completion criteria.

    A path with no progress record is never completed.
    """
    if progress is None:
        return False
    criteria = path.completion_criteria
    if progress.completed_count < criteria.min_items_watched:
        return False
    if progress.time_spent_seconds < criteria.min_time_spent_seconds:
        return False
    required = {t.lower() for t in criteria.required_topics}
    return required <= {t.lower() for t in progress.completed_topics}


def completion_rate(progress: Optional[PathProgress]) -> float:
    """Percentage of completed items, ``0.0`` without progress."""
    if progress is None:
        return 0.0
    return progress.completed_count / max(progress.total_count, 1) * 100


def next_milestone(rate: float, milestones: Sequence[int] = MILESTONES) -> int:
    """Smallest milestone strictly above *rate*; 100 when none is left."""
    return next((m for m in milestones if m > rate), 100)


def streak_days(watch_dates: Iterable[str], today: date) -> int:
    """Count consecutive days with a watch event, walking back from *today*.

    Stops at the first day without a watch event.
    """
    days = set(watch_dates)
    streak = 0
    cursor = today
    while cursor.isoformat() in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def topics_progress(path: LearningPath, progress: Optional[PathProgress]) -> Dict[str, float]:
    """Percent of the path's items per topic that are completed."""
    watches = progress.item_watches if progress is not None else {}
    result: Dict[str, float] = {}
    for topic in path.topics:
        key = topic.lower()
        tagged = []
        for item in path.items:
            watch = watches.get(item.id)
            item_topics = watch.topics if watch and watch.topics else item.topics
            if key in {t.lower() for t in item_topics}:
                tagged.append(bool(watch and watch.completed))
        result[topic] = (sum(tagged) / len(tagged) * 100) if tagged else 0.0
    return result


# =========================================================================
# Tracker
# =========================================================================


class ProgressTracker:
    """Owns the ``PathProgress`` aggregate of every path.

    Args:
        paths: Lookup used to resolve path ids (usually
               ``PathCatalog.find``).
        progress: Previously persisted progress, keyed by path id.
        clock: Returns the current device-local time.
    """

    def __init__(
        self,
        paths: Callable[[str], Optional[LearningPath]],
        progress: Optional[Dict[str, PathProgress]] = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._find_path = paths
        self.progress: Dict[str, PathProgress] = dict(progress or {})
        self._clock = clock

    # ---- lookups -------------------------------------------------------

    def _path(self, path_id: str) -> LearningPath:
        path = self._find_path(path_id)
        if path is None:
            raise PathNotFoundError(path_id)
        return path

    def get_aggregate_for_path(self, path_id: str) -> Optional[PathProgress]:
        """Return the progress snapshot for *path_id* (``None`` if unwatched)."""
        self._path(path_id)
        current = self.progress.get(path_id)
        return current.model_copy(deep=True) if current is not None else None

    # ---- mutation ------------------------------------------------------

    def record_watch(
        self,
        path_id: str,
        item: ContentItem,
        watched_seconds: int,
        topics: Optional[Iterable[str]] = None,
    ) -> PathProgress:
        """Apply one watch event and return the updated snapshot.

        Every call counts as one completed item, including re-watches of
        the same item. Topics default to the item's own topics, then to the
        path topics found in its text; topics outside the path's taxonomy
        are ignored.
        """
        if watched_seconds < 0:
            raise ValueError(f"watched_seconds must be >= 0, got {watched_seconds}")
        path = self._path(path_id)
        now = self._clock()

        current = self.progress.get(path_id)
        if current is None:
            current = PathProgress(path_id=path_id, started_at=now, last_watched_at=now)
            logger.info("Started progress for path %s.", path_id)
        updated = current.model_copy(deep=True)

        path_topics = {t.lower(): t for t in path.topics}
        if topics is not None:
            incoming = list(topics)
        else:
            incoming = list(item.topics) or detect_topics(scan_text(item), [path])
        new_topics = [path_topics[t.lower()] for t in incoming if t.lower() in path_topics]

        updated.completed_count += 1
        updated.total_count = max(updated.total_count, updated.completed_count)
        updated.time_spent_seconds += watched_seconds
        for topic in new_topics:
            if topic not in updated.completed_topics:
                updated.completed_topics.append(topic)
        updated.last_watched_at = now

        watch = updated.item_watches.get(item.id) or ItemWatch(item_id=item.id)
        watch.time_spent_seconds += watched_seconds
        watch.last_watched_at = now
        watch.completed = True
        for topic in new_topics:
            if topic not in watch.topics:
                watch.topics.append(topic)
        updated.item_watches[item.id] = watch

        day = to_local_date(now)
        if day not in updated.watch_dates:
            updated.watch_dates = sorted(updated.watch_dates + [day])

        self.progress[path_id] = updated
        logger.info(
            "Recorded watch path=%s item=%s seconds=%d completed=%d/%d",
            path_id, item.id, watched_seconds,
            updated.completed_count, updated.total_count,
        )
        return updated.model_copy(deep=True)

    def set_item_completed(self, path_id: str, item_id: str, completed: bool) -> PathProgress:
        """Toggle the completed flag of one item's annotation.

        Aggregate counts are left untouched; they only move on watch events.
        """
        self._path(path_id)
        current = self.progress.get(path_id)
        if current is None:
            now = self._clock()
            current = PathProgress(path_id=path_id, started_at=now, last_watched_at=now)
        updated = current.model_copy(deep=True)
        watch = updated.item_watches.get(item_id) or ItemWatch(item_id=item_id)
        watch.completed = completed
        updated.item_watches[item_id] = watch
        self.progress[path_id] = updated
        return updated.model_copy(deep=True)

    def retain_topics(self, path_id: str) -> Optional[PathProgress]:
        """Drop progress topics the path no longer lists.

        Matching is case-insensitive. Counts and times are left untouched.
        """
        path = self._path(path_id)
        current = self.progress.get(path_id)
        if current is None:
            return None
        keep = {t.lower() for t in path.topics}
        updated = current.model_copy(deep=True)
        updated.completed_topics = [t for t in updated.completed_topics if t.lower() in keep]
        for watch in updated.item_watches.values():
            watch.topics = [t for t in watch.topics if t.lower() in keep]
        dropped = len(current.completed_topics) - len(updated.completed_topics)
        if dropped:
            logger.info("Dropped %d stale topic(s) from progress of %s.", dropped, path_id)
        self.progress[path_id] = updated
        return updated.model_copy(deep=True)

    def forget(self, path_id: str) -> None:
        """Drop the progress of a deleted path."""
        self.progress.pop(path_id, None)

    # ---- queries -------------------------------------------------------

    def is_path_completed(self, path_id: str) -> bool:
        return is_completed(self._path(path_id), self.progress.get(path_id))

    def analytics(self, path_id: str, milestones: Sequence[int] = MILESTONES) -> PathAnalytics:
        """Compute derived analytics for *path_id*."""
        path = self._path(path_id)
        progress = self.progress.get(path_id)
        rate = completion_rate(progress)
        milestone = Milestone(value=next_milestone(rate, milestones), progress=rate)

        if progress is None:
            return PathAnalytics(
                path_id=path_id,
                topics_progress=topics_progress(path, None),
                next_milestone=milestone,
            )

        now = self._clock()
        today = to_local_date(now)
        spent_today = sum(
            w.time_spent_seconds
            for w in progress.item_watches.values()
            if w.last_watched_at is not None and to_local_date(w.last_watched_at) == today
        )

        per_item = (
            progress.time_spent_seconds / max(progress.completed_count, 1)
            if progress.time_spent_seconds
            else 0.0
        )
        remaining = max(progress.total_count - progress.completed_count, 0)

        return PathAnalytics(
            path_id=path_id,
            completion_rate=rate,
            time_spent_today=spent_today,
            streak_days=streak_days(progress.watch_dates, date.fromisoformat(today)),
            topics_progress=topics_progress(path, progress),
            estimated_time_left=per_item * remaining,
            next_milestone=milestone,
        )
