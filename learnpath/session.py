"""
Learning session: the engine object the presentation layer talks to.

A ``LearningSession`` owns the path catalog and the progress tracker for
one user session. State is loaded once at startup and saved after every
mutation through ``apply_tentative``: if the save fails, the in-memory
state is rolled back and the error propagates.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from learnpath import storage
from learnpath.catalog import PathCatalog
from learnpath.classifier import classify
from learnpath.config import EngineConfig
from learnpath.errors import StorageError
from learnpath.models import (
    ClassificationResult,
    ContentItem,
    DashboardSummary,
    LearningPath,
    PathAnalytics,
    PathProgress,
)
from learnpath.prerequisites import learning_order, missing_prerequisites
from learnpath.recommender import recommend
from learnpath.tracker import ProgressTracker
from learnpath.utils import local_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

Persist = Callable[[List[LearningPath], Dict[str, PathProgress]], None]


# =========================================================================
# Optimistic update helper
# =========================================================================


class EngineState:
    """Mutable pair of catalog and tracker that can be snapshotted."""

    def __init__(self, catalog: PathCatalog, tracker: ProgressTracker) -> None:
        self.catalog = catalog
        self.tracker = tracker

    def snapshot(self) -> Tuple[List[LearningPath], Dict[str, PathProgress]]:
        return (
            [p.model_copy(deep=True) for p in self.catalog.paths],
            {k: v.model_copy(deep=True) for k, v in self.tracker.progress.items()},
        )

    def restore(self, snap: Tuple[List[LearningPath], Dict[str, PathProgress]]) -> None:
        paths, progress = snap
        self.catalog.reset(paths)
        self.tracker.progress = dict(progress)


def apply_tentative(state: EngineState, mutate: Callable[[], T], persist: Persist) -> T:
    """Apply *mutate*, persist the result, roll back on failure.

    Returns:
        Whatever *mutate* returned.
    """
    snap = state.snapshot()
    try:
        result = mutate()
        persist(state.catalog.paths, state.tracker.progress)
    except Exception:
        state.restore(snap)
        logger.warning("Mutation rolled back.", exc_info=True)
        raise
    return result


# =========================================================================
# Session
# =========================================================================


class LearningSession:
    """Engine facade: classification, progress, analytics, recommendations.

    Args:
        catalog: Learning paths.
        progress: Existing progress keyed by path id.
        persist: Called with ``(paths, progress)`` after each mutation.
        config: Engine settings.
        clock: Device-local clock (injected in tests).
    """

    def __init__(
        self,
        catalog: PathCatalog,
        progress: Optional[Dict[str, PathProgress]] = None,
        persist: Optional[Persist] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.config = config or EngineConfig()
        self.catalog = catalog
        self.tracker = ProgressTracker(catalog.find, progress, clock=clock)
        self._state = EngineState(self.catalog, self.tracker)
        self._persist: Persist = persist or (lambda paths, progress: None)
        self._conn: Optional[sqlite3.Connection] = None

    @classmethod
    def open(
        cls,
        db_path: Optional[str] = None,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = local_now,
    ) -> "LearningSession":
        """Load state from the SQLite store, seeding an empty store."""
        config = config or EngineConfig()
        db_path = db_path or config.db_path
        storage.migrate_db(db_path)
        conn = storage.get_connection(db_path)

        try:
            paths, progress = storage.load_state(conn)
        except StorageError:
            conn.close()
            raise
        catalog = PathCatalog(paths) if paths is not None else PathCatalog.seeded()
        # Progress is lifetime-bound to its path.
        progress = {pid: p for pid, p in progress.items() if pid in catalog}

        session = cls(
            catalog, progress,
            persist=lambda pths, prog: storage.save_state(conn, pths, prog),
            config=config, clock=clock,
        )
        session._conn = conn
        if paths is None:
            storage.save_state(conn, catalog.paths, session.tracker.progress)
            logger.info("Seeded empty store with %d path(s).", len(catalog))
        return session

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "LearningSession":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _mutate(self, fn: Callable[[], T]) -> T:
        return apply_tentative(self._state, fn, self._persist)

    # ---- read queries --------------------------------------------------

    @property
    def paths(self) -> List[LearningPath]:
        return self.catalog.paths

    @property
    def progress(self) -> Dict[str, PathProgress]:
        return dict(self.tracker.progress)

    def classify(self, item: ContentItem) -> Optional[ClassificationResult]:
        return classify(item, self.catalog.paths)

    def get_aggregate_for_path(self, path_id: str) -> Optional[PathProgress]:
        return self.tracker.get_aggregate_for_path(path_id)

    def is_path_completed(self, path_id: str) -> bool:
        return self.tracker.is_path_completed(path_id)

    def analytics(self, path_id: str) -> PathAnalytics:
        return self.tracker.analytics(path_id, milestones=self.config.milestones)

    def recommendations(self, limit: Optional[int] = None) -> List[LearningPath]:
        return recommend(
            self.catalog.paths,
            self.tracker.progress,
            level_bonus=self.config.level_bonus,
            topic_weight=self.config.topic_weight,
            prerequisite_weight=self.config.prerequisite_weight,
            limit=limit,
        )

    def learning_order(self) -> List[str]:
        """Path ids ordered so prerequisites come first.

        Raises:
            PrerequisiteCycleError: if the prerequisites form a cycle.
        """
        return learning_order(self.catalog.paths)

    def missing_prerequisites(self) -> List[str]:
        return missing_prerequisites(self.catalog.paths)

    def active_paths(self) -> List[LearningPath]:
        """Paths with at least one watch event, in catalog order."""
        return [p for p in self.catalog.paths if p.id in self.tracker.progress]

    def dashboard(self) -> DashboardSummary:
        """Totals across every path with progress."""
        progress = list(self.tracker.progress.values())
        topics = set()
        for p in self.active_paths():
            topics.update(t.lower() for t in p.topics)
        return DashboardSummary(
            total_videos_watched=sum(p.completed_count for p in progress),
            total_watch_seconds=sum(p.time_spent_seconds for p in progress),
            active_paths=len(progress),
            topics_covered=len(topics),
        )

    # ---- mutations -----------------------------------------------------

    def record_watch(self, path_id: str, item: ContentItem, watched_seconds: int) -> PathProgress:
        return self._mutate(lambda: self.tracker.record_watch(path_id, item, watched_seconds))

    def watch(self, item: ContentItem, watched_seconds: int) -> Optional[PathProgress]:
        """Classify *item*, file it under its path, and record the watch.

        Returns ``None`` when the item cannot be classified and dynamic
        path creation is disabled.
        """
        def _apply() -> Optional[PathProgress]:
            result = classify(item, self.catalog.paths)
            if result is not None:
                path_id, topics = result.path_id, result.topics
            elif self.config.create_missing_paths:
                path = self.catalog.create_path_for_item(item)
                path_id, topics = path.id, list(path.topics)
            else:
                logger.info("Item %s matches no learning path; not recorded.", item.id)
                return None
            tagged = item.model_copy(update={"topics": topics})
            self.catalog.add_item(path_id, tagged)
            return self.tracker.record_watch(path_id, tagged, watched_seconds, topics=topics)

        return self._mutate(_apply)

    def add_path(self, path: LearningPath) -> LearningPath:
        return self._mutate(lambda: self.catalog.add_path(path))

    def update_path(self, path_id: str, **changes: Any) -> LearningPath:
        """Edit path metadata; editing topics prunes that path's progress."""
        def _apply() -> LearningPath:
            updated = self.catalog.update_metadata(path_id, **changes)
            if "topics" in changes:
                self.tracker.retain_topics(path_id)
            return updated

        return self._mutate(_apply)

    def delete_path(self, path_id: str) -> LearningPath:
        """Delete a path and its progress."""
        def _apply() -> LearningPath:
            removed = self.catalog.delete_path(path_id)
            self.tracker.forget(path_id)
            return removed

        return self._mutate(_apply)

    def add_item_to_path(self, path_id: str, item: ContentItem) -> LearningPath:
        return self._mutate(lambda: self.catalog.add_item(path_id, item))

    def remove_item_from_path(self, path_id: str, item_id: str) -> LearningPath:
        return self._mutate(lambda: self.catalog.remove_item(path_id, item_id))

    def mark_item_completed(self, path_id: str, item_id: str, completed: bool = True) -> PathProgress:
        return self._mutate(lambda: self.tracker.set_item_completed(path_id, item_id, completed))
