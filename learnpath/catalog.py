"""
Learning-path catalog: seed paths plus create / edit / delete operations.

Paths are held in catalog order, which is also the tie-breaking order used
by the classifier and the recommender.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from learnpath.classifier import infer_level, scan_text
from learnpath.errors import PathNotFoundError
from learnpath.models import CompletionCriteria, ContentItem, LearningPath

logger = logging.getLogger(__name__)

UNCATEGORIZED_ID = "uncategorized"

SEED_PATHS: List[LearningPath] = [
    LearningPath(
        id="ai-basics",
        name="AI Basics",
        description="Foundation concepts in artificial intelligence",
        level="beginner",
        color="bg-green-500",
        topics=["python", "machine learning", "neural networks"],
        estimated_hours=10,
        completion_criteria=CompletionCriteria(
            min_items_watched=5,
            min_time_spent_seconds=3 * 3600,
            required_topics=["python", "machine learning"],
        ),
    ),
    LearningPath(
        id="ml-projects",
        name="ML Projects",
        description="Hands-on machine learning projects",
        level="intermediate",
        color="bg-blue-500",
        prerequisites=["ai-basics"],
        topics=["tensorflow", "pytorch", "computer vision"],
        estimated_hours=20,
        completion_criteria=CompletionCriteria(
            min_items_watched=8,
            min_time_spent_seconds=6 * 3600,
        ),
    ),
    LearningPath(
        id="advanced-ai",
        name="Advanced AI",
        description="Advanced AI concepts and implementations",
        level="advanced",
        color="bg-purple-500",
        prerequisites=["ml-projects"],
        topics=["transformers", "reinforcement learning", "gans"],
        estimated_hours=30,
        completion_criteria=CompletionCriteria(
            min_items_watched=10,
            min_time_spent_seconds=10 * 3600,
        ),
    ),
]

_EDITABLE_FIELDS = frozenset({
    "name", "description", "level", "topics", "prerequisites",
    "completion_criteria", "color", "estimated_hours",
})


class PathCatalog:
    """Ordered collection of learning paths keyed by id."""

    def __init__(self, paths: Optional[Iterable[LearningPath]] = None) -> None:
        self._paths: Dict[str, LearningPath] = {}
        self.reset(paths or ())

    def reset(self, paths: Iterable[LearningPath]) -> None:
        """Replace the whole catalog with *paths*."""
        self._paths = {path.id: path for path in paths}

    @classmethod
    def seeded(cls) -> "PathCatalog":
        """Catalog holding a fresh copy of ``SEED_PATHS``."""
        return cls(p.model_copy(deep=True) for p in SEED_PATHS)

    # ---- reads ---------------------------------------------------------

    @property
    def paths(self) -> List[LearningPath]:
        return list(self._paths.values())

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path_id: object) -> bool:
        return path_id in self._paths

    def find(self, path_id: str) -> Optional[LearningPath]:
        return self._paths.get(path_id)

    def get(self, path_id: str) -> LearningPath:
        """Return the path for *path_id*.

        Raises:
            PathNotFoundError: if no such path exists.
        """
        path = self._paths.get(path_id)
        if path is None:
            raise PathNotFoundError(path_id)
        return path

    # ---- path CRUD -----------------------------------------------------

    def add_path(self, path: LearningPath) -> LearningPath:
        if path.id in self._paths:
            raise ValueError(f"learning path {path.id!r} already exists")
        self._paths[path.id] = path
        logger.info("Added path %s (%s).", path.id, path.level)
        return path

    def update_metadata(self, path_id: str, **changes: Any) -> LearningPath:
        """Edit metadata fields of a path; items are edited separately."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot edit field(s): {sorted(unknown)}")
        current = self.get(path_id)
        updated = LearningPath.model_validate({**current.model_dump(), **changes})
        self._paths[path_id] = updated
        logger.info("Updated path %s: %s", path_id, sorted(changes))
        return updated

    def delete_path(self, path_id: str) -> LearningPath:
        """Remove a path and drop it from other paths' prerequisites."""
        removed = self.get(path_id)
        del self._paths[path_id]
        for other_id, other in list(self._paths.items()):
            if path_id in other.prerequisites:
                self._paths[other_id] = other.model_copy(update={
                    "prerequisites": [p for p in other.prerequisites if p != path_id],
                })
        logger.info("Deleted path %s.", path_id)
        return removed

    # ---- items ---------------------------------------------------------

    def add_item(self, path_id: str, item: ContentItem) -> LearningPath:
        """Append *item* to the path unless an item with its id is present."""
        path = self.get(path_id)
        if any(i.id == item.id for i in path.items):
            return path
        updated = path.model_copy(update={"items": path.items + [item]})
        self._paths[path_id] = updated
        return updated

    def remove_item(self, path_id: str, item_id: str) -> LearningPath:
        path = self.get(path_id)
        updated = path.model_copy(update={
            "items": [i for i in path.items if i.id != item_id],
        })
        self._paths[path_id] = updated
        return updated

    # ---- dynamic paths -------------------------------------------------

    def create_path_for_item(self, item: ContentItem) -> LearningPath:
        """Return the catch-all path for unclassifiable items, creating it."""
        existing = self._paths.get(UNCATEGORIZED_ID)
        if existing is not None:
            return existing
        level = infer_level(scan_text(item)) or "beginner"
        path = LearningPath(
            id=UNCATEGORIZED_ID,
            name="Uncategorized",
            description="Videos that did not match any learning path",
            level=level,
            topics=[UNCATEGORIZED_ID],
        )
        return self.add_path(path)
