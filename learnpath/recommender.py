"""
Recommender: rank not-yet-completed learning paths.

Eligibility:
- the path is not completed yet;
- every prerequisite is a completed path (no prerequisites = eligible).

Score = level-progression bonus
      + ``topic_weight`` per topic shared with any completed path
      + ``prerequisite_weight`` per completed prerequisite.

The level bonus goes to beginner paths while nothing is completed, to
intermediate paths once a beginner path is completed, and to advanced
paths once an intermediate path is completed.

The catch-all ``uncategorized`` path is never scored and never counts as
completed.
"""

import logging
from typing import List, Mapping, Optional, Sequence, Set, Tuple

from learnpath.catalog import UNCATEGORIZED_ID
from learnpath.models import LearningPath, PathProgress
from learnpath.prerequisites import find_cycles
from learnpath.tracker import is_completed

logger = logging.getLogger(__name__)

LEVEL_BONUS = 2.0
TOPIC_WEIGHT = 0.5
PREREQUISITE_WEIGHT = 1.0

# level completed -> level that earns the bonus
_NEXT_LEVEL = {"beginner": "intermediate", "intermediate": "advanced"}


def completed_path_ids(
    paths: Sequence[LearningPath],
    progress_by_path: Mapping[str, PathProgress],
) -> Set[str]:
    return {
        p.id for p in paths
        if p.id != UNCATEGORIZED_ID and is_completed(p, progress_by_path.get(p.id))
    }


def _level_bonus(path: LearningPath, completed: Sequence[LearningPath], bonus: float) -> float:
    if not completed:
        return bonus if path.level == "beginner" else 0.0
    boosted = {_NEXT_LEVEL.get(p.level) for p in completed}
    return bonus if path.level in boosted else 0.0


def score_paths(
    paths: Sequence[LearningPath],
    progress_by_path: Mapping[str, PathProgress],
    level_bonus: float = LEVEL_BONUS,
    topic_weight: float = TOPIC_WEIGHT,
    prerequisite_weight: float = PREREQUISITE_WEIGHT,
) -> List[Tuple[LearningPath, float]]:
    """Return ``(path, score)`` for every eligible path, in input order."""
    done_ids = completed_path_ids(paths, progress_by_path)
    done = [p for p in paths if p.id in done_ids]
    done_topics = {t.lower() for p in done for t in p.topics}

    scored: List[Tuple[LearningPath, float]] = []
    for path in paths:
        if path.id in done_ids or path.id == UNCATEGORIZED_ID:
            continue
        if not set(path.prerequisites) <= done_ids:
            continue

        score = _level_bonus(path, done, level_bonus)
        score += topic_weight * sum(1 for t in path.topics if t.lower() in done_topics)
        score += prerequisite_weight * sum(1 for p in path.prerequisites if p in done_ids)
        scored.append((path, score))
    return scored


def recommend(
    paths: Sequence[LearningPath],
    progress_by_path: Mapping[str, PathProgress],
    level_bonus: float = LEVEL_BONUS,
    topic_weight: float = TOPIC_WEIGHT,
    prerequisite_weight: float = PREREQUISITE_WEIGHT,
    limit: Optional[int] = None,
) -> List[LearningPath]:
    """Eligible paths sorted by descending score; ties keep input order."""
    cycles = find_cycles(paths)
    if cycles:
        logger.warning(
            "Prerequisite cycle(s) make these paths unrecommendable: %s",
            cycles,
        )

    scored = score_paths(
        paths, progress_by_path,
        level_bonus=level_bonus,
        topic_weight=topic_weight,
        prerequisite_weight=prerequisite_weight,
    )
    ranked = [p for p, _ in sorted(scored, key=lambda ps: ps[1], reverse=True)]
    logger.debug("Recommendation scores: %s", {p.id: s for p, s in scored})
    return ranked if limit is None else ranked[:limit]
