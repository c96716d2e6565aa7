"""
Rule-based classifier mapping a content item to its best-fit learning path.

The rules are data:

- ``LEVEL_RULES``: ordered ``(level, keywords)`` groups; the first group
  with a keyword present in the item text decides the level.
- ``TOPIC_ALIASES``: extra keyword → topic mappings. An alias only
  counts when its topic belongs to one of the candidate paths.

``classify`` is a pure function of its inputs: no state, no I/O.
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from learnpath.models import ClassificationResult, ContentItem, LearningPath, Level

logger = logging.getLogger(__name__)

# =========================================================================
# Rule tables
# =========================================================================

LEVEL_RULES: Tuple[Tuple[Level, Tuple[str, ...]], ...] = (
    ("advanced", ("advanced", "expert")),
    ("intermediate", ("intermediate", "project", "implementation")),
    ("beginner", ("beginner", "basics", "introduction")),
)

TOPIC_ALIASES: Dict[str, str] = {
    "deep learning": "neural networks",
    "torch.nn": "pytorch",
    "keras": "tensorflow",
    "image classification": "computer vision",
    "object detection": "computer vision",
    "generative adversarial": "gans",
    "attention is all you need": "transformers",
    "q-learning": "reinforcement learning",
}


# =========================================================================
# Text signals
# =========================================================================


def scan_text(item: ContentItem) -> str:
    """Return the lower-cased text scanned for keywords."""
    return f"{item.title.lower()} {item.description.lower()}"


def detect_topics(
    text: str,
    paths: Sequence[LearningPath],
    aliases: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """Return the path topics found in *text*, in first-seen path order.

    Matching is case-insensitive substring containment. Topics keep the
    spelling used by the first path that declares them.
    """
    if aliases is None:
        aliases = TOPIC_ALIASES

    text = text.lower()
    aliased = {topic.lower() for kw, topic in aliases.items() if kw in text}

    found: Dict[str, str] = {}  # lower → original spelling
    for path in paths:
        for topic in path.topics:
            key = topic.lower()
            if key in found:
                continue
            if key in text or key in aliased:
                found[key] = topic
    return list(found.values())


def infer_level(text: str) -> Optional[Level]:
    """Infer the difficulty level from keyword cues, or ``None``."""
    text = text.lower()
    for level, keywords in LEVEL_RULES:
        if any(kw in text for kw in keywords):
            return level
    return None


# =========================================================================
# Classification
# =========================================================================


def _overlap(path: LearningPath, detected: set) -> int:
    return sum(1 for t in path.topics if t.lower() in detected)


def classify(
    item: ContentItem,
    paths: Sequence[LearningPath],
    aliases: Optional[Mapping[str, str]] = None,
) -> Optional[ClassificationResult]:
    """Map *item* to the best-matching path in *paths*.

    Args:
        item: Content item with a non-empty title.
        paths: Candidate paths, in priority order for tie-breaking.
        aliases: Override for ``TOPIC_ALIASES``.

    Returns:
        A ``ClassificationResult``, or ``None`` when no candidate shares a
        topic with the item text.
    """
    text = scan_text(item)
    topics = detect_topics(text, paths, aliases)
    if not topics:
        logger.debug("No known topics in item %s (%r).", item.id, item.title)
        return None

    detected = {t.lower() for t in topics}
    level = infer_level(text)

    overlapping = [p for p in paths if _overlap(p, detected) > 0]
    candidates = overlapping
    if level is not None:
        same_level = [p for p in overlapping if p.level == level]
        if same_level:
            candidates = same_level
    if not candidates:
        return None

    # max() keeps the first maximal element, i.e. input order on ties.
    best = max(candidates, key=lambda p: _overlap(p, detected))

    return ClassificationResult(
        path_id=best.id,
        topics=topics,
        required_watch_seconds=math.ceil(item.duration_seconds),
        level=level,
    )
