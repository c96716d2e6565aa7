"""
pytest suite for the recommender and the prerequisite graph.
"""

import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from learnpath.catalog import SEED_PATHS, UNCATEGORIZED_ID
from learnpath.errors import PrerequisiteCycleError
from learnpath.models import CompletionCriteria
from learnpath.prerequisites import (
    build_prerequisite_graph,
    find_cycles,
    learning_order,
    missing_prerequisites,
    validate_prerequisites,
)
from learnpath.recommender import completed_path_ids, recommend, score_paths
from helpers import make_path, make_progress

ONE_ITEM = CompletionCriteria(min_items_watched=1)


def _ids(paths):
    return [p.id for p in paths]


# =========================================================================
# Recommendation
# =========================================================================


class TestRecommend:

    def test_prerequisites_gate_eligibility(self):
        paths = [
            make_path("p1", "beginner", ["python"], criteria=ONE_ITEM),
            make_path("p2", "intermediate", ["pandas"], prerequisites=["p1"], criteria=ONE_ITEM),
            make_path("p3", "intermediate", ["numpy"], prerequisites=["p_missing"], criteria=ONE_ITEM),
        ]
        progress = {"p1": make_progress("p1", completed=1)}

        result = _ids(recommend(paths, progress))
        assert "p2" in result
        assert "p3" not in result
        assert "p1" not in result

    def test_beginner_first_when_nothing_completed(self):
        paths = [
            make_path("adv", "advanced", ["rust"], criteria=ONE_ITEM),
            make_path("beg", "beginner", ["python"], criteria=ONE_ITEM),
        ]
        assert _ids(recommend(paths, {})) == ["beg", "adv"]

    def test_ties_keep_input_order(self):
        paths = [
            make_path("b1", "beginner", ["python"], criteria=ONE_ITEM),
            make_path("b2", "beginner", ["go"], criteria=ONE_ITEM),
            make_path("b3", "beginner", ["sql"], criteria=ONE_ITEM),
        ]
        assert _ids(recommend(paths, {})) == ["b1", "b2", "b3"]

    def test_topic_continuity_and_prerequisites_add_score(self):
        paths = [
            make_path("p1", "beginner", ["python"], criteria=ONE_ITEM),
            make_path("go", "intermediate", ["go"], criteria=ONE_ITEM),
            make_path("py-free", "intermediate", ["python"], criteria=ONE_ITEM),
            make_path("py-next", "intermediate", ["python"], prerequisites=["p1"], criteria=ONE_ITEM),
        ]
        progress = {"p1": make_progress("p1")}

        scores = {p.id: s for p, s in score_paths(paths, progress)}
        assert scores == {"go": 2.0, "py-free": 2.5, "py-next": 3.5}
        assert _ids(recommend(paths, progress)) == ["py-next", "py-free", "go"]

    def test_advanced_boosted_after_intermediate(self):
        paths = [
            make_path("mid", "intermediate", ["pytorch"], criteria=ONE_ITEM),
            make_path("beg", "beginner", ["python"], criteria=ONE_ITEM),
            make_path("adv", "advanced", ["transformers"], criteria=ONE_ITEM),
        ]
        progress = {"mid": make_progress("mid")}
        assert _ids(recommend(paths, progress)) == ["adv", "beg"]

    def test_completed_paths_excluded(self):
        paths = [make_path("p1", criteria=ONE_ITEM), make_path("p2", criteria=ONE_ITEM)]
        progress = {"p1": make_progress("p1"), "p2": make_progress("p2")}
        assert completed_path_ids(paths, progress) == {"p1", "p2"}
        assert recommend(paths, progress) == []

    def test_catch_all_path_ignored(self):
        paths = [
            make_path("beg", "beginner", ["pandas"], criteria=ONE_ITEM),
            make_path("adv", "advanced", ["rust"], criteria=ONE_ITEM),
        ]
        catch_all = make_path(UNCATEGORIZED_ID, "intermediate", [UNCATEGORIZED_ID])
        progress = {UNCATEGORIZED_ID: make_progress(UNCATEGORIZED_ID)}

        assert completed_path_ids(paths + [catch_all], progress) == set()
        assert score_paths(paths + [catch_all], progress) == score_paths(paths, {})
        assert _ids(recommend(paths + [catch_all], progress)) == ["beg", "adv"]

    def test_limit(self):
        paths = [make_path(f"b{i}", criteria=ONE_ITEM) for i in range(5)]
        assert _ids(recommend(paths, {}, limit=2)) == ["b0", "b1"]

    def test_cycle_logged_and_unrecommendable(self, caplog):
        paths = [
            make_path("a", prerequisites=["b"], criteria=ONE_ITEM),
            make_path("b", prerequisites=["a"], criteria=ONE_ITEM),
            make_path("c", criteria=ONE_ITEM),
        ]
        with caplog.at_level(logging.WARNING, logger="learnpath.recommender"):
            result = recommend(paths, {})
        assert _ids(result) == ["c"]
        assert "cycle" in caplog.text


# =========================================================================
# Prerequisite graph
# =========================================================================


class TestPrerequisiteGraph:

    def test_seed_learning_order(self):
        assert learning_order(SEED_PATHS) == ["ai-basics", "ml-projects", "advanced-ai"]

    def test_learning_order_puts_prerequisites_first(self):
        paths = [
            make_path("needs-z", prerequisites=["z"]),
            make_path("z"),
            make_path("a"),
        ]
        assert learning_order(paths) == ["z", "needs-z", "a"]

    def test_missing_prerequisite_nodes(self):
        paths = [make_path("p3", prerequisites=["p_missing"])]
        G = build_prerequisite_graph(paths)
        assert G.has_edge("p_missing", "p3")
        assert missing_prerequisites(paths) == ["p_missing"]
        assert learning_order(paths) == ["p3"]

    def test_cycle_detection(self):
        paths = [
            make_path("a", prerequisites=["b"]),
            make_path("b", prerequisites=["a"]),
        ]
        assert validate_prerequisites(paths) is False
        assert sorted(find_cycles(paths)[0]) == ["a", "b"]
        with pytest.raises(PrerequisiteCycleError) as excinfo:
            learning_order(paths)
        assert excinfo.value.cycles

    def test_acyclic(self):
        assert validate_prerequisites(SEED_PATHS) is True
        assert find_cycles(SEED_PATHS) == []
