"""
pytest suite for the path diagram graph and its layout.
"""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from learnpath.diagram import (
    NODE_HEIGHT,
    NODE_WIDTH,
    RANK_SEP,
    build_path_graph,
    layout,
    to_node_link,
)
from learnpath.models import ItemWatch
from helpers import make_item, make_path, make_progress


@pytest.fixture()
def path():
    return make_path(
        "data",
        topics=["python", "pandas"],
        items=[
            make_item("i1", "Lists", topics=["python"]),
            make_item("i2", "DataFrames", topics=["python", "pandas"]),
            make_item("i3", "Misc"),
        ],
    )


class TestBuildGraph:

    def test_nodes_and_edges(self, path):
        G = build_path_graph(path)
        assert G.number_of_nodes() == 6
        assert set(G.edges()) == {
            ("data", "topic-0"),
            ("data", "topic-1"),
            ("topic-0", "i1"),
            ("topic-0", "i2"),
            ("topic-1", "i2"),
        }
        assert G.nodes["topic-1"]["label"] == "pandas"
        assert G.nodes["i1"]["kind"] == "video"

    def test_progress_annotations(self, path):
        progress = make_progress("data")
        progress.item_watches["i3"] = ItemWatch(item_id="i3", completed=True, topics=["pandas"])
        G = build_path_graph(path, progress)
        assert G.nodes["i3"]["completed"] is True
        assert G.has_edge("topic-1", "i3")


class TestLayout:

    def test_top_to_bottom_ranks(self, path):
        pos = layout(build_path_graph(path))
        step = NODE_HEIGHT + RANK_SEP
        assert pos["data"] == (0, 0)
        assert {pos["topic-0"][1], pos["topic-1"][1]} == {step}
        assert pos["i1"][1] == 2 * step
        assert pos["i2"][1] == 2 * step

    def test_left_to_right_swaps_axes(self, path):
        G = build_path_graph(path)
        tb = layout(G, "TB")
        lr = layout(G, "LR")
        for node, (x, y) in tb.items():
            assert lr[node] == (y, x)

    def test_nodes_in_one_rank_do_not_overlap(self, path):
        pos = layout(build_path_graph(path))
        xs = sorted(pos[n][0] for n in ("topic-0", "topic-1"))
        assert xs[1] - xs[0] >= NODE_WIDTH

    def test_bad_direction(self, path):
        with pytest.raises(ValueError):
            layout(build_path_graph(path), "RL")


class TestNodeLink:

    def test_json_serialisable_with_positions(self, path):
        doc = to_node_link(build_path_graph(path))
        json.dumps(doc)
        assert len(doc["links"]) == 5
        assert all("position" in n for n in doc["nodes"])
