"""
Path diagram: node graph of a learning path for the mind-map view.

Nodes:
- the path itself (``kind="path"``);
- one node per topic, ``topic-<index>`` (``kind="topic"``);
- one node per item, keyed by item id (``kind="video"``).

Edges run path -> topic and topic -> item. Rendering is left to the UI;
``layout`` only assigns layered coordinates.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import networkx as nx

from learnpath.models import LearningPath, PathProgress

logger = logging.getLogger(__name__)

NODE_WIDTH = 250
NODE_HEIGHT = 100
RANK_SEP = 50
NODE_SEP = 50


def topic_node_id(index: int) -> str:
    return f"topic-{index}"


def build_path_graph(path: LearningPath, progress: Optional[PathProgress] = None) -> nx.DiGraph:
    """Build the diagram graph for *path*.

    Item topics come from the progress annotation when present, otherwise
    from the item itself.
    """
    G = nx.DiGraph()
    G.add_node(
        path.id, kind="path", label=path.name,
        description=path.description, level=path.level,
    )

    topic_index: Dict[str, int] = {}
    for idx, topic in enumerate(path.topics):
        node = topic_node_id(idx)
        topic_index[topic.lower()] = idx
        G.add_node(node, kind="topic", label=topic, description=f"Videos related to {topic}")
        G.add_edge(path.id, node)

    watches = progress.item_watches if progress is not None else {}
    for order, item in enumerate(path.items):
        watch = watches.get(item.id)
        G.add_node(
            item.id, kind="video", label=item.title, order=order,
            completed=bool(watch and watch.completed),
        )
        item_topics = watch.topics if watch and watch.topics else item.topics
        for topic in item_topics:
            idx = topic_index.get(topic.lower())
            if idx is not None:
                G.add_edge(topic_node_id(idx), item.id)

    logger.debug(
        "Diagram for %s: %d nodes, %d edges.",
        path.id, G.number_of_nodes(), G.number_of_edges(),
    )
    return G


def layout(G: nx.DiGraph, direction: str = "TB") -> Dict[str, Tuple[float, float]]:
    """Assign top-left coordinates per node, one rank per graph generation.

    ``direction`` is ``"TB"`` (top to bottom) or ``"LR"`` (left to right).
    """
    if direction not in ("TB", "LR"):
        raise ValueError(f"direction must be 'TB' or 'LR', got {direction!r}")

    positions: Dict[str, Tuple[float, float]] = {}
    for rank, generation in enumerate(nx.topological_generations(G)):
        for slot, node in enumerate(generation):
            across = slot * (NODE_WIDTH + NODE_SEP)
            down = rank * (NODE_HEIGHT + RANK_SEP)
            positions[node] = (across, down) if direction == "TB" else (down, across)
    return positions


def to_node_link(G: nx.DiGraph, positions: Optional[Dict[str, Tuple[float, float]]] = None) -> Dict[str, Any]:
    """JSON-compatible node-link document with ``position`` on each node."""
    if positions is None:
        positions = layout(G)
    data = nx.node_link_data(G, edges="links")
    for node in data["nodes"]:
        x, y = positions.get(node["id"], (0.0, 0.0))
        node["position"] = {"x": x, "y": y}
    return data
