"""
Prerequisite graph: cycle detection and learning order.

Uses ``networkx.DiGraph`` with an edge ``prerequisite -> dependent`` for
every prerequisite declaration. Cycles are reported, never broken: a path
inside a cycle simply can never become eligible for recommendation.
"""

import logging
from typing import List, Sequence

import networkx as nx

from learnpath.errors import PrerequisiteCycleError
from learnpath.models import LearningPath

logger = logging.getLogger(__name__)


def build_prerequisite_graph(paths: Sequence[LearningPath]) -> nx.DiGraph:
    """Return the prerequisite graph of *paths*.

    Prerequisite ids with no matching path become nodes flagged
    ``missing=True``.
    """
    G = nx.DiGraph()
    for order, path in enumerate(paths):
        G.add_node(path.id, level=path.level, order=order, missing=False)
    for path in paths:
        for prereq in path.prerequisites:
            if prereq not in G:
                G.add_node(prereq, order=len(G), missing=True)
            G.add_edge(prereq, path.id)
    return G


def find_cycles(paths: Sequence[LearningPath]) -> List[List[str]]:
    """List every elementary prerequisite cycle as a list of path ids."""
    G = build_prerequisite_graph(paths)
    return [list(c) for c in nx.simple_cycles(G)]


def missing_prerequisites(paths: Sequence[LearningPath]) -> List[str]:
    """Prerequisite ids that do not refer to any known path."""
    G = build_prerequisite_graph(paths)
    return [n for n, missing in G.nodes(data="missing") if missing]


def validate_prerequisites(paths: Sequence[LearningPath]) -> bool:
    """Return ``True`` when the prerequisite graph is acyclic."""
    return nx.is_directed_acyclic_graph(build_prerequisite_graph(paths))


def learning_order(paths: Sequence[LearningPath]) -> List[str]:
    """Known path ids ordered so prerequisites come first.

    Ties keep catalog order.

    Raises:
        PrerequisiteCycleError: if the graph has a cycle.
    """
    G = build_prerequisite_graph(paths)
    try:
        ordered = list(
            nx.lexicographical_topological_sort(G, key=lambda n: G.nodes[n]["order"])
        )
    except nx.NetworkXUnfeasible:
        cycles = [list(c) for c in nx.simple_cycles(G)]
        logger.error("Prerequisite graph has %d cycle(s).", len(cycles))
        raise PrerequisiteCycleError(cycles) from None
    return [n for n in ordered if not G.nodes[n]["missing"]]
