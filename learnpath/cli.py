"""
Command-line interface for the learning-path engine.

Usage::

    python -m learnpath.cli search --query "pytorch" --level intermediate
    python -m learnpath.cli classify --title "Python Basics" --duration 600
    python -m learnpath.cli watch --id abc --title "Python Basics" --seconds 600
    python -m learnpath.cli analytics ai-basics
    python -m learnpath.cli recommend
    python -m learnpath.cli dashboard
    python -m learnpath.cli diagram ai-basics --direction LR
    python -m learnpath.cli order

Results are printed as JSON. Exit code 0 on success, 1 on an unknown path or a
prerequisite cycle.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from learnpath.config import EngineConfig, load_config, save_config
from learnpath.diagram import build_path_graph, layout, to_node_link
from learnpath.errors import PathNotFoundError, PrerequisiteCycleError
from learnpath.models import ContentItem, FeedFilters
from learnpath.session import LearningSession
from learnpath.utils import setup_logging, timed
from learnpath.youtube_client import YouTubeClient

logger = logging.getLogger(__name__)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _item_from_args(args: argparse.Namespace) -> ContentItem:
    return ContentItem(
        id=args.id or args.title,
        title=args.title,
        description=args.description,
        duration_seconds=args.duration,
    )


# =========================================================================
# Commands
# =========================================================================


def _cmd_search(args: argparse.Namespace, config: EngineConfig) -> None:
    client = YouTubeClient(config.resolved_api_key(), rate_limit_delay=config.rate_limit_delay)
    filters = FeedFilters(
        search=args.query, category=args.category, sort_by=args.sort,
        duration=args.video_duration, level=args.level,
    )
    with timed("Video search"):
        page = client.search_feed(filters, page_token=args.page_token, max_results=args.max_results)
    _emit(page.model_dump(mode="json"))


def _cmd_classify(args: argparse.Namespace, session: LearningSession) -> None:
    result = session.classify(_item_from_args(args))
    _emit(result.model_dump(mode="json") if result else None)


def _cmd_watch(args: argparse.Namespace, session: LearningSession) -> None:
    progress = session.watch(_item_from_args(args), args.seconds)
    _emit(progress.model_dump(mode="json") if progress else None)


def _cmd_analytics(args: argparse.Namespace, session: LearningSession) -> None:
    report = session.analytics(args.path_id).model_dump(mode="json")
    report["completed"] = session.is_path_completed(args.path_id)
    _emit(report)


def _cmd_recommend(args: argparse.Namespace, session: LearningSession) -> None:
    _emit([
        {"id": p.id, "name": p.name, "level": p.level}
        for p in session.recommendations(limit=args.limit)
    ])


def _cmd_dashboard(args: argparse.Namespace, session: LearningSession) -> None:
    _emit(session.dashboard().model_dump(mode="json"))


def _cmd_diagram(args: argparse.Namespace, session: LearningSession) -> None:
    path = session.catalog.get(args.path_id)
    graph = build_path_graph(path, session.get_aggregate_for_path(args.path_id))
    _emit(to_node_link(graph, layout(graph, direction=args.direction)))



def _cmd_order(args: argparse.Namespace, session: LearningSession) -> None:
    _emit({
        "order": session.learning_order(),
        "missing_prerequisites": session.missing_prerequisites(),
    })

_SESSION_COMMANDS = {
    "classify": _cmd_classify,
    "watch": _cmd_watch,
    "analytics": _cmd_analytics,
    "recommend": _cmd_recommend,
    "dashboard": _cmd_dashboard,
    "diagram": _cmd_diagram,
    "order": _cmd_order,
}


# =========================================================================
# CLI
# =========================================================================


def _add_item_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--id", default=None, help="Video id (defaults to the title).")
    parser.add_argument("--title", required=True)
    parser.add_argument("--description", default="")
    parser.add_argument("--duration", type=int, default=0, help="Duration in seconds.")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m learnpath.cli",
        description="Learning path engine: classify, track and recommend.",
    )
    parser.add_argument("--db", default=None, help="SQLite state store path.")
    parser.add_argument("--config", default=None, help="Config JSON to load.")
    parser.add_argument(
        "--save-config", default=None,
        help="Write the effective config to this path and exit.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("search", help="Search videos (mock data without API key).")
    p.add_argument("--query", default="AI coding practices")
    p.add_argument("--category", default="coding tutorials")
    p.add_argument("--level", default="all",
                   choices=["all", "beginner", "intermediate", "advanced"])
    p.add_argument("--sort", default="relevance", choices=["relevance", "date", "viewCount"])
    p.add_argument("--video-duration", default="all", choices=["all", "short", "medium", "long"])
    p.add_argument("--page-token", default=None)
    p.add_argument("--max-results", type=int, default=None)

    p = sub.add_parser("classify", help="Classify a video against the catalog.")
    _add_item_args(p)

    p = sub.add_parser("watch", help="Record a watch event for a video.")
    _add_item_args(p)
    p.add_argument("--seconds", type=int, required=True, help="Seconds watched.")

    p = sub.add_parser("analytics", help="Analytics for one path.")
    p.add_argument("path_id")

    p = sub.add_parser("recommend", help="Recommended next paths.")
    p.add_argument("--limit", type=int, default=None)

    sub.add_parser("dashboard", help="Totals across all paths.")

    p = sub.add_parser("diagram", help="Node-link diagram of a path.")
    p.add_argument("path_id")
    p.add_argument("--direction", default="TB", choices=["TB", "LR"])

    sub.add_parser("order", help="Paths in prerequisite order.")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry-point. Returns the process exit code."""
    args = _parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    config = load_config(args.config)
    if args.db:
        config = config.model_copy(update={"db_path": args.db})

    if args.save_config:
        save_config(config, args.save_config)
        return 0

    if args.command is None:
        logger.error("No command given; see --help.")
        return 2

    if args.command == "search":
        if args.max_results is None:
            args.max_results = config.max_results
        _cmd_search(args, config)
        return 0

    session = LearningSession.open(config=config)
    try:
        _SESSION_COMMANDS[args.command](args, session)
    except (PathNotFoundError, PrerequisiteCycleError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
