"""
YouTube Data API v3 client used as the engine's content source.

This module provides:
- ``parse_duration``: ISO-8601 video duration → seconds + display text.
- ``build_search_query``: feed filters → search query string.
- ``YouTubeClient``: rate-limited ``search`` + ``videos`` calls with a
  deterministic mock fallback when the API key is missing or the API
  fails.
"""

import logging
import re
import time
import zlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import requests

from learnpath.errors import QuotaExceededError, VideoSearchError
from learnpath.models import ContentItem, FeedFilters, SearchPage
from learnpath.utils import retry_with_backoff

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"
RATE_LIMIT_DELAY = 0.1  # seconds between requests
REQUEST_TIMEOUT = 10.0

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_QUOTA_STATUSES = frozenset({403, 429})


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def parse_duration(duration: str) -> Tuple[int, str]:
    """Parse an ISO-8601 duration such as ``PT1H2M3S``.

    Returns:
        ``(total_seconds, text)`` where *text* is ``H:MM:SS`` or ``M:SS``.
        Unparseable input yields ``(0, "0:00")``.
    """
    match = _DURATION_RE.fullmatch(duration or "")
    if not match:
        return 0, "0:00"

    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    total = hours * 3600 + minutes * 60 + seconds
    if hours > 0:
        text = f"{hours}:{minutes:02d}:{seconds:02d}"
    else:
        text = f"{minutes}:{seconds:02d}"
    return total, text


def build_search_query(filters: FeedFilters) -> str:
    """Join search text, level, category and ``tutorial`` into one query."""
    parts = [
        filters.search,
        filters.level if filters.level != "all" else "",
        filters.category,
        "tutorial",
    ]
    return " ".join(p for p in parts if p)


def mock_videos(query: str, max_results: int = 20, page_token: Optional[str] = None) -> SearchPage:
    """Deterministic placeholder results for *query*.

    Values are drawn from a numpy generator seeded by the query and page,
    so the same request always yields the same page.
    """
    page = int(page_token) if page_token and page_token.isdigit() else 0
    seed = zlib.crc32(f"{query}|{page}".encode("utf-8"))
    rng = np.random.default_rng(seed)

    views = rng.integers(0, 1_000_000, size=max_results)
    ages = rng.integers(0, 10_000_000, size=max_results)
    now = datetime.now(timezone.utc)

    videos = [
        ContentItem(
            id=f"mock-{seed:08x}-{i}",
            title=f"AI Tutorial {page * max_results + i + 1}: {query}",
            description=f"Learn about {query} in this comprehensive tutorial.",
            duration_seconds=30 * 60,
            channel_name="AI Learning Channel",
            thumbnail_url="https://placehold.co/1280x720",
            published_at=now - timedelta(seconds=int(ages[i])),
            view_count=int(views[i]),
        )
        for i in range(max_results)
    ]
    return SearchPage(
        videos=videos,
        next_page_token=str(page + 1),
        total_results=100,
        from_mock=True,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class YouTubeClient:
    """Thin, rate-limited wrapper over the YouTube Data API.

    Args:
        api_key: API key; without one every search returns mock data.
        rate_limit_delay: Minimum seconds between two requests.
        session: Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        rate_limit_delay: float = RATE_LIMIT_DELAY,
        session: Optional[requests.Session] = None,
        base_url: str = YOUTUBE_API_URL,
    ) -> None:
        self.api_key = api_key
        self.rate_limit_delay = rate_limit_delay
        self.session = session or requests.Session()
        self.base_url = base_url
        self._last_request = 0.0

    # ---- transport -----------------------------------------------------

    def _wait_for_slot(self) -> None:
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - elapsed)
        self._last_request = time.monotonic()

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET ``<base_url>/<endpoint>`` and return the decoded JSON body.

        Raises:
            QuotaExceededError: on HTTP 403 / 429.
            VideoSearchError: on any other error response or transport failure.
        """
        self._wait_for_slot()
        url = f"{self.base_url}/{endpoint}"
        try:
            response = retry_with_backoff(
                self.session.get,
                url,
                params={**params, "key": self.api_key},
                timeout=REQUEST_TIMEOUT,
                max_retries=3,
                base_delay=0.5,
                retry_on=(requests.ConnectionError, requests.Timeout),
                logger=logger,
            )
        except requests.RequestException as exc:
            raise VideoSearchError(f"{endpoint} request failed: {exc}") from exc

        if response.status_code in _QUOTA_STATUSES:
            logger.warning("YouTube API quota exceeded (HTTP %d).", response.status_code)
            raise QuotaExceededError("API quota exceeded", response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok:
            message = (data.get("error") or {}).get("message") or f"Failed to fetch {endpoint}"
            raise VideoSearchError(message, response.status_code)
        return data

    # ---- API -----------------------------------------------------------

    def _search_api(
        self,
        query: str,
        max_results: int,
        page_token: Optional[str],
        video_duration: Optional[str],
        order: str,
    ) -> SearchPage:
        params: Dict[str, Any] = {
            "part": "snippet",
            "maxResults": max_results,
            "q": query,
            "type": "video",
            "order": order,
        }
        if page_token:
            params["pageToken"] = page_token
        if video_duration:
            params["videoDuration"] = video_duration

        data = self._get("search", params)
        items = data.get("items", [])
        ids = [it["id"]["videoId"] for it in items]

        stats_by_id: Dict[str, Dict[str, Any]] = {}
        if ids:
            stats = self._get("videos", {"part": "statistics,contentDetails", "id": ",".join(ids)})
            stats_by_id = {s["id"]: s for s in stats.get("items", [])}

        videos: List[ContentItem] = []
        for it in items:
            video_id = it["id"]["videoId"]
            snippet = it["snippet"]
            stat = stats_by_id.get(video_id, {})
            seconds, _ = parse_duration(stat.get("contentDetails", {}).get("duration", "PT0M0S"))
            videos.append(ContentItem(
                id=video_id,
                title=snippet["title"],
                description=snippet.get("description", ""),
                duration_seconds=seconds,
                channel_name=snippet.get("channelTitle"),
                thumbnail_url=snippet.get("thumbnails", {}).get("high", {}).get("url"),
                published_at=snippet.get("publishedAt"),
                view_count=int(stat.get("statistics", {}).get("viewCount", 0) or 0),
            ))

        return SearchPage(
            videos=videos,
            next_page_token=data.get("nextPageToken"),
            total_results=data.get("pageInfo", {}).get("totalResults", len(videos)),
        )

    def search_videos(
        self,
        query: str = "",
        max_results: int = 20,
        page_token: Optional[str] = None,
        video_duration: Optional[str] = None,
        order: str = "relevance",
        strict: bool = False,
    ) -> SearchPage:
        """Search videos and attach duration / view-count statistics.

        Falls back to ``mock_videos`` when no API key is configured or the
        API fails, unless *strict* is set.

        Raises:
            VideoSearchError: only when *strict* is ``True``.
        """
        if not self.api_key:
            if strict:
                raise VideoSearchError("YouTube API key is missing")
            logger.warning("YouTube API key is missing, using mock data.")
            return mock_videos(query, max_results, page_token)

        try:
            page = self._search_api(query, max_results, page_token, video_duration, order)
        except VideoSearchError as exc:
            if strict:
                raise
            logger.warning("Falling back to mock data: %s", exc)
            return mock_videos(query, max_results, page_token)

        logger.info("Search %r returned %d video(s).", query, len(page.videos))
        return page

    def search_feed(self, filters: FeedFilters, page_token: Optional[str] = None, max_results: int = 20) -> SearchPage:
        """Search with feed filters applied."""
        return self.search_videos(
            query=build_search_query(filters),
            max_results=max_results,
            page_token=page_token,
            video_duration=None if filters.duration == "all" else filters.duration,
            order=filters.sort_by,
        )

    def get_video_categories(self, region_code: str = "US") -> List[Dict[str, str]]:
        """Return ``[{id, title}]`` video categories for *region_code*.

        Raises:
            VideoSearchError: on missing key or API failure.
        """
        if not self.api_key:
            raise VideoSearchError("YouTube API key is missing")
        data = self._get("videoCategories", {"part": "snippet", "regionCode": region_code})
        return [
            {"id": it["id"], "title": it["snippet"]["title"]}
            for it in data.get("items", [])
        ]
