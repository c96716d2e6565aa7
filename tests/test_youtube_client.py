"""
pytest suite for the YouTube search client.

All HTTP calls are mocked; no internet required.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from learnpath.errors import QuotaExceededError, VideoSearchError
from learnpath.models import FeedFilters
from learnpath.youtube_client import (
    YouTubeClient,
    build_search_query,
    mock_videos,
    parse_duration,
)


# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------

_SEARCH_BODY = {
    "items": [
        {
            "id": {"videoId": "abc123_xyz1"},
            "snippet": {
                "title": "PyTorch project walkthrough",
                "channelId": "ch1",
                "channelTitle": "ML Channel",
                "publishedAt": "2026-01-02T03:04:05Z",
                "description": "computer vision implementation",
                "thumbnails": {"high": {"url": "https://i.ytimg.com/x.jpg"}},
            },
        },
    ],
    "nextPageToken": "CAUQAA",
    "pageInfo": {"totalResults": 42},
}

_STATS_BODY = {
    "items": [
        {
            "id": "abc123_xyz1",
            "contentDetails": {"duration": "PT12M5S"},
            "statistics": {"viewCount": "1234"},
        },
    ],
}


def _response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = body
    return resp


def _client(*responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return YouTubeClient(api_key="test-key", rate_limit_delay=0.0, session=session), session


# ---------------------------------------------------------------------------
# Tests: helpers
# ---------------------------------------------------------------------------


class TestParseDuration:

    @pytest.mark.parametrize("raw,expected", [
        ("PT1H2M3S", (3723, "1:02:03")),
        ("PT30M", (1800, "30:00")),
        ("PT45S", (45, "0:45")),
        ("PT2H", (7200, "2:00:00")),
        ("garbage", (0, "0:00")),
        ("", (0, "0:00")),
    ])
    def test_parse(self, raw, expected):
        assert parse_duration(raw) == expected


class TestSearchQuery:

    def test_defaults(self):
        assert build_search_query(FeedFilters()) == "AI coding practices coding tutorials tutorial"

    def test_level_included_unless_all(self):
        filters = FeedFilters(search="pytorch", category="", level="advanced")
        assert build_search_query(filters) == "pytorch advanced tutorial"


class TestMockVideos:

    def test_deterministic_per_query_and_page(self):
        a = mock_videos("python", 5)
        b = mock_videos("python", 5)
        assert [v.id for v in a.videos] == [v.id for v in b.videos]
        assert [v.view_count for v in a.videos] == [v.view_count for v in b.videos]
        assert a.from_mock and a.next_page_token == "1"

    def test_next_page_differs(self):
        first = mock_videos("python", 3)
        second = mock_videos("python", 3, first.next_page_token)
        assert {v.id for v in first.videos}.isdisjoint(v.id for v in second.videos)
        assert second.videos[0].title.startswith("AI Tutorial 4:")


# ---------------------------------------------------------------------------
# Tests: client
# ---------------------------------------------------------------------------


class TestSearchVideos:

    def test_no_api_key_uses_mock(self):
        client = YouTubeClient(api_key=None, session=MagicMock())
        page = client.search_videos("python", max_results=4)
        assert page.from_mock
        assert len(page.videos) == 4
        client.session.get.assert_not_called()

    def test_no_api_key_strict(self):
        client = YouTubeClient(api_key=None, session=MagicMock())
        with pytest.raises(VideoSearchError):
            client.search_videos("python", strict=True)

    def test_merges_stats(self):
        client, session = _client(_response(200, _SEARCH_BODY), _response(200, _STATS_BODY))
        page = client.search_videos("pytorch", max_results=1, page_token="tok", video_duration="medium")

        assert not page.from_mock
        assert page.next_page_token == "CAUQAA"
        assert page.total_results == 42
        video = page.videos[0]
        assert video.id == "abc123_xyz1"
        assert video.duration_seconds == 725
        assert video.view_count == 1234
        assert video.channel_name == "ML Channel"

        search_params = session.get.call_args_list[0].kwargs["params"]
        assert search_params["pageToken"] == "tok"
        assert search_params["videoDuration"] == "medium"
        assert search_params["key"] == "test-key"
        stats_params = session.get.call_args_list[1].kwargs["params"]
        assert stats_params["id"] == "abc123_xyz1"

    @pytest.mark.parametrize("status", [403, 429])
    def test_quota_falls_back_to_mock(self, status):
        client, _ = _client(_response(status, {}))
        page = client.search_videos("python", max_results=2)
        assert page.from_mock

    def test_quota_strict(self):
        client, _ = _client(_response(429, {}))
        with pytest.raises(QuotaExceededError) as excinfo:
            client.search_videos("python", strict=True)
        assert excinfo.value.status_code == 429

    def test_api_error_message(self):
        client, _ = _client(_response(400, {"error": {"message": "bad request"}}))
        with pytest.raises(VideoSearchError, match="bad request"):
            client.search_videos("python", strict=True)

    def test_network_error_retried_then_surfaced(self, monkeypatch):
        monkeypatch.setattr("learnpath.utils.time.sleep", lambda s: None)
        client, session = _client(
            requests.ConnectionError("down"),
            requests.ConnectionError("down"),
            requests.ConnectionError("down"),
        )
        with pytest.raises(VideoSearchError):
            client.search_videos("python", strict=True)
        assert session.get.call_count == 3

    def test_search_feed_applies_filters(self):
        client, session = _client(_response(200, {"items": [], "pageInfo": {"totalResults": 0}}))
        filters = FeedFilters(search="go", category="", level="beginner", duration="short", sort_by="date")
        page = client.search_feed(filters)
        assert page.videos == []
        params = session.get.call_args.kwargs["params"]
        assert params["q"] == "go beginner tutorial"
        assert params["order"] == "date"
        assert params["videoDuration"] == "short"


class TestCategories:

    def test_categories(self):
        body = {"items": [{"id": "28", "snippet": {"title": "Science & Technology"}}]}
        client, _ = _client(_response(200, body))
        assert client.get_video_categories() == [{"id": "28", "title": "Science & Technology"}]

    def test_categories_need_key(self):
        with pytest.raises(VideoSearchError):
            YouTubeClient(api_key=None, session=MagicMock()).get_video_categories()
