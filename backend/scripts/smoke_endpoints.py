from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import patch

from starlette.requests import Request

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import backend.main as main_module
from backend.app.services import videos as videos_module
from backend.app.services import youtube_api
from backend.app.services.youtube_api import YouTubeAPIError


def make_request(ip: str = "127.0.0.1") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "client": (ip, 8000),
            "query_string": b"",
            "server": ("test", 80),
            "scheme": "http",
            "http_version": "1.1",
        }
    )


def make_video(video_id: str, views: int, duration: str, channel_id: str = "UC_SMOKE") -> dict:
    return {
        "id": video_id,
        "snippet": {
            "title": f"Video {video_id}",
            "channelId": channel_id,
            "channelTitle": "Smoke Channel",
            "publishedAt": "2026-10-01T00:00:00Z",
            "thumbnails": {
                "medium": {"url": f"https://img/{video_id}_mq.jpg", "width": 320, "height": 180},
                "high": {"url": f"https://img/{video_id}_hq.jpg", "width": 480, "height": 360},
            },
        },
        "statistics": {"viewCount": str(views), "likeCount": str(views // 10), "commentCount": "3"},
        "contentDetails": {"duration": duration},
    }


def assert_true(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def reset_state() -> None:
    youtube_api.CACHE.clear()
    main_module.API_RATE_LIMIT_BUCKETS.clear()


def test_health() -> None:
    payload = main_module.health()
    assert_true(payload.get("ok") is True, "/health should return ok=true")


def test_videos_chart_shorts_filter() -> None:
    reset_state()
    request = make_request()
    call_count = {"youtube_api_get": 0}

    def fake_youtube_api_get(url: str, params: dict, ttl: int = 0, timeout: int = 15) -> dict:
        _ = (params, ttl, timeout)
        call_count["youtube_api_get"] += 1
        if url == youtube_api.YOUTUBE_CHANNELS_LIST:
            return {"items": []}
        return {"items": [make_video("v1", 25000, "PT2M5S"), make_video("v2", 90000, "PT40S")]}

    with patch.object(videos_module, "youtube_api_get", side_effect=fake_youtube_api_get):
        payload = main_module.videos(request, category="all", shorts="exclude")

    ids = [item["id"] for item in payload.get("items", [])]
    assert_true(ids == ["v1"], "/api/videos shorts=exclude should drop the 40s video")
    assert_true(call_count["youtube_api_get"] == 2, "/api/videos should call chart + channels once each")


def test_videos_search_fallback() -> None:
    reset_state()
    request = make_request()
    calls: list[str] = []

    def fake_youtube_api_get(url: str, params: dict, ttl: int = 0, timeout: int = 15) -> dict:
        _ = (ttl, timeout)
        calls.append(url)
        if url == youtube_api.YOUTUBE_VIDEOS_LIST and params.get("chart"):
            raise YouTubeAPIError(404, "videoChartNotFound")
        if url == youtube_api.YOUTUBE_SEARCH_LIST:
            if "regionCode" in params:
                return {"items": []}
            return {"items": [{"id": {"videoId": "f1"}}, {"id": {"videoId": "f2"}}]}
        if url == youtube_api.YOUTUBE_CHANNELS_LIST:
            return {"items": []}
        return {"items": [make_video("f1", 10, "PT5M"), make_video("f2", 20, "PT5M")]}

    with patch.object(videos_module, "youtube_api_get", side_effect=fake_youtube_api_get):
        payload = main_module.videos(request, category="25", region="KR")

    ids = [item["id"] for item in payload.get("items", [])]
    assert_true(ids == ["f2", "f1"], "/api/videos fallback should hydrate and rank searched ids")
    assert_true(payload.get("region") == "KR", "/api/videos fallback should keep the requested region")
    assert_true(calls.count(youtube_api.YOUTUBE_SEARCH_LIST) == 2, "fallback should broaden the search once")


def test_categories_shape() -> None:
    reset_state()
    request = make_request()

    def fake_youtube_api_get(url: str, params: dict, ttl: int = 0, timeout: int = 15) -> dict:
        _ = (url, params, ttl, timeout)
        return {"items": [{"id": "10", "snippet": {"title": "Music"}}, {"id": "", "snippet": {"title": "x"}}]}

    with patch("backend.app.services.categories.youtube_api_get", side_effect=fake_youtube_api_get):
        payload = main_module.categories(request, include_all=True)

    values = [item["value"] for item in payload.get("categories", [])]
    assert_true(values == ["all", "10"], "/api/categories should drop incomplete entries and prefix all")


def run() -> int:
    os.environ.setdefault("YOUTUBE_API_KEY", "smoke-test-key")
    checks = [
        ("health", test_health),
        ("videos chart + shorts filter", test_videos_chart_shorts_filter),
        ("videos search fallback", test_videos_search_fallback),
        ("categories shape", test_categories_shape),
    ]
    failures = []

    for check_name, check_fn in checks:
        try:
            check_fn()
            print(f"[PASS] {check_name}")
        except Exception as exc:  # pragma: no cover - smoke script output path
            failures.append((check_name, str(exc)))
            print(f"[FAIL] {check_name}: {exc}")

    if failures:
        print(f"\nSmoke checks failed: {len(failures)}")
        for check_name, message in failures:
            print(f"- {check_name}: {message}")
        return 1

    print("\nAll smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
