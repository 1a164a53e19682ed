import logging
import math
from typing import Any

from backend.app.config import CHANNEL_LOOKUP_LIMIT, VIDEOS_PAGE_SIZE, WORLDWIDE_REGION
from backend.app.services.categories import ALL_CATEGORY_VALUE
from backend.app.services.durations import describe_duration, iso8601_duration_to_seconds
from backend.app.services.youtube_api import (
    YOUTUBE_CHANNELS_LIST,
    YOUTUBE_SEARCH_LIST,
    YOUTUBE_VIDEOS_LIST,
    YouTubeAPIError,
    list_items,
    youtube_api_get,
)

logger = logging.getLogger(__name__)

SORT_STATISTICS = {
    "views": "viewCount",
    "likes": "likeCount",
    "comments": "commentCount",
}
DEFAULT_SORT = "views"
SHORTS_MAX_SECONDS = 60
VIDEO_PARTS = "snippet,statistics,contentDetails"


# ---------------------------
# Retrieval
# ---------------------------

def fetch_chart_videos(api_key: str, region: str, category: str) -> list[dict[str, Any]]:
    params: dict[str, Any] = {
        "part": VIDEO_PARTS,
        "chart": "mostPopular",
        "maxResults": VIDEOS_PAGE_SIZE,
        "key": api_key,
    }
    if region != WORLDWIDE_REGION:
        params["regionCode"] = region
    if category != ALL_CATEGORY_VALUE:
        params["videoCategoryId"] = category
    return list_items(youtube_api_get(YOUTUBE_VIDEOS_LIST, params))


def search_video_ids(api_key: str, category: str, region: str | None) -> list[str]:
    params: dict[str, Any] = {
        "part": "snippet",
        "type": "video",
        "order": "viewCount",
        "videoCategoryId": category,
        "maxResults": VIDEOS_PAGE_SIZE,
        "safeSearch": "none",
        "key": api_key,
    }
    if region and region != WORLDWIDE_REGION:
        params["regionCode"] = region

    ids = []
    for item in list_items(youtube_api_get(YOUTUBE_SEARCH_LIST, params)):
        video_id = (item.get("id") or {}).get("videoId")
        if isinstance(video_id, str) and video_id:
            ids.append(video_id)
    return ids[:VIDEOS_PAGE_SIZE]


def hydrate_videos(api_key: str, video_ids: list[str]) -> list[dict[str, Any]]:
    if not video_ids:
        return []
    try:
        payload = youtube_api_get(
            YOUTUBE_VIDEOS_LIST,
            {
                "part": VIDEO_PARTS,
                "id": ",".join(video_ids[:VIDEOS_PAGE_SIZE]),
                "key": api_key,
            },
        )
    except YouTubeAPIError as exc:
        logger.warning("Hydrating %d searched videos failed with %s", len(video_ids), exc.status_code)
        return []
    return list_items(payload)


def fetch_search_fallback_videos(api_key: str, region: str, category: str) -> list[dict[str, Any]]:
    """
    Search-and-hydrate path for categories that chart=mostPopular rejects.

    The region-scoped search is authoritative: its failure fails the request.
    When it comes back empty the same search is repeated worldwide, and a
    failure there just means no results.
    """
    ids = search_video_ids(api_key, category, region)
    if not ids:
        logger.info("No regional search results for category %s in %s, searching worldwide", category, region)
        try:
            ids = search_video_ids(api_key, category, None)
        except YouTubeAPIError as exc:
            logger.warning("Worldwide search for category %s failed with %s", category, exc.status_code)
            ids = []
    return hydrate_videos(api_key, ids)


def fetch_ranked_videos(api_key: str, region: str, category: str) -> list[dict[str, Any]]:
    try:
        return fetch_chart_videos(api_key, region, category)
    except YouTubeAPIError as exc:
        # 404 for a specific category means the chart does not cover it; for
        # "all" it is a real failure and must not be masked.
        if exc.status_code != 404 or category == ALL_CATEGORY_VALUE:
            raise
        logger.info("Chart listing unavailable for category %s in %s, using search fallback", category, region)
    return fetch_search_fallback_videos(api_key, region, category)


# ---------------------------
# Channel avatars
# ---------------------------

def distinct_channel_ids(videos: list[dict[str, Any]]) -> list[str]:
    seen: set[str] = set()
    ids = []
    for video in videos:
        channel_id = (video.get("snippet") or {}).get("channelId")
        if not isinstance(channel_id, str) or not channel_id or channel_id in seen:
            continue
        seen.add(channel_id)
        ids.append(channel_id)
    return ids


def fetch_channel_thumbnails(api_key: str, videos: list[dict[str, Any]]) -> dict[str, str]:
    channel_ids = distinct_channel_ids(videos)
    if not channel_ids:
        return {}
    if len(channel_ids) > CHANNEL_LOOKUP_LIMIT:
        logger.warning(
            "Avatar lookup truncated to %d of %d channels",
            CHANNEL_LOOKUP_LIMIT,
            len(channel_ids),
        )
        channel_ids = channel_ids[:CHANNEL_LOOKUP_LIMIT]

    try:
        payload = youtube_api_get(
            YOUTUBE_CHANNELS_LIST,
            {
                "part": "snippet",
                "id": ",".join(channel_ids),
                "maxResults": CHANNEL_LOOKUP_LIMIT,
                "key": api_key,
            },
        )
    except YouTubeAPIError as exc:
        logger.warning("Channel avatar lookup failed with %s, continuing without avatars", exc.status_code)
        return {}

    thumbnails: dict[str, str] = {}
    for channel in list_items(payload):
        channel_id = channel.get("id")
        if not channel_id:
            continue
        thumbs = (channel.get("snippet") or {}).get("thumbnails") or {}
        url = (thumbs.get("medium") or {}).get("url") or (thumbs.get("default") or {}).get("url")
        if url:
            thumbnails[channel_id] = url
    return thumbnails


# ---------------------------
# Ranking & filtering
# ---------------------------

def to_number(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def statistic_value(video: dict[str, Any], sort_key: str) -> int:
    field = SORT_STATISTICS.get(sort_key, SORT_STATISTICS[DEFAULT_SORT])
    return to_number((video.get("statistics") or {}).get(field))


def rank_videos(videos: list[dict[str, Any]], sort_key: str) -> list[dict[str, Any]]:
    return sorted(videos, key=lambda video: statistic_value(video, sort_key), reverse=True)


def video_duration_seconds(video: dict[str, Any]) -> int:
    return iso8601_duration_to_seconds((video.get("contentDetails") or {}).get("duration"))


def filter_shorts(videos: list[dict[str, Any]], shorts: str) -> list[dict[str, Any]]:
    if shorts != "exclude":
        return list(videos)
    return [video for video in videos if video_duration_seconds(video) >= SHORTS_MAX_SECONDS]


def build_video_record(video: dict[str, Any], channel_thumbnails: dict[str, str]) -> dict[str, Any]:
    snippet = video.get("snippet") or {}
    duration = (video.get("contentDetails") or {}).get("duration") or ""
    duration_seconds, duration_label = describe_duration(duration)
    channel_id = snippet.get("channelId") or ""
    return {
        "id": video.get("id"),
        "title": snippet.get("title") or "",
        "channelId": channel_id,
        "channelTitle": snippet.get("channelTitle") or "",
        "channelThumbnailUrl": channel_thumbnails.get(channel_id, "") if channel_id else "",
        "publishedAt": snippet.get("publishedAt") or "",
        "duration": duration,
        "durationSeconds": duration_seconds,
        "durationLabel": duration_label,
        "thumbnails": snippet.get("thumbnails") or {},
        "statistics": video.get("statistics") or {},
    }


def collect_trending_items(
    api_key: str,
    region: str,
    category: str,
    sort_key: str,
    shorts: str,
) -> list[dict[str, Any]]:
    videos = fetch_ranked_videos(api_key, region, category)
    channel_thumbnails = fetch_channel_thumbnails(api_key, videos)
    ranked = filter_shorts(rank_videos(videos, sort_key), shorts)
    return [build_video_record(video, channel_thumbnails) for video in ranked]
