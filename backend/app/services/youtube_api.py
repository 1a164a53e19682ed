import logging
import time
from typing import Any

import requests

from backend.app.config import YOUTUBE_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

YOUTUBE_VIDEOS_LIST = "https://www.googleapis.com/youtube/v3/videos"
YOUTUBE_SEARCH_LIST = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_CHANNELS_LIST = "https://www.googleapis.com/youtube/v3/channels"
YOUTUBE_VIDEO_CATEGORIES_LIST = "https://www.googleapis.com/youtube/v3/videoCategories"


class YouTubeAPIError(Exception):
    """Non-success answer from the Data API; carries the upstream status and body."""

    def __init__(self, status_code: int, details: str):
        super().__init__(f"YouTube API returned {status_code}")
        self.status_code = status_code
        self.details = details


# ---------------------------
# Very simple in-memory cache
# ---------------------------

CACHE: dict[str, tuple[float, Any]] = {}


def cache_get(key: str):
    hit = CACHE.get(key)
    if not hit:
        return None
    expires_at, value = hit
    if time.time() > expires_at:
        CACHE.pop(key, None)
        return None
    return value


def cache_set(key: str, value: Any, ttl: int):
    if ttl <= 0:
        return
    CACHE[key] = (time.time() + ttl, value)


def cache_key_for(url: str, params: dict[str, Any]) -> str:
    # The credential is left out so rotating keys does not split the cache.
    parts = [f"{name}={params[name]}" for name in sorted(params) if name != "key"]
    return f"{url}?{'&'.join(parts)}"


def youtube_api_get(
    url: str,
    params: dict[str, Any],
    ttl: int = YOUTUBE_CACHE_TTL_SECONDS,
    timeout: int = 15,
) -> dict[str, Any]:
    cache_key = cache_key_for(url, params)
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("YouTube request to %s failed: %s", url, exc)
        raise YouTubeAPIError(502, "YouTube is temporarily unavailable. Please try again.") from exc

    if not 200 <= response.status_code < 300:
        logger.warning("YouTube request to %s returned %s", url, response.status_code)
        raise YouTubeAPIError(response.status_code, response.text)

    try:
        payload = response.json()
    except ValueError as exc:
        raise YouTubeAPIError(502, "YouTube returned an unreadable response.") from exc
    if not isinstance(payload, dict):
        payload = {}

    cache_set(cache_key, payload, ttl)
    return payload


def list_items(payload: dict[str, Any]) -> list[dict[str, Any]]:
    items = payload.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]
