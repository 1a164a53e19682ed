from typing import Any

from backend.app.config import CATEGORIES_CACHE_TTL_SECONDS, DEFAULT_REGION, WORLDWIDE_REGION, lang_for_region
from backend.app.services.youtube_api import YOUTUBE_VIDEO_CATEGORIES_LIST, list_items, youtube_api_get

ALL_CATEGORY_VALUE = "all"

ALL_CATEGORY_LABELS = {
    "ko": "전체",
    "ja": "すべて",
    "en": "All",
}


def lookup_region(region: str) -> str:
    region = (region or DEFAULT_REGION).upper()
    # videoCategories.list has no worldwide listing.
    if region == WORLDWIDE_REGION:
        return DEFAULT_REGION
    return region


def all_category_option(region: str) -> dict[str, str]:
    lang = lang_for_region(lookup_region(region))
    return {"value": ALL_CATEGORY_VALUE, "label": ALL_CATEGORY_LABELS.get(lang, "All")}


def build_category_options(items: list[dict[str, Any]]) -> list[dict[str, str]]:
    options = []
    for item in items:
        value = item.get("id")
        label = (item.get("snippet") or {}).get("title")
        if not isinstance(value, str) or not isinstance(label, str):
            continue
        if not value or not label:
            continue
        options.append({"value": value, "label": label})
    return options


def fetch_categories(api_key: str, region: str) -> list[dict[str, str]]:
    region = lookup_region(region)
    payload = youtube_api_get(
        YOUTUBE_VIDEO_CATEGORIES_LIST,
        {
            "part": "snippet",
            "regionCode": region,
            "hl": lang_for_region(region),
            "key": api_key,
        },
        ttl=CATEGORIES_CACHE_TTL_SECONDS,
    )
    return build_category_options(list_items(payload))


def with_all_category(region: str, options: list[dict[str, str]]) -> list[dict[str, str]]:
    return [all_category_option(region), *options]
