import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int, minimum: int = 1, maximum: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


WORLDWIDE_REGION = "WORLD"
DEFAULT_REGION = (os.getenv("DEFAULT_REGION") or "KR").strip().upper() or "KR"

# The YouTube Data API caps maxResults at 50 for every list call used here.
VIDEOS_PAGE_SIZE = _int_env("VIDEOS_PAGE_SIZE", 24, maximum=50)
CHANNEL_LOOKUP_LIMIT = _int_env("CHANNEL_LOOKUP_LIMIT", 50, maximum=50)

YOUTUBE_CACHE_TTL_SECONDS = _int_env("YOUTUBE_CACHE_TTL_SECONDS", 5 * 60, minimum=0)
CATEGORIES_CACHE_TTL_SECONDS = _int_env("CATEGORIES_CACHE_TTL_SECONDS", 60 * 60, minimum=0)

PREFERENCES_FILE = Path(
    os.getenv("PREFERENCES_FILE")
    or (Path(__file__).resolve().parents[1] / "data_runtime" / "preferences.json")
)

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

# Only honour X-Forwarded-For when the app sits behind a proxy that sets it.
TRUST_FORWARDED_FOR = (os.getenv("TRUST_FORWARDED_FOR") or "").strip().lower() in {"1", "true", "yes", "on"}

# Region -> display language for localized category titles
REGION_LANG = {
    "KR": "ko",
    "JP": "ja",
    "US": "en",
    "GB": "en",
    "CA": "en",
    "AU": "en",
}


class MissingCredentialError(Exception):
    pass


def youtube_api_key() -> str:
    """
    Read per call so a key added to the environment after startup is picked up
    and a missing key surfaces as a request error instead of an import error.
    """
    key = (os.getenv("YOUTUBE_API_KEY") or "").strip()
    if not key:
        raise MissingCredentialError("Missing YOUTUBE_API_KEY in environment.")
    return key


def lang_for_region(region: str) -> str:
    return REGION_LANG.get((region or "").upper(), "en")
