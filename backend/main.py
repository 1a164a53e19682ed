import logging
import os
import sys
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.config import (
    DEFAULT_REGION,
    LOG_LEVEL,
    PREFERENCES_FILE,
    TRUST_FORWARDED_FOR,
    MissingCredentialError,
    youtube_api_key,
)
from backend.app.services.categories import (
    ALL_CATEGORY_VALUE,
    all_category_option,
    fetch_categories,
    with_all_category,
)
from backend.app.services.preferences import PreferencesStore
from backend.app.services.videos import collect_trending_items
from backend.app.services.youtube_api import YouTubeAPIError

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(handler)


# ---------------------------
# Rate limiting
# ---------------------------

API_RATE_LIMIT_WINDOW_SECONDS = 60
API_RATE_LIMIT_MAX_REQUESTS = 30
API_RATE_LIMIT_BUCKETS: dict[str, deque[float]] = {}
API_RATE_LIMIT_SWEEP_THRESHOLD = 1024


class RateLimitedError(Exception):
    pass


def get_client_ip(request: Request) -> str:
    if TRUST_FORWARDED_FOR:
        forwarded = (request.headers.get("x-forwarded-for") or "").strip()
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def sweep_stale_buckets(cutoff: float) -> None:
    for key in [key for key, bucket in API_RATE_LIMIT_BUCKETS.items() if not bucket or bucket[-1] < cutoff]:
        del API_RATE_LIMIT_BUCKETS[key]


def enforce_api_rate_limit(request: Request, scope: str = "youtube") -> None:
    now_ts = time.time()
    cutoff = now_ts - API_RATE_LIMIT_WINDOW_SECONDS
    if len(API_RATE_LIMIT_BUCKETS) >= API_RATE_LIMIT_SWEEP_THRESHOLD:
        sweep_stale_buckets(cutoff)

    key = f"{scope}:{get_client_ip(request)}"
    bucket = API_RATE_LIMIT_BUCKETS.get(key)
    if bucket is None:
        bucket = deque()
        API_RATE_LIMIT_BUCKETS[key] = bucket

    while bucket and bucket[0] < cutoff:
        bucket.popleft()

    if len(bucket) >= API_RATE_LIMIT_MAX_REQUESTS:
        raise RateLimitedError("Too many requests. Please wait a minute and try again.")

    bucket.append(now_ts)


class PreferencesUpdate(BaseModel):
    categoryOrder: list[str] | None = None
    criterionOrder: list[str] | None = None
    darkMode: bool | None = None


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_region(region: str | None) -> str:
    return (region or DEFAULT_REGION).strip().upper() or DEFAULT_REGION


# ---------------------------
# App setup
# ---------------------------

configure_logging()

PREFERENCES = PreferencesStore(PREFERENCES_FILE)


def parse_cors_origins() -> tuple[list[str], bool]:
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["http://localhost:3000"], True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return ["http://localhost:3000"], True
    return origins, True

app = FastAPI()

cors_origins, cors_credentials = parse_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_credentials,
    allow_methods=["GET", "PUT"],
    allow_headers=["*"],
)


@app.exception_handler(MissingCredentialError)
async def missing_credential_handler(_request: Request, exc: MissingCredentialError):
    logger.error("%s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(RateLimitedError)
async def rate_limited_handler(_request: Request, exc: RateLimitedError):
    return JSONResponse(status_code=429, content={"error": str(exc)})


@app.exception_handler(YouTubeAPIError)
async def youtube_api_error_handler(_request: Request, exc: YouTubeAPIError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "YouTube API error", "details": exc.details},
    )


@app.on_event("startup")
def on_startup_load_preferences():
    PREFERENCES.load()


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/categories")
def categories(
    request: Request,
    region: str | None = None,
    include_all: bool = False,
):
    api_key = youtube_api_key()
    region = normalize_region(region)
    enforce_api_rate_limit(request, scope="categories")

    options = fetch_categories(api_key, region)
    if include_all:
        options = with_all_category(region, options)
    return {
        "categories": options,
        "all": all_category_option(region),
        "region": region,
    }


@app.get("/api/videos")
def videos(
    request: Request,
    category: str = ALL_CATEGORY_VALUE,
    region: str | None = None,
    sort: str = "views",
    shorts: str = "include",
    period: str = "all",
):
    """
    Trending feed for one category: chart=mostPopular, or search + hydrate when
    the chart does not cover the category. Ranked by the requested statistic,
    Shorts (<60s) optionally removed.

    period is echoed back for the client but not applied to retrieval.
    """
    api_key = youtube_api_key()
    region = normalize_region(region)
    category = (category or ALL_CATEGORY_VALUE).strip() or ALL_CATEGORY_VALUE
    sort = (sort or "views").strip().lower()
    shorts = (shorts or "include").strip().lower()
    enforce_api_rate_limit(request, scope="videos")

    items = collect_trending_items(api_key, region, category, sort, shorts)
    return {
        "items": items,
        "fetchedAt": utc_timestamp(),
        "region": region,
        "category": category,
        "sort": sort,
        "shorts": shorts,
        "period": period,
    }


@app.get("/api/preferences/{client_id}")
def get_preferences(client_id: str, request: Request) -> dict[str, Any]:
    enforce_api_rate_limit(request, scope="preferences")
    return {"clientId": client_id, "preferences": PREFERENCES.get(client_id)}


@app.put("/api/preferences/{client_id}")
def update_preferences(client_id: str, payload: PreferencesUpdate, request: Request) -> dict[str, Any]:
    client_id = (client_id or "").strip()
    if not client_id:
        raise HTTPException(status_code=400, detail="client_id is required")
    enforce_api_rate_limit(request, scope="preferences")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    return {"clientId": client_id, "preferences": PREFERENCES.update(client_id, changes)}
