from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backend.app.config import DEFAULT_REGION, MissingCredentialError, youtube_api_key
from backend.app.services.categories import fetch_categories, with_all_category
from backend.app.services.videos import SORT_STATISTICS, collect_trending_items
from backend.app.services.youtube_api import YouTubeAPIError

DEFAULT_OUTPUT = Path(__file__).resolve().parents[1] / "data_runtime" / "trending_snapshot.json"


def main() -> int:
    parser = argparse.ArgumentParser(description="Write the ranked trending feed for every category to JSON.")
    parser.add_argument("--region", default=DEFAULT_REGION)
    parser.add_argument("--sort", choices=sorted(SORT_STATISTICS), default="views")
    parser.add_argument("--shorts", choices=["include", "exclude"], default="include")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT)
    args = parser.parse_args()

    try:
        api_key = youtube_api_key()
    except MissingCredentialError as exc:
        print(exc, file=sys.stderr)
        return 2

    region = args.region.upper()
    try:
        categories = fetch_categories(api_key, region)
    except YouTubeAPIError as exc:
        print(f"Could not list categories ({exc.status_code}): {exc.details}", file=sys.stderr)
        return 1

    feeds: dict[str, list[dict]] = {}
    failed: dict[str, int] = {}
    for option in with_all_category(region, categories):
        try:
            feeds[option["value"]] = collect_trending_items(api_key, region, option["value"], args.sort, args.shorts)
        except YouTubeAPIError as exc:
            failed[option["value"]] = exc.status_code

    output = {
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
        "region": region,
        "sort": args.sort,
        "shorts": args.shorts,
        "categories": categories,
        "feeds": feeds,
        "failed": failed,
    }
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(output, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"Wrote trending snapshot: {args.output}")
    for category, items in feeds.items():
        print(f"{category}: {len(items)} videos")
    for category, status in failed.items():
        print(f"{category}: failed with {status}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
