import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CRITERIA = ["views", "likes", "comments"]


def reconcile_order(stored: list[Any] | None, allowed: list[str]) -> list[str]:
    """
    Keep the stored values that are still valid, then append any valid values
    the stored order does not mention yet.
    """
    allowed_set = set(allowed)
    ordered: list[str] = []
    for value in stored or []:
        if isinstance(value, str) and value in allowed_set and value not in ordered:
            ordered.append(value)
    ordered.extend(value for value in allowed if value not in ordered)
    return ordered


def default_preferences() -> dict[str, Any]:
    return {
        "categoryOrder": [],
        "criterionOrder": list(CRITERIA),
        "darkMode": False,
        "updatedAt": None,
    }


def _clean_category_order(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    cleaned: list[str] = []
    for value in values:
        if isinstance(value, str) and value and value not in cleaned:
            cleaned.append(value)
    return cleaned


def normalize_preferences(raw: dict[str, Any]) -> dict[str, Any]:
    prefs = default_preferences()
    prefs["categoryOrder"] = _clean_category_order(raw.get("categoryOrder"))
    prefs["criterionOrder"] = reconcile_order(raw.get("criterionOrder"), CRITERIA)
    prefs["darkMode"] = raw.get("darkMode") is True
    updated_at = raw.get("updatedAt")
    prefs["updatedAt"] = updated_at if isinstance(updated_at, str) else None
    return prefs


class PreferencesStore:
    """Per-client dashboard preferences persisted as one JSON document."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()
        self._entries: dict[str, dict[str, Any]] = {}

    def load(self) -> None:
        with self._lock:
            self._entries.clear()
            try:
                if not self.path.exists():
                    return
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("Ignoring unreadable preferences file %s: %s", self.path, exc)
                return
            if not isinstance(raw, dict):
                return
            for client_id, value in raw.items():
                if isinstance(client_id, str) and isinstance(value, dict):
                    self._entries[client_id] = normalize_preferences(value)

    def get(self, client_id: str) -> dict[str, Any]:
        with self._lock:
            entry = self._entries.get(client_id)
        if entry is None:
            return default_preferences()
        return dict(entry)

    def update(self, client_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            current = self._entries.get(client_id) or default_preferences()
            merged = {**current, **changes}
            merged["updatedAt"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
            entry = normalize_preferences(merged)
            self._entries[client_id] = entry
            self._persist(dict(self._entries))
        return dict(entry)

    def _persist(self, snapshot: dict[str, dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(snapshot, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
