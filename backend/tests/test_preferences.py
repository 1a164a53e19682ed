import threading

from backend.app.services.preferences import PreferencesStore, reconcile_order


def test_reconcile_order_drops_unknown_and_appends_missing():
    allowed = ["all", "10", "20", "24"]
    assert reconcile_order(["24", "gone", "10", "24"], allowed) == ["24", "10", "all", "20"]
    assert reconcile_order(None, allowed) == allowed
    assert reconcile_order(["10", 7, None], allowed) == ["10", "all", "20", "24"]
    assert reconcile_order(["10"], []) == []


def test_store_defaults_for_unknown_client(tmp_path):
    store = PreferencesStore(tmp_path / "prefs.json")
    store.load()
    prefs = store.get("nobody")
    assert prefs["categoryOrder"] == []
    assert prefs["criterionOrder"] == ["views", "likes", "comments"]
    assert prefs["darkMode"] is False
    assert prefs["updatedAt"] is None


def test_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    store = PreferencesStore(path)
    store.load()
    assert store.get("browser-1")["darkMode"] is False


def test_store_persists_and_normalizes(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    store = PreferencesStore(path)
    saved = store.update("browser-1", {"darkMode": True, "criterionOrder": ["likes"]})
    assert saved["criterionOrder"] == ["likes", "views", "comments"]
    assert saved["updatedAt"].endswith("Z")
    assert path.exists()

    reloaded = PreferencesStore(path)
    reloaded.load()
    assert reloaded.get("browser-1") == saved


def test_concurrent_updates_all_reach_disk(tmp_path):
    path = tmp_path / "prefs.json"
    store = PreferencesStore(path)
    client_ids = [f"browser-{i}" for i in range(20)]

    threads = [
        threading.Thread(target=store.update, args=(client_id, {"darkMode": True}))
        for client_id in client_ids
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reloaded = PreferencesStore(path)
    reloaded.load()
    for client_id in client_ids:
        assert reloaded.get(client_id)["darkMode"] is True
