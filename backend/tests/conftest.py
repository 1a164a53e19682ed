import pytest

import backend.main as main_module
from backend.app.services import youtube_api
from backend.tests.fakes import FakeYouTube


@pytest.fixture(autouse=True)
def reset_state():
    youtube_api.CACHE.clear()
    main_module.API_RATE_LIMIT_BUCKETS.clear()
    yield
    youtube_api.CACHE.clear()
    main_module.API_RATE_LIMIT_BUCKETS.clear()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("YOUTUBE_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def fake_youtube(monkeypatch):
    fake = FakeYouTube()
    monkeypatch.setattr(youtube_api.requests, "get", fake)
    return fake
