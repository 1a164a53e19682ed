import pytest

from backend.app.services import videos as videos_module
from backend.app.services.videos import (
    fetch_channel_thumbnails,
    fetch_ranked_videos,
    filter_shorts,
    rank_videos,
    statistic_value,
)
from backend.app.services.youtube_api import YouTubeAPIError
from backend.tests.fakes import FakeResponse, make_channel, make_search_hit, make_video


def test_rank_videos_descending_for_each_statistic():
    fixture = [
        make_video("a", views=10, likes=5, comments=9),
        make_video("b", views=300, likes=1, comments=None),
        make_video("c", views="not-a-number", likes=50, comments=2),
        make_video("d", views=None, likes=None, comments=40),
    ]
    for sort_key in ("views", "likes", "comments"):
        ranked = rank_videos(fixture, sort_key)
        values = [statistic_value(video, sort_key) for video in ranked]
        assert values == sorted(values, reverse=True)

    assert [v["id"] for v in rank_videos(fixture, "views")] == ["b", "a", "c", "d"]
    assert [v["id"] for v in rank_videos(fixture, "likes")] == ["c", "a", "b", "d"]
    assert [v["id"] for v in rank_videos(fixture, "comments")] == ["d", "a", "c", "b"]


def test_rank_videos_unknown_key_uses_views_and_keeps_tie_order():
    fixture = [
        make_video("first", views=5),
        make_video("big", views=99),
        make_video("second", views=5),
    ]
    ranked = rank_videos(fixture, "dislikes")
    assert [v["id"] for v in ranked] == ["big", "first", "second"]


def test_statistic_value_treats_missing_and_garbage_as_zero():
    assert statistic_value({}, "views") == 0
    assert statistic_value({"statistics": {"viewCount": ""}}, "views") == 0
    assert statistic_value({"statistics": {"viewCount": "abc"}}, "views") == 0
    assert statistic_value({"statistics": {"viewCount": "NaN"}}, "views") == 0
    assert statistic_value({"statistics": {"likeCount": "1200"}}, "likes") == 1200


def test_filter_shorts():
    fixture = [
        make_video("short", duration="PT59S"),
        make_video("edge", duration="PT1M"),
        make_video("long", duration="PT1H2M3S"),
        make_video("unknown", duration=None),
    ]
    kept = filter_shorts(fixture, "exclude")
    assert [v["id"] for v in kept] == ["edge", "long"]
    assert filter_shorts(fixture, "include") == fixture


def test_primary_listing_params(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(200, {"items": [make_video("a")]}))

    items = fetch_ranked_videos(api_key, "KR", "10")

    assert [v["id"] for v in items] == ["a"]
    params = fake_youtube.calls_to("videos")[0]
    assert params["chart"] == "mostPopular"
    assert params["regionCode"] == "KR"
    assert params["videoCategoryId"] == "10"
    assert params["maxResults"] == 24
    assert params["key"] == "test-key"


def test_primary_listing_worldwide_all_sends_no_scope(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(200, {"items": []}))

    assert fetch_ranked_videos(api_key, "WORLD", "all") == []

    params = fake_youtube.calls_to("videos")[0]
    assert "regionCode" not in params
    assert "videoCategoryId" not in params


def test_not_found_for_all_category_does_not_fall_back(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(404, text="chart not found"))
    fake_youtube.on("search", lambda params: FakeResponse(200, {"items": [make_search_hit("x")]}))

    with pytest.raises(YouTubeAPIError) as excinfo:
        fetch_ranked_videos(api_key, "KR", "all")

    assert excinfo.value.status_code == 404
    assert excinfo.value.details == "chart not found"
    assert fake_youtube.calls_to("search") == []


def test_other_primary_failures_are_propagated(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(403, text="quotaExceeded"))

    with pytest.raises(YouTubeAPIError) as excinfo:
        fetch_ranked_videos(api_key, "KR", "25")

    assert excinfo.value.status_code == 403
    assert fake_youtube.calls_to("search") == []


def test_fallback_broadens_to_worldwide_search_and_hydrates(api_key, fake_youtube):
    hydrated = [make_video("s1", views=3), make_video("s2", views=1), make_video("s3", views=2)]

    def videos_handler(params):
        if params.get("chart") == "mostPopular":
            return FakeResponse(404, text="videoChartNotFound")
        assert params["id"] == "s1,s2,s3"
        return FakeResponse(200, {"items": hydrated})

    def search_handler(params):
        if "regionCode" in params:
            return FakeResponse(200, {"items": []})
        return FakeResponse(200, {"items": [make_search_hit(v) for v in ("s1", "s2", "s3")]})

    fake_youtube.on("videos", videos_handler)
    fake_youtube.on("search", search_handler)

    items = fetch_ranked_videos(api_key, "KR", "25")

    assert [v["id"] for v in items] == ["s1", "s2", "s3"]
    searches = fake_youtube.calls_to("search")
    assert len(searches) == 2
    assert searches[0]["regionCode"] == "KR"
    assert "regionCode" not in searches[1]
    for params in searches:
        assert params["videoCategoryId"] == "25"
        assert params["order"] == "viewCount"
        assert params["type"] == "video"


def test_fallback_with_no_results_is_empty_not_error(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(404, text="videoChartNotFound"))
    fake_youtube.on("search", lambda params: FakeResponse(200, {"items": []}))

    assert fetch_ranked_videos(api_key, "KR", "29") == []
    # no hydration call when there is nothing to hydrate
    assert len(fake_youtube.calls_to("videos")) == 1


def test_fallback_regional_search_failure_is_fatal(api_key, fake_youtube):
    fake_youtube.on("videos", lambda params: FakeResponse(404, text="videoChartNotFound"))
    fake_youtube.on("search", lambda params: FakeResponse(400, text="invalidCategoryId"))

    with pytest.raises(YouTubeAPIError) as excinfo:
        fetch_ranked_videos(api_key, "KR", "29")

    assert excinfo.value.status_code == 400
    assert len(fake_youtube.calls_to("search")) == 1


def test_fallback_worldwide_search_failure_yields_empty(api_key, fake_youtube):
    def search_handler(params):
        if "regionCode" in params:
            return FakeResponse(200, {"items": []})
        return FakeResponse(500, text="backendError")

    fake_youtube.on("videos", lambda params: FakeResponse(404, text="videoChartNotFound"))
    fake_youtube.on("search", search_handler)

    assert fetch_ranked_videos(api_key, "KR", "29") == []


def test_fallback_hydration_failure_yields_empty(api_key, fake_youtube):
    def videos_handler(params):
        if params.get("chart") == "mostPopular":
            return FakeResponse(404, text="videoChartNotFound")
        return FakeResponse(500, text="backendError")

    fake_youtube.on("videos", videos_handler)
    fake_youtube.on("search", lambda params: FakeResponse(200, {"items": [make_search_hit("x")]}))

    assert fetch_ranked_videos(api_key, "KR", "29") == []
    hydration = [params for params in fake_youtube.calls_to("videos") if "id" in params]
    assert len(hydration) == 1
    assert hydration[0]["id"] == "x"


def test_channel_thumbnails_dedupes_and_prefers_medium(api_key, fake_youtube):
    fixture = [
        make_video("a", channel_id="UC_ONE"),
        make_video("b", channel_id="UC_ONE"),
        make_video("c", channel_id="UC_TWO"),
        make_video("d", channel_id=None),
    ]
    fake_youtube.on(
        "channels",
        lambda params: FakeResponse(
            200,
            {
                "items": [
                    make_channel("UC_ONE", medium="https://yt3/one_m.jpg", default="https://yt3/one_d.jpg"),
                    make_channel("UC_TWO", default="https://yt3/two_d.jpg"),
                ]
            },
        ),
    )

    mapping = fetch_channel_thumbnails(api_key, fixture)

    assert mapping == {"UC_ONE": "https://yt3/one_m.jpg", "UC_TWO": "https://yt3/two_d.jpg"}
    calls = fake_youtube.calls_to("channels")
    assert len(calls) == 1
    assert sorted(calls[0]["id"].split(",")) == ["UC_ONE", "UC_TWO"]


def test_channel_thumbnails_failure_degrades_to_empty(api_key, fake_youtube):
    fake_youtube.on("channels", lambda params: FakeResponse(500, text="backendError"))

    assert fetch_channel_thumbnails(api_key, [make_video("a", channel_id="UC_ONE")]) == {}


def test_channel_thumbnails_skips_lookup_without_channels(api_key, fake_youtube):
    assert fetch_channel_thumbnails(api_key, [make_video("a", channel_id=None)]) == {}
    assert fake_youtube.calls_to("channels") == []


def test_channel_thumbnails_truncates_to_lookup_limit(api_key, fake_youtube, monkeypatch):
    monkeypatch.setattr(videos_module, "CHANNEL_LOOKUP_LIMIT", 2)
    fake_youtube.on("channels", lambda params: FakeResponse(200, {"items": []}))

    fixture = [make_video(str(i), channel_id=f"UC_{i}") for i in range(5)]
    fetch_channel_thumbnails(api_key, fixture)

    params = fake_youtube.calls_to("channels")[0]
    assert params["id"] == "UC_0,UC_1"
