import random

import pytest

import youtube
from fakes import FakeResponse, FakeSession


def test_parse_duration():
    assert youtube.parse_duration("PT4M13S") == 253
    assert youtube.parse_duration("PT1H2M3S") == 3723
    assert youtube.parse_duration("PT45S") == 45
    assert youtube.parse_duration("P1D") == 0
    assert youtube.parse_duration("") == 0


@pytest.mark.parametrize("url", [
    "https://www.youtube.com/watch?v=4NRXx6U8ABQ",
    "https://www.youtube.com/watch?feature=share&v=4NRXx6U8ABQ",
    "https://youtu.be/4NRXx6U8ABQ",
    "https://www.youtube.com/embed/4NRXx6U8ABQ?autoplay=1",
])
def test_extract_video_id(url):
    assert youtube.extract_video_id(url) == "4NRXx6U8ABQ"


def test_extract_video_id_rejects_other_urls():
    assert youtube.extract_video_id("https://example.com/watch?v=4NRXx6U8ABQ") is None


def test_playlist_url_helpers():
    url = "https://www.youtube.com/playlist?list=PLabc123&si=xyz"
    assert youtube.is_playlist_url(url)
    assert youtube.extract_playlist_id(url) == "PLabc123"
    assert not youtube.is_playlist_url("https://www.youtube.com/watch?v=4NRXx6U8ABQ")
    assert youtube.extract_playlist_id("https://www.youtube.com/playlist") is None


def test_clip_start_leaves_room_at_the_end():
    rng = random.Random(0)
    starts = [youtube.clip_start(60, rng) for _ in range(200)]
    assert min(starts) >= 0 and max(starts) < 30
    assert youtube.clip_start(10, rng) == 0
    assert all(youtube.clip_start(None, rng) < 150 for _ in range(50))


def test_embed_url():
    url = youtube.embed_url("4NRXx6U8ABQ", start=42)
    assert url == ("https://www.youtube.com/embed/4NRXx6U8ABQ"
                   "?autoplay=1&start=42&controls=0&rel=0&modestbranding=1")


def test_missing_api_key():
    client = youtube.YouTubeClient(api_key="", session=FakeSession(lambda *a: FakeResponse()))
    with pytest.raises(youtube.YouTubeAPIError, match="not configured"):
        client.get_playlist("PL1")


@pytest.mark.parametrize("status,reason,expected", [
    (403, "quotaExceeded", "quota exceeded"),
    (403, "forbidden", "access forbidden"),
    (403, "other", "access denied"),
    (400, "badRequest", "Invalid request"),
    (404, "playlistNotFound", "Playlist not found"),
])
def test_api_errors_are_translated(status, reason, expected):
    def handler(method, url, params, data):
        return FakeResponse(status, {"error": {"code": status, "message": "boom", "errors": [{"reason": reason}]}})

    client = youtube.YouTubeClient(api_key="k", session=FakeSession(handler))
    with pytest.raises(youtube.YouTubeAPIError, match=expected) as exc:
        client.get_playlist("PL1")
    assert exc.value.status_code == status


@pytest.mark.parametrize("status,expected", [
    (403, "Cannot access playlist items"),
    (404, "Playlist items not found"),
])
def test_playlist_item_errors_have_their_own_messages(status, expected):
    def handler(method, url, params, data):
        return FakeResponse(status, {"error": {"code": status, "message": "quotaExceeded",
                                               "errors": [{"reason": "quotaExceeded"}]}})

    client = youtube.YouTubeClient(api_key="k", session=FakeSession(handler))
    with pytest.raises(youtube.YouTubeAPIError, match=expected):
        client.get_playlist_video_ids("PL1")


def test_playlist_items_follow_pages():
    def handler(method, url, params, data):
        assert params["key"] == "k"
        if params.get("pageToken") == "next":
            return FakeResponse(200, {"items": [{"snippet": {"resourceId": {"videoId": "c"}}}]})
        return FakeResponse(200, {
            "items": [{"snippet": {"resourceId": {"videoId": "a"}}}, {"snippet": {"resourceId": {}}},
                      {"snippet": {"resourceId": {"videoId": "b"}}}],
            "nextPageToken": "next",
        })

    client = youtube.YouTubeClient(api_key="k", session=FakeSession(handler))
    assert client.get_playlist_video_ids("PL1") == ["a", "b", "c"]
    assert client.get_playlist_video_ids("PL1", max_items=2) == ["a", "b"]


def test_get_videos_batches_ids():
    ids = [f"v{i}" for i in range(60)]

    def handler(method, url, params, data):
        return FakeResponse(200, {"items": [{"id": v} for v in params["id"].split(",")]})

    session = FakeSession(handler)
    client = youtube.YouTubeClient(api_key="k", session=session)
    found = client.get_videos(ids)
    assert len(found) == 60
    assert len(session.calls) == 2


def test_video_to_song():
    video = {
        "id": "4NRXx6U8ABQ",
        "snippet": {
            "title": "Blinding Lights",
            "channelTitle": "The Weeknd",
            "thumbnails": {"high": {"url": "https://i.ytimg.com/hq.jpg"}},
        },
        "contentDetails": {"duration": "PT3M20S"},
    }
    assert youtube.video_to_song(video) == {
        "title": "Blinding Lights",
        "artist": "The Weeknd",
        "audio_url": "https://www.youtube.com/watch?v=4NRXx6U8ABQ",
        "youtube_id": "4NRXx6U8ABQ",
        "duration": 200,
        "album_art": "https://i.ytimg.com/hq.jpg",
    }
