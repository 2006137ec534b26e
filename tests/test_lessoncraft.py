"""
Tests for the R2 client, the LessonCraft asset dashboard and voice synthesis.
"""
from unittest.mock import patch, MagicMock

import pytest
import requests

from command_center.errors import ConfigError, UpstreamError, ValidationError
from command_center.integrations.lessoncraft import (
    build_dashboard, category_from_key, fetch_catalog, infer_series_category, is_artwork_image,
)
from command_center.integrations.r2 import R2Client, proxy_headers, safe_filename
from command_center.integrations.voice import TTS_URL, synthesize


def _response(status=200, payload=None, text="", headers=None):
    r = MagicMock()
    r.status_code = status
    r.ok = status < 400
    r.text = text
    r.headers = headers or {}
    if isinstance(payload, Exception):
        r.json.side_effect = payload
    else:
        r.json.return_value = payload
    return r


def _client(**kw):
    return R2Client("acct", "ops@example.com", "key", "lessoncraft-audio", **kw)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# R2
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_client_requires_credentials():
    with pytest.raises(ConfigError):
        R2Client("", "ops@example.com", "key", "bucket")


@patch("command_center.integrations.r2.requests.get")
class TestListObjects:

    def test_follows_cursor(self, mock_get):
        mock_get.side_effect = [
            _response(payload={"success": True, "result": [{"key": "a"}],
                               "result_info": {"is_truncated": True, "cursor": "c1"}}),
            _response(payload={"success": True, "result": [{"key": "b"}],
                               "result_info": {"is_truncated": False}}),
        ]
        objects = _client().list_objects()

        assert [o["key"] for o in objects] == ["a", "b"]
        second_params = mock_get.call_args_list[1][1]["params"]
        assert second_params["cursor"] == "c1"
        headers = mock_get.call_args_list[0][1]["headers"]
        assert headers["X-Auth-Email"] == "ops@example.com"

    def test_page_cap(self, mock_get):
        mock_get.return_value = _response(payload={
            "success": True, "result": [],
            "result_info": {"is_truncated": True, "cursor": "again"},
        })
        with pytest.raises(UpstreamError, match="safety limit"):
            _client(max_pages=3).list_objects()
        assert mock_get.call_count == 3

    def test_http_error(self, mock_get):
        mock_get.return_value = _response(status=403, text="forbidden")
        with pytest.raises(UpstreamError) as exc:
            _client().list_objects()
        assert exc.value.status == 403
        assert exc.value.details == "forbidden"

    def test_api_error_messages(self, mock_get):
        mock_get.return_value = _response(payload={
            "success": False, "errors": [{"message": "bucket missing"}, {"code": 1}],
        })
        with pytest.raises(UpstreamError, match="bucket missing"):
            _client().list_objects()

    def test_invalid_json(self, mock_get):
        mock_get.return_value = _response(payload=ValueError("bad"))
        with pytest.raises(UpstreamError, match="invalid JSON"):
            _client().list_objects()


@patch("command_center.integrations.r2.requests.get")
def test_open_object_streams_with_range(mock_get):
    mock_get.return_value = _response(status=206)
    r = _client().open_object("audio/ep 1.mp3", "bytes=0-99")

    assert r.status_code == 206
    url = mock_get.call_args[0][0]
    assert url.endswith("/objects/audio%2Fep%201.mp3")
    assert mock_get.call_args[1]["headers"]["Range"] == "bytes=0-99"
    assert mock_get.call_args[1]["stream"] is True


@patch("command_center.integrations.r2.requests.get")
def test_open_object_error_closes(mock_get):
    upstream = _response(status=404, text="no such key")
    mock_get.return_value = upstream
    with pytest.raises(UpstreamError) as exc:
        _client().open_object("missing.mp3")
    assert exc.value.status == 404
    upstream.close.assert_called_once()


def test_proxy_headers():
    headers = proxy_headers(
        {"content-type": "audio/mpeg", "content-range": "bytes 0-99/1000", "x-amz-id": "z"},
        'easter/"ep1".mp3', download=True,
    )
    assert headers == {
        "content-type": "audio/mpeg",
        "content-range": "bytes 0-99/1000",
        "content-disposition": 'attachment; filename="ep1.mp3"',
    }
    assert safe_filename("") == "lessoncraft-asset"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Dashboard
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_category_from_key():
    assert category_from_key("Easter/ep1.mp3") == "Easter"
    assert category_from_key("documentary/s1/e1.mp3") == "CFM Documentary"
    assert category_from_key("misc/readme.txt") == "Other"


def test_infer_series_category():
    assert infer_series_category({"title": "Easter Week"}) == "Easter"
    assert infer_series_category({"description": "Come, Follow Me study"}) == "CFM Documentary"
    from_audio = {"title": "Untitled", "episodes": [{"segments": [{"audioUrl": "firesides/a.mp3"}]}]}
    assert infer_series_category(from_audio) == "Firesides"
    artwork_audio = {"episodes": [{"segments": [{"audioUrl": "artwork/a.mp3"}]}]}
    assert infer_series_category(artwork_audio) == "Other"


def test_is_artwork_image():
    assert is_artwork_image({"key": "artwork/easter/tomb.PNG"})
    assert not is_artwork_image({"key": "artwork/notes.txt"})
    assert not is_artwork_image({"key": "easter/cover.png"})


def test_build_dashboard():
    catalog = {
        "version": 7,
        "updatedAt": "2026-09-30",
        "series": [{
            "id": "easter-2026",
            "title": "Easter",
            "episodes": [
                {"id": "e1", "segments": [{"audioUrl": "easter/e1-a.mp3"},
                                          {"audioUrl": "easter/e1-b.mp3"}]},
                {"id": "e2", "segments": [{"audioUrl": "easter/e2-a.mp3"}]},
                {"id": "e3", "segments": [], "audioAvailable": True},
            ],
        }],
    }
    objects = [
        {"key": "easter/e1-a.mp3", "size": 100, "http_metadata": {"contentType": "audio/mpeg"}},
        {"key": "easter/e1-b.mp3", "size": 50},
        {"key": "artwork/easter/tomb.png", "size": 10, "last_modified": "2026-09-01"},
        {"key": "loose.bin", "size": 1},
    ]

    data = build_dashboard(catalog, objects, "2026-10-19T00:00:00.000Z")

    assert data["catalog"] == {"version": 7, "updatedAt": "2026-09-30"}
    overview = data["overview"]
    assert overview["totalFiles"] == 4
    assert overview["totalBytes"] == 161
    easter = next(c for c in overview["categoryBreakdown"] if c["category"] == "Easter")
    assert easter == {"category": "Easter", "files": 2, "bytes": 150}
    assert overview["completionByCategory"]["Easter"] == {"completed": 2, "total": 3}

    (series,) = data["series"]
    e1, e2, e3 = series["episodes"]
    assert e1["isComplete"] and e1["completedSegments"] == 2
    assert e1["segments"][0]["contentType"] == "audio/mpeg"
    assert not e2["hasAudio"] and not e2["isComplete"]
    assert e3["isComplete"]
    assert series["totals"]["segments"] == 3

    (art,) = data["artwork"]
    assert art["filename"] == "tomb.png"
    assert art["category"] == "easter"


@patch("command_center.integrations.lessoncraft.requests.get")
def test_fetch_catalog_errors(mock_get):
    mock_get.return_value = _response(status=502, text="bad gateway")
    with pytest.raises(UpstreamError) as exc:
        fetch_catalog("https://catalog")
    assert exc.value.status == 502

    mock_get.side_effect = requests.ConnectionError("down")
    with pytest.raises(UpstreamError):
        fetch_catalog("https://catalog")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Voice
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestSynthesize:

    def test_validation(self):
        with pytest.raises(ValidationError):
            synthesize("", "hello", api_key="k")
        with pytest.raises(ValidationError):
            synthesize("v1", "", api_key="k")
        with pytest.raises(ConfigError):
            synthesize("v1", "hello", api_key="")

    @patch("command_center.integrations.voice.requests.post")
    def test_returns_audio(self, mock_post):
        resp = _response()
        resp.content = b"ID3audio"
        mock_post.return_value = resp

        audio = synthesize("v1", "hello", api_key="k", stability=0.3, similarity=0.9)

        assert audio == b"ID3audio"
        args, kwargs = mock_post.call_args
        assert args[0] == TTS_URL.format(voice_id="v1")
        assert kwargs["headers"]["xi-api-key"] == "k"
        assert kwargs["json"]["voice_settings"]["stability"] == 0.3
        assert kwargs["json"]["voice_settings"]["similarity_boost"] == 0.9

    @patch("command_center.integrations.voice.requests.post")
    def test_upstream_error_message(self, mock_post):
        mock_post.return_value = _response(status=401, payload={"detail": {"message": "Invalid key"}})
        with pytest.raises(UpstreamError, match="Invalid key") as exc:
            synthesize("v1", "hello", api_key="k")
        assert exc.value.status == 401

    @patch("command_center.integrations.voice.requests.post")
    def test_upstream_error_without_json(self, mock_post):
        mock_post.return_value = _response(status=500, payload=ValueError("html"))
        with pytest.raises(UpstreamError, match="Generation failed"):
            synthesize("v1", "hello", api_key="k")
