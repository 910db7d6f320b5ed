"""测试 HTTP 层：upload / download / stream-download / aioptimize 与错误映射"""
import pytest
from fastapi.testclient import TestClient

from subkit.config import ServiceConfig
from subkit.pipeline.processors.rate_limit import RateLimiter
from subkit.web import create_app

from conftest import SAMPLE_SRT, EchoOptimizer, UpstreamFailure

WIRE = [
    {"index": 1, "start": 1000, "end": 2500, "content": "Hello"},
    {"index": 2, "start": 3000, "end": 4000, "content": "World"},
]


def _client(optimizer_factory=None, max_requests=10, **config_kwargs) -> TestClient:
    config = ServiceConfig(rate_limit_max_requests=max_requests, **config_kwargs)
    app = create_app(
        config,
        rate_limiter=RateLimiter(max_per_window=max_requests),
        optimizer_factory=optimizer_factory or (lambda api_key: EchoOptimizer()),
    )
    return TestClient(app)


@pytest.fixture
def client() -> TestClient:
    return _client()


# ── upload ──

def test_upload_srt(client):
    resp = client.post(
        "/api/upload",
        files={"file": ("movie.srt", SAMPLE_SRT.encode("utf-8"), "application/x-subrip")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["format"] == "srt"
    assert [c["index"] for c in body["data"]] == [1, 2, 3]
    assert body["data"][0]["content"] == "Hello there"
    assert body["data"][0]["type"] == "caption"


def test_upload_requires_multipart(client):
    resp = client.post("/api/upload", json={"file": "x"})
    assert resp.status_code == 415
    assert resp.json()["kind"] == "ValidationError"


def test_upload_without_file(client):
    resp = client.post("/api/upload", files={"other": ("a.srt", b"x", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["error"] == "No file provided"


def test_upload_bad_extension(client):
    resp = client.post("/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "UnsupportedFormatError"


def test_upload_too_large():
    client = _client(max_file_size=16)
    resp = client.post("/api/upload", files={"file": ("movie.srt", SAMPLE_SRT.encode("utf-8"), "text/plain")})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "ValidationError"


def test_upload_unparseable(client):
    resp = client.post("/api/upload", files={"file": ("clip.sbv", b"garbage\nmore\n", "text/plain")})
    assert resp.status_code == 422
    assert resp.json()["kind"] == "ParseError"


def test_upload_rate_limited():
    client = _client(max_requests=2)
    files = {"file": ("movie.srt", SAMPLE_SRT.encode("utf-8"), "text/plain")}
    assert client.post("/api/upload", files=files).status_code == 200
    assert client.post("/api/upload", files=files).status_code == 200
    resp = client.post("/api/upload", files=files)
    assert resp.status_code == 429
    assert resp.json() == {
        "success": False,
        "error": "Too many requests. Please try again later.",
        "kind": "RateLimitError",
    }


# ── download ──

def test_download_vtt(client):
    resp = client.post("/api/download", json={"subtitles": WIRE, "format": "vtt", "filename": "movie.srt"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/vtt")
    assert 'filename="movie-subtitletranslatorai.com.vtt"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"\xef\xbb\xbfWEBVTT")


def test_download_json_has_no_bom(client):
    resp = client.post("/api/download", json={"subtitles": WIRE, "format": "json", "filename": "movie.srt"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json()[1]["content"] == "World"


def test_download_unknown_format(client):
    resp = client.post("/api/download", json={"subtitles": WIRE, "format": "docx", "filename": "movie.srt"})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "UnsupportedFormatError"


def test_download_empty_subtitles(client):
    resp = client.post("/api/download", json={"subtitles": [], "format": "srt", "filename": "movie.srt"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "No valid subtitles provided"


def test_download_bad_timing(client):
    bad = [{"index": 1, "start": 5000, "end": 1000, "content": "x"}]
    resp = client.post("/api/download", json={"subtitles": bad, "format": "srt", "filename": "movie.srt"})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "SerializationError"


def test_stream_download_matches_download():
    client = _client(stream_window=1)
    payload = {"subtitles": WIRE, "format": "srt", "filename": "movie.srt"}
    streamed = client.post("/api/stream-download", json=payload)
    whole = client.post("/api/download", json=payload)
    assert streamed.status_code == 200
    assert streamed.headers["cache-control"] == "no-cache"
    assert streamed.headers["x-content-type-options"] == "nosniff"
    assert streamed.content == whole.content


@pytest.mark.parametrize("route", ["/api/download", "/api/stream-download"])
def test_download_routes_sanitize_client_text(client, route):
    hostile = [{"index": 1, "start": 0, "end": 1000, "content": "<script>alert(1)</script>hi"}]
    resp = client.post(route, json={"subtitles": hostile, "format": "srt", "filename": "movie.srt"})
    assert resp.status_code == 200
    body = resp.content.decode("utf-8-sig")
    assert "<script>" not in body
    assert "\nalert(1)hi\n" in body


def test_stream_download_unknown_format(client):
    resp = client.post("/api/stream-download", json={"subtitles": WIRE, "format": "docx", "filename": "m.srt"})
    assert resp.status_code == 400


# ── aioptimize ──

def test_optimize_success(client):
    resp = client.post("/api/aioptimize", json={
        "apiKey": "key",
        "subtitles": [
            {"index": 3, "content": "third"},
            {"index": 1, "content": "first"},
            {"index": 2, "content": "  "},
        ],
    })
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "optimized": [{"index": 1, "content": "FIRST"}, {"index": 3, "content": "THIRD"}],
    }


def test_optimize_too_many_items(client):
    subtitles = [{"index": i, "content": f"line {i}"} for i in range(1, 61)]
    resp = client.post("/api/aioptimize", json={"apiKey": "key", "subtitles": subtitles})
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "BatchSizeError"
    assert "Maximum 50" in body["error"]


def test_optimize_missing_key(client):
    resp = client.post("/api/aioptimize", json={"apiKey": "", "subtitles": [{"index": 1, "content": "x"}]})
    assert resp.status_code == 400
    assert resp.json()["error"] == "API key is required"


def test_optimize_empty_subtitles(client):
    resp = client.post("/api/aioptimize", json={"apiKey": "key", "subtitles": []})
    assert resp.status_code == 400


def test_optimize_invalid_body(client):
    resp = client.post("/api/aioptimize", json={"apiKey": "key", "subtitles": [{"index": "abc"}]})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "ValidationError"


def test_optimize_auth_failure():
    class Rejecting:
        async def generate(self, prompt):
            raise UpstreamFailure("permission denied", code=403)

    client = _client(optimizer_factory=lambda api_key: Rejecting())
    resp = client.post("/api/aioptimize", json={"apiKey": "bad", "subtitles": [{"index": 1, "content": "x"}]})
    assert resp.status_code == 401
    assert resp.json()["kind"] == "UpstreamAuthError"


def test_optimize_malformed_upstream():
    class Chatty:
        async def generate(self, prompt):
            return "Here you go!"

    client = _client(optimizer_factory=lambda api_key: Chatty())
    resp = client.post("/api/aioptimize", json={"apiKey": "key", "subtitles": [{"index": 1, "content": "x"}]})
    assert resp.status_code == 502
    assert resp.json()["kind"] == "UpstreamFormatError"


# ── misc ──

def test_formats_and_health(client):
    formats = client.get("/api/formats").json()["formats"]
    assert [f["name"] for f in formats] == ["srt", "vtt", "sub", "sbv", "lrc", "smi", "ssa", "ass", "json"]
    assert client.get("/api/health").json()["status"] == "ok"


def test_forwarded_for_identifies_client():
    client = _client(max_requests=1)
    payload = {"apiKey": "key", "subtitles": [{"index": 1, "content": "x"}]}
    assert client.post("/api/aioptimize", json=payload, headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200
    assert client.post("/api/aioptimize", json=payload, headers={"X-Forwarded-For": "10.0.0.2, 1.1.1.1"}).status_code == 200
    assert client.post("/api/aioptimize", json=payload, headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429
