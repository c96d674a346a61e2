#!/usr/bin/env python3
"""
Smoke E2E test: walks the hosting flow against a running server.

Creates a private podcast, uploads a tiny audio file, publishes an episode,
reads the private feed (including a conditional 304), plays the episode
and checks that the play shows up in analytics. Cleans up after itself.

Requires an existing admin account on a starter or pro plan.

Env vars:
  BASE_URL        (default http://localhost:8000)
  SMOKE_EMAIL     admin email
  SMOKE_PASSWORD  admin password
  KEEP_DATA       set to 1 to skip the final delete
"""
from __future__ import annotations

import json
import os
import sys
import time
from datetime import datetime, timedelta, timezone
from urllib.error import HTTPError, URLError
from urllib.request import HTTPRedirectHandler, Request, build_opener, urlopen

BASE_URL = os.environ.get("BASE_URL", "http://localhost:8000").rstrip("/")
SMOKE_EMAIL = os.environ.get("SMOKE_EMAIL", "")
SMOKE_PASSWORD = os.environ.get("SMOKE_PASSWORD", "")
KEEP_DATA = os.environ.get("KEEP_DATA") == "1"

SMOKE_TAG = f"smoke_{int(time.time())}"
# Smallest valid-looking MPEG frame header followed by padding.
SAMPLE_AUDIO = b"\xff\xfb\x90\x64" + b"\x00" * 412

_token: str | None = None

# ── Helpers ──────────────────────────────────────────────────

class SmokeError(Exception):
    pass


class _NoRedirect(HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):
        return None


def _headers(extra: dict[str, str] | None = None) -> dict[str, str]:
    h = {"Content-Type": "application/json"}
    if _token:
        h["Authorization"] = f"Bearer {_token}"
    if extra:
        h.update(extra)
    return h


def _req(method: str, path: str, body: dict | None = None, expect: int = 200) -> dict:
    url = f"{BASE_URL}{path}"
    data = json.dumps(body).encode() if body is not None else None
    req = Request(url, data=data, headers=_headers(), method=method)
    try:
        with urlopen(req, timeout=30) as resp:
            raw = resp.read().decode()
            return json.loads(raw) if raw else {}
    except HTTPError as e:
        raw = e.read().decode()[:500]
        if e.code == expect:
            return json.loads(raw) if raw else {}
        raise SmokeError(f"{method} {path} → {e.code}: {raw}")
    except URLError as e:
        raise SmokeError(f"{method} {path} → URLError: {e}")


def _raw(method: str, url: str, data: bytes | None = None, headers: dict[str, str] | None = None):
    """Returns (status, headers, body) without following redirects or raising on 3xx/4xx."""
    opener = build_opener(_NoRedirect)
    req = Request(url, data=data, headers=headers or {}, method=method)
    try:
        with opener.open(req, timeout=30) as resp:
            return resp.status, resp.headers, resp.read()
    except HTTPError as e:
        return e.code, e.headers, e.read()
    except URLError as e:
        raise SmokeError(f"{method} {url} → URLError: {e}")


def GET(path: str) -> dict:
    return _req("GET", path)


def POST(path: str, body: dict | None = None, expect: int = 200) -> dict:
    return _req("POST", path, body if body is not None else {}, expect)


def PATCH(path: str, body: dict | None = None) -> dict:
    return _req("PATCH", path, body)


def step(name: str):
    print(f"\n{'='*60}")
    print(f"  STEP: {name}")
    print(f"{'='*60}")


def ok(msg: str):
    print(f"  ✅ {msg}")


def fail(msg: str):
    print(f"  ❌ {msg}")
    raise SmokeError(msg)


# ── Steps ────────────────────────────────────────────────────

def step1_health():
    step("1. Health check")
    data = GET("/ping")
    if data.get("status") != "ok":
        fail(f"Unexpected /ping response: {data}")
    ok("Server is up")


def step2_login() -> dict:
    global _token
    step("2. Log in")
    if not SMOKE_EMAIL or not SMOKE_PASSWORD:
        fail("SMOKE_EMAIL and SMOKE_PASSWORD must be set")
    session = POST("/api/auth/login", {"email": SMOKE_EMAIL, "password": SMOKE_PASSWORD})
    _token = session["token"]
    user = session["user"]
    ok(f"Logged in as {user['email']} (plan={user['plan']})")
    if user["plan"] == "free":
        fail("Smoke account must be on a starter or pro plan for analytics")
    return user


def step3_create_podcast() -> dict:
    step("3. Create private podcast")
    podcast = POST("/api/podcasts", {
        "title": f"Smoke Podcast {SMOKE_TAG}",
        "description": "Automated smoke test podcast",
        "category": "Technology",
        "language": "en",
        "visibility": "private",
        "contact_email": "smoke@example.com",
    }, expect=201)
    ok(f"Podcast {podcast['id']} created")
    ok(f"Private RSS: {podcast['private_rss_url']}")
    return podcast


def step4_upload_audio() -> str:
    step("4. Upload audio asset")
    reserved = POST("/api/assets/upload-url", {
        "type": "audio",
        "file_name": f"{SMOKE_TAG}.mp3",
        "content_type": "audio/mpeg",
        "byte_size": len(SAMPLE_AUDIO),
    }, expect=201)
    asset_id = reserved["asset_id"]
    upload = reserved["upload"]

    status, _, body = _raw(
        upload["method"],
        f"{BASE_URL}{upload['url']}",
        SAMPLE_AUDIO,
        _headers(upload["headers"]),
    )
    if status != 200:
        fail(f"Upload failed: {status} {body[:200]!r}")

    asset = POST(f"/api/assets/{asset_id}/complete", {})
    ok(f"Asset {asset_id} stored ({asset['byte_size']} bytes) at {asset['public_url']}")
    return asset_id


def step5_publish_episode(podcast_id: str, asset_id: str) -> dict:
    step("5. Create, attach and publish episode")
    episode = POST(f"/api/podcasts/{podcast_id}/episodes", {"title": f"Smoke Episode {SMOKE_TAG}"}, expect=201)
    eid = episode["id"]
    ok(f"Draft episode {eid}")

    POST(f"/api/podcasts/{podcast_id}/episodes/{eid}/audio", {"audio_asset_id": asset_id, "duration_seconds": 61})
    ok("Audio attached (1:01)")

    published_at = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    episode = PATCH(f"/api/podcasts/{podcast_id}/episodes/{eid}", {
        "status": "published",
        "published_at": published_at,
    })
    if episode["status"] != "published":
        fail(f"Episode not published: {episode['status']}")
    ok(f"Episode published at {episode['published_at']}")
    return episode


def step6_feed(podcast: dict, episode: dict):
    step("6. Read private RSS feed")
    status, _, _ = _raw("GET", podcast["public_rss_url"])
    if status != 404:
        fail(f"Private feed without token returned {status}, expected 404")
    ok("Tokenless request is hidden (404)")

    status, headers, body = _raw("GET", podcast["private_rss_url"])
    if status != 200:
        fail(f"Private feed returned {status}")
    xml = body.decode()
    if f"/play/{episode['id']}" not in xml:
        fail("Episode enclosure missing from feed")
    etag = headers.get("ETag")
    ok(f"Feed OK: {len(body)} bytes, ETag={etag}, Last-Modified={headers.get('Last-Modified')}")

    status, _, _ = _raw("GET", podcast["private_rss_url"], headers={"If-None-Match": etag})
    if status != 304:
        fail(f"Conditional GET returned {status}, expected 304")
    ok("Conditional GET → 304")


def step7_play(episode: dict):
    step("7. Play episode")
    status, headers, _ = _raw(
        "GET",
        f"{BASE_URL}/play/{episode['id']}",
        headers={"User-Agent": "AppleCoreMedia/1.0.0 (smoke)", "CF-IPCountry": "JP"},
    )
    if status != 302:
        fail(f"Play returned {status}, expected 302")
    ok(f"Redirect → {headers.get('Location')}")


def step8_analytics(podcast_id: str, episode: dict):
    step("8. Analytics")
    overview = GET(f"/api/podcasts/{podcast_id}/analytics/overview?months=1")
    if overview["current_month_plays"] < 1:
        fail(f"Play not counted: {overview}")
    ok(f"Current month plays: {overview['current_month_plays']}")

    platforms = GET(f"/api/podcasts/{podcast_id}/analytics/platforms?period=7d")
    names = [p["platform"] for p in platforms["platforms"]]
    if "apple_podcasts" not in names:
        fail(f"Platform not detected: {names}")
    ok(f"Platforms: {names}")

    episodes = GET(f"/api/podcasts/{podcast_id}/analytics/episodes?period=7d")
    ok(f"Top episode: {episodes['episodes'][0]['title']} ({episodes['episodes'][0]['percentage']}%)")


def step9_rotate(podcast: dict):
    step("9. Rotate feed token")
    rotated = POST(f"/api/podcasts/{podcast['id']}/feed-token/rotate")
    status, _, _ = _raw("GET", podcast["private_rss_url"])
    if status != 404:
        fail(f"Old private URL still works ({status})")
    status, _, _ = _raw("GET", rotated["private_rss_url"])
    if status != 200:
        fail(f"New private URL returned {status}")
    ok("Old URL revoked, new URL serves the feed")


def step10_cleanup(podcast_id: str):
    step("10. Cleanup")
    if KEEP_DATA:
        ok(f"KEEP_DATA=1, leaving podcast {podcast_id}")
        return
    _req("DELETE", f"/api/podcasts/{podcast_id}", expect=204)
    ok(f"Podcast {podcast_id} deleted")


# ── Main ─────────────────────────────────────────────────────

def main():
    print(f"\n🔬 Smoke E2E Test — {BASE_URL}")
    print(f"   SMOKE_EMAIL={SMOKE_EMAIL or 'unset'}  KEEP_DATA={KEEP_DATA}\n")

    try:
        step1_health()
        step2_login()
        podcast = step3_create_podcast()
        asset_id = step4_upload_audio()
        episode = step5_publish_episode(podcast["id"], asset_id)
        step6_feed(podcast, episode)
        step7_play(episode)
        step8_analytics(podcast["id"], episode)
        step9_rotate(podcast)
        step10_cleanup(podcast["id"])

        print(f"\n  RESULT:  ✅ PASS (podcast {podcast['id']}, episode {episode['id']})\n")

    except SmokeError as e:
        print(f"\n{'='*60}")
        print(f"  ❌ FAIL: {e}")
        print(f"{'='*60}\n")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\n  ⏹ Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
