from __future__ import annotations

import asyncio
import time

from fastapi.testclient import TestClient

from conftest import FakeGenerator, make_context
from resonance.server import create_app

BOOK = {
    "id": "book-lighthouse",
    "title": "The Lighthouse",
    "author": "Virginia Woolf",
    "file_url": "/books/lighthouse.epub",
    "file_type": "epub",
}


def _wait_for_job(client: TestClient, job_id: str, attempts: int = 500) -> dict:
    for _ in range(attempts):
        job = client.get(f"/api/v1/jobs/{job_id}").json()
        if job["status"] in ("done", "error"):
            return job
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish")


def test_health_and_tones():
    with TestClient(create_app(make_context())) as client:
        assert client.get("/health").json() == {"status": "healthy"}
        tones = client.get("/api/v1/tones").json()["tones"]
        assert [t["id"] for t in tones] == ["philosophical", "suspense", "witty", "analytical", "casual"]


def test_series_generation_runs_in_background():
    context = make_context()
    with TestClient(create_app(context)) as client:
        response = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "witty"})
        assert response.status_code == 202
        job_id = response.json()["job_id"]

        job = _wait_for_job(client, job_id)
        assert job["status"] == "done"
        assert job["label"] == "All 5 episodes ready!"
        assert job["tone"] == "Humorous & Witty"

        jobs = client.get("/api/v1/jobs").json()["jobs"]
        assert [j["id"] for j in jobs] == [job_id]

        notifications = client.get("/api/v1/notifications").json()
        assert notifications["unread"] == len(notifications["notifications"]) > 0
        assert notifications["notifications"][0]["title"] == '"The Lighthouse" Complete'

        assert client.post("/api/v1/notifications/read-all").json() == {"unread": 0}

    stored = asyncio.run(context.artifacts.get_book("book-lighthouse"))
    assert stored.owner_id == context.owner_id


def test_unknown_tone_is_404():
    with TestClient(create_app(make_context())) as client:
        response = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "operatic"})
        assert response.status_code == 404


def test_duplicate_active_run_is_409_and_cancel_ends_it():
    context = make_context(generator=FakeGenerator(block=True))
    with TestClient(create_app(context)) as client:
        job_id = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "casual"}).json()["job_id"]

        conflict = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "casual"})
        assert conflict.status_code == 409
        assert conflict.json()["detail"]["job_id"] == job_id

        other_tone = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "witty"})
        assert other_tone.status_code == 202

        cancelled = client.post(f"/api/v1/jobs/{job_id}/cancel").json()
        assert cancelled == {"job_id": job_id, "cancelled": True}

        job = client.get(f"/api/v1/jobs/{job_id}").json()
        assert job["status"] == "error"
        assert job["label"] == "Cancelled"


def test_retry_without_stored_outline_is_404():
    with TestClient(create_app(make_context())) as client:
        response = client.post(
            "/api/v1/series/retry",
            json={"book": BOOK, "tone_id": "witty", "episodes": [2]},
        )
        assert response.status_code == 404


def test_retry_requires_episode_numbers():
    with TestClient(create_app(make_context())) as client:
        response = client.post("/api/v1/series/retry", json={"book": BOOK, "tone_id": "witty", "episodes": []})
        assert response.status_code == 422


def test_retry_uses_stored_outline():
    generator = FakeGenerator(fail_episodes={2})
    context = make_context(generator=generator)
    with TestClient(create_app(context)) as client:
        first = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "witty"}).json()["job_id"]
        assert _wait_for_job(client, first)["label"] == "4/5 episodes ready, 1 episode failed"

        generator.fail_episodes.clear()
        response = client.post(
            "/api/v1/series/retry",
            json={"book": BOOK, "tone_id": "witty", "episodes": [2]},
        )
        assert response.status_code == 202
        retry_id = response.json()["job_id"]
        assert retry_id.startswith("retry-")

        job = _wait_for_job(client, retry_id)
        assert job["status"] == "done"
        assert job["kind"] == "retry"
        assert job["label"] == "All 1 episode recovered!"


def test_job_delete_and_session_reset():
    context = make_context()
    with TestClient(create_app(context)) as client:
        job_id = client.post("/api/v1/series", json={"book": BOOK, "tone_id": "witty"}).json()["job_id"]
        _wait_for_job(client, job_id)

        assert client.delete(f"/api/v1/jobs/{job_id}").json() == {"status": "deleted"}
        assert client.get(f"/api/v1/jobs/{job_id}").status_code == 404
        assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 404

        assert client.post("/api/v1/session/reset").json() == {"status": "reset"}
        assert client.get("/api/v1/notifications").json() == {"notifications": [], "unread": 0}
        assert context.text_cache == {}


def test_notification_read_and_clear():
    context = make_context()
    first = context.notifications.push(type="info", title="One", body="")
    context.notifications.push(type="info", title="Two", body="")
    with TestClient(create_app(context)) as client:
        assert client.post(f"/api/v1/notifications/{first}/read").json() == {"unread": 1}
        assert client.post("/api/v1/notifications/notif-missing/read").status_code == 404
        assert client.delete("/api/v1/notifications").json() == {"status": "cleared"}
        assert context.notifications.get_all() == []


def test_excerpt_endpoints():
    text = " ".join(f"w{i}" for i in range(100))
    with TestClient(create_app(make_context())) as client:
        outline = client.post("/api/v1/excerpts/outline", json={"text": text, "max_words": 10}).json()
        assert outline["word_count"] <= 10
        assert outline["original_word_count"] == 100
        assert outline["max_words"] == 10

        episode = client.post(
            "/api/v1/excerpts/episode",
            json={"text": "Short text.", "content_focus": "lighthouse", "episode_number": 1, "total_episodes": 3},
        ).json()
        assert episode["excerpt"] == "Short text."
        assert episode["max_words"] == 2500
