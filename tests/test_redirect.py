"""
Redirect endpoint behaviour: 302/404/500 and fire-and-forget click dispatch.
"""
import asyncio
import time

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from main import app
from shortlink_app.database.connection import get_db
from shortlink_app.dependencies import get_queue
from shortlink_app.models import ClickLog, ShortUrl
from shortlink_app.queue.strategies import InMemoryQueue


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class RecordingQueue(InMemoryQueue):
    """Keeps every published event for inspection"""

    def __init__(self):
        super().__init__()
        self.published = []

    async def publish(self, queue_name, message):
        self.published.append(message)
        return True


class ExplodingQueue(InMemoryQueue):
    async def publish(self, queue_name, message):
        raise ConnectionError("queue backend down")


class StalledQueue(InMemoryQueue):
    async def publish(self, queue_name, message):
        await asyncio.sleep(2)
        return True


def create(client, auth_headers, slug, target="https://www.github.com/"):
    response = client.post(
        "/api/urls/create",
        json={"targetUrl": target, "customSlug": slug},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()


class TestRedirect:

    def test_redirects_to_exact_target(self, client, auth_headers):
        target = "https://example.com/path?q=1&x=%20y#frag"
        create(client, auth_headers, "exact", target)

        response = client.get("/r/exact", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == target

    def test_unknown_slug_is_404(self, client):
        response = client.get("/r/nonexistent", follow_redirects=False)
        assert response.status_code == 404

    def test_empty_slug_is_404(self, client):
        response = client.get("/r/", follow_redirects=False)
        assert response.status_code == 404

    def test_target_punctuation_is_not_requoted(self, client, auth_headers):
        target = "https://example.com/a|b^c{d}"
        create(client, auth_headers, "pipe", target)

        response = client.get("/r/pipe", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == target

    def test_non_ascii_target_is_percent_encoded(self, client, auth_headers):
        create(client, auth_headers, "accent", "https://example.com/caf\u00e9")

        response = client.get("/r/accent", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://example.com/caf%C3%A9"

    def test_bare_prefix_is_404(self, client):
        response = client.get("/r", follow_redirects=False)
        assert response.status_code == 404

    def test_first_segment_is_the_slug(self, client, auth_headers):
        create(client, auth_headers, "segment")
        response = client.get("/r/segment/extra/parts", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_records_click_in_background(self, client, auth_headers, db_session):
        created = create(client, auth_headers, "counted")

        client.get(
            "/r/counted",
            headers={"referer": "https://news.example/", "user-agent": "pytest-agent"},
            follow_redirects=False,
        )

        assert wait_for(
            lambda: db_session.query(ShortUrl.clicks).filter(ShortUrl.slug == "counted").scalar() == 1
        )
        log = db_session.query(ClickLog.referrer, ClickLog.user_agent).one()
        assert tuple(log) == ("https://news.example/", "pytest-agent")

        stats = client.get(f"/api/urls/{_id_of(db_session, 'counted')}", headers=auth_headers).json()
        assert stats["clicks"] == 1
        assert stats["slug"] == created["slug"]

    def test_dispatch_carries_request_metadata(self, client, auth_headers):
        create(client, auth_headers, "metadata")
        spy = RecordingQueue()
        app.dependency_overrides[get_queue] = lambda: spy

        client.get(
            "/r/metadata",
            headers={"referer": "https://ref.example/", "user-agent": "ua/2"},
            follow_redirects=False,
        )

        assert wait_for(lambda: len(spy.published) == 1)
        event = spy.published[0]
        assert (event.slug, event.referrer, event.user_agent) == ("metadata", "https://ref.example/", "ua/2")

    def test_not_found_dispatches_nothing(self, client):
        spy = RecordingQueue()
        app.dependency_overrides[get_queue] = lambda: spy

        client.get("/r/missing", follow_redirects=False)
        time.sleep(0.2)

        assert spy.published == []

    def test_queue_failure_does_not_affect_redirect(self, client, auth_headers, db_session):
        create(client, auth_headers, "sturdy")
        app.dependency_overrides[get_queue] = lambda: ExplodingQueue()

        response = client.get("/r/sturdy", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"
        time.sleep(0.2)
        assert db_session.query(ShortUrl.clicks).filter(ShortUrl.slug == "sturdy").scalar() == 0

    def test_slow_queue_does_not_delay_redirect(self, client, auth_headers):
        create(client, auth_headers, "speedy")
        app.dependency_overrides[get_queue] = lambda: StalledQueue()

        started = time.monotonic()
        response = client.get("/r/speedy", follow_redirects=False)
        elapsed = time.monotonic() - started

        assert response.status_code == 302
        assert elapsed < 1.5


class BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is unreachable"))

    def close(self):
        pass


def test_lookup_failure_is_500_not_404():
    def override_get_db():
        yield BrokenSession()

    app.dependency_overrides[get_db] = override_get_db
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/r/whatever", follow_redirects=False)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "unreachable" not in response.text


def _id_of(db, slug):
    return db.query(ShortUrl.id).filter(ShortUrl.slug == slug).scalar()
