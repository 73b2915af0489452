"""Tests for the HTTP endpoints."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from doge.api.app import create_app
from doge.api.views import MULTIPART_OVERHEAD_BYTES
from tests.conftest import FakeMongoClient, InMemoryPhotoStore, make_image_bytes


def test_views_render_client_and_monitor(container) -> None:
    with TestClient(create_app(container)) as client:
        client_page = client.get("/client")
        monitor_page = client.get("/monitor")

    assert client_page.status_code == 200
    assert "text/html" in client_page.headers["content-type"]
    assert "such doge" in client_page.text
    assert "/topic/alarms" in monitor_page.text


def test_health_reports_store_status(container, mongo_client: FakeMongoClient) -> None:
    with TestClient(create_app(container)) as client:
        healthy = client.get("/health").json()
        mongo_client.error = ServerSelectionTimeoutError("no servers")
        unhealthy = client.get("/health")

    assert healthy == {"status": "ok", "mongo": "ok"}
    assert unhealthy.status_code == 200
    assert unhealthy.json() == {"status": "error", "mongo": "error"}


def test_startup_seeds_users(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/users")

    users = response.json()["users"]
    assert {"id": "philwebb", "name": "Phil Webb"} in users
    assert {"id": "joshlong", "name": "Josh Long"} in users


def test_upload_and_fetch_doge(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/joshlong/doge",
            files={"file": ("doge.png", make_image_bytes(), "image/png")},
        )
        payload = response.json()
        photo = client.get(payload["uri"])

    assert response.status_code == 201
    assert response.headers["location"] == payload["uri"]
    assert payload["userId"] == "joshlong"
    assert payload["uri"] == f"/users/joshlong/doge/{payload['id']}"
    assert photo.status_code == 200
    assert photo.headers["content-type"] == "image/jpeg"
    assert photo.content[:2] == b"\xff\xd8"


def test_upload_for_unknown_user_is_404(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/nobody/doge",
            files={"file": ("doge.png", make_image_bytes(), "image/png")},
        )

    assert response.status_code == 404


def test_upload_of_non_image_is_400(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge",
            files={"file": ("doge.txt", b"wow", "text/plain")},
        )

    assert response.status_code == 400


def _padded_image(size: int) -> bytes:
    image = make_image_bytes()
    return image + b"\0" * (size - len(image))


def test_file_of_exactly_the_limit_is_accepted(container) -> None:
    body = _padded_image(container.settings.max_upload_bytes)

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge", files={"file": ("doge.png", body, "image/png")}
        )

    assert response.status_code == 201


def test_file_one_byte_over_the_limit_is_413(
    container, photo_store: InMemoryPhotoStore
) -> None:
    body = _padded_image(container.settings.max_upload_bytes + 1)

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge", files={"file": ("doge.png", body, "image/png")}
        )

    assert response.status_code == 413
    assert photo_store.folders == {}
    assert container.metrics.registry.get_sample_value("doge_uploads_total") == 0.0


def test_declared_length_over_cap_rejected_before_handler(
    container, photo_store: InMemoryPhotoStore
) -> None:
    limit = container.settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge",
            files={"file": ("big.png", b"\0" * (limit + 1), "image/png")},
        )

    assert response.status_code == 413
    assert response.text == "Upload too large"
    assert photo_store.folders == {}


def test_chunked_body_over_cap_is_413(
    container, photo_store: InMemoryPhotoStore
) -> None:
    limit = container.settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES
    boundary = "suchboundary"

    def chunks() -> Iterator[bytes]:
        yield (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="file"; filename="big.png"\r\n'
            "Content-Type: image/png\r\n\r\n"
        ).encode()
        for _ in range(limit // 4096 + 2):
            yield b"\0" * 4096
        yield f"\r\n--{boundary}--\r\n".encode()

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge",
            content=chunks(),
            headers={"content-type": f"multipart/form-data; boundary={boundary}"},
        )

    assert response.status_code == 413
    assert photo_store.folders == {}


def test_upload_under_limit_reaches_handler(container) -> None:
    body = make_image_bytes(size=(32, 32))
    assert len(body) < container.settings.max_upload_bytes

    with TestClient(create_app(container)) as client:
        response = client.post(
            "/users/philwebb/doge", files={"file": ("doge.png", body, "image/png")}
        )

    assert response.status_code == 201


def test_failed_startup_stops_pool_and_closes_store(
    container, mongo_client: FakeMongoClient, monkeypatch
) -> None:
    def unreachable(user):  # type: ignore[no-untyped-def]
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(container.user_repository, "save", unreachable)

    with pytest.raises(ServerSelectionTimeoutError):
        with TestClient(create_app(container)):
            pass

    assert container.dispatch_pool.worker_count == 0
    assert mongo_client.closed


def test_missing_doge_is_404(container) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/users/philwebb/doge/missing")

    assert response.status_code == 404


def test_list_doges_for_user(container) -> None:
    with TestClient(create_app(container)) as client:
        uploaded = client.post(
            "/users/joshlong/doge",
            files={"file": ("doge.png", make_image_bytes(), "image/png")},
        ).json()
        listing = client.get("/users/joshlong/doge")
        empty = client.get("/users/philwebb/doge")
        unknown = client.get("/users/nobody/doge")

    assert listing.json() == {
        "doges": [{"id": uploaded["id"], "uri": uploaded["uri"]}]
    }
    assert empty.json() == {"doges": []}
    assert unknown.status_code == 404
