# tests/test_api.py
import inspect

import pytest
from fastapi.testclient import TestClient

import main
from models import ADDRESS_PLACEHOLDER

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main, "UPLOAD_DIR", tmp_path)
    return TestClient(main.app)


def _post_capture(client, photo, **form):
    data = {"operator_name": "An", "captured_at": "2024-03-01T14:05:00"}
    data.update(form)
    return client.post(
        "/captures/",
        files={"file": ("photo.jpg", photo, "image/jpeg")},
        data=data,
        headers={"User-Agent": IPHONE_UA},
    )


def test_capture_is_stamped_immediately_with_placeholder(client, photo_bytes, tmp_path):
    resp = _post_capture(client, photo_bytes, latitude="10.762622", longitude="106.660172", accuracy="8")
    assert resp.status_code == 200
    body = resp.json()

    assert body["payload"]["address"] == ADDRESS_PLACEHOLDER
    assert body["payload"]["device_label"] == "iPhone"
    assert body["payload"]["latitude"] == 10.762622
    assert (tmp_path / body["filename"]).is_file()

    served = client.get(f"/uploads/{body['filename']}")
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/jpeg"
    assert served.content == (tmp_path / body["filename"]).read_bytes()


def test_resolved_address_replaces_output(client, photo_bytes, tmp_path):
    first = _post_capture(client, photo_bytes, latitude="10.762622", longitude="106.660172").json()
    before = (tmp_path / first["filename"]).read_bytes()

    resp = client.post(
        f"/captures/{first['capture_id']}/address",
        data={"address": "123 Nguyen Hue, District 1, Ho Chi Minh City"},
    )
    assert resp.status_code == 200
    second = resp.json()

    assert second["filename"] == first["filename"]
    assert second["payload"]["address"] == "123 Nguyen Hue, District 1, Ho Chi Minh City"
    assert (tmp_path / second["filename"]).read_bytes() != before

    record = client.get(f"/captures/{first['capture_id']}").json()
    assert record["location"]["address"] == "123 Nguyen Hue, District 1, Ho Chi Minh City"


def test_address_without_location_conflicts(client, photo_bytes):
    capture_id = _post_capture(client, photo_bytes).json()["capture_id"]
    resp = client.post(f"/captures/{capture_id}/address", data={"address": "somewhere"})
    assert resp.status_code == 409


def test_explicit_device_label_wins_over_user_agent(client, photo_bytes):
    body = _post_capture(client, photo_bytes, device_label="Field tablet 3").json()
    assert body["payload"]["device_label"] == "Field tablet 3"


def test_undecodable_upload_is_rejected(client):
    resp = _post_capture(client, b"not an image")
    assert resp.status_code == 400


def test_blank_operator_is_rejected(client, photo_bytes):
    resp = _post_capture(client, photo_bytes, operator_name="   ")
    assert resp.status_code == 422


def test_half_a_coordinate_is_rejected(client, photo_bytes):
    resp = _post_capture(client, photo_bytes, latitude="10.0")
    assert resp.status_code == 422


def test_unknown_capture_and_file(client):
    assert client.get("/captures/" + "0" * 32).status_code == 404
    assert client.get("/captures/not-an-id").status_code == 404
    assert client.post("/captures/" + "0" * 32 + "/address", data={"address": "x"}).status_code == 404
    assert client.get("/uploads/missing.jpg").status_code == 404


def test_same_operator_same_instant_keeps_both_outputs(client, photo_factory, tmp_path):
    first = _post_capture(client, photo_factory(640, 480)).json()
    second = _post_capture(client, photo_factory(800, 600)).json()

    assert first["capture_id"] != second["capture_id"]
    assert first["filename"] != second["filename"]
    assert len(list(tmp_path.glob("*.jpg"))) == 2
    assert client.get(f"/uploads/{first['filename']}").status_code == 200
    assert client.get(f"/uploads/{second['filename']}").status_code == 200


def test_blank_address_is_rejected(client, photo_bytes, tmp_path):
    first = _post_capture(client, photo_bytes, latitude="10.762622", longitude="106.660172").json()
    before = (tmp_path / first["filename"]).read_bytes()

    resp = client.post(f"/captures/{first['capture_id']}/address", data={"address": "   "})
    assert resp.status_code == 422
    assert (tmp_path / first["filename"]).read_bytes() == before
    assert client.get(f"/captures/{first['capture_id']}").json()["location"]["address"] is None


def test_stamping_endpoints_run_off_the_event_loop():
    # plain def endpoints are dispatched to the threadpool by FastAPI
    assert not inspect.iscoroutinefunction(main.create_capture)
    assert not inspect.iscoroutinefunction(main.update_address)
