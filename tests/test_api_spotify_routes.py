import json
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from api_main import app
from tunebacker.api.dependencies import get_current_user, get_engine, get_settings
from tunebacker.core import BackupSnapshot


@pytest.fixture
def client(engine, settings):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_current_user] = lambda: "app-user-1"
    yield TestClient(app)
    app.dependency_overrides.clear()


def _state_of(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


def test_link_then_callback_redirects_first_time_user(client, engine) -> None:
    response = client.post("/spotify/link")
    assert response.status_code == 200
    state = _state_of(response.json()["url"])

    callback = client.get(
        "/spotify/callback",
        params={"code": "c1", "state": state},
        follow_redirects=False,
    )

    assert callback.status_code == 302
    assert callback.headers["location"] == "http://client.test/home?firstTimeUser=true"
    assert engine.accounts.get("app-user-1") is not None


def test_login_callback_sets_session_cookies(client) -> None:
    link_state = _state_of(client.post("/spotify/link").json()["url"])
    client.get("/spotify/callback", params={"code": "c1", "state": link_state}, follow_redirects=False)

    login_url = client.get("/spotify/login").json()["url"]
    callback = client.get(
        "/spotify/callback",
        params={"code": "c2", "state": _state_of(login_url)},
        follow_redirects=False,
    )

    assert callback.status_code == 302
    assert callback.headers["location"] == "http://client.test/home"
    set_cookie = callback.headers.get_list("set-cookie")
    assert any(c.startswith("access_token=") for c in set_cookie)
    assert any(c.startswith("refresh_token=") for c in set_cookie)


def test_restore_callback_redirect_flag(client, engine) -> None:
    engine.backups.save(
        BackupSnapshot("app-user-1", "pl-1", "Road Trip", [{"id": "a"}])
    )
    url = client.post("/spotify/restore/pl-1").json()["url"]

    callback = client.get(
        "/spotify/callback",
        params={"code": "c1", "state": _state_of(url)},
        follow_redirects=False,
    )

    assert callback.headers["location"] == "http://client.test/home?playlistRestored=true"


def test_file_restore_endpoint_validates_body(client) -> None:
    response = client.post("/spotify/file-restore", json={"playlistName": "Up", "trackIds": []})
    assert response.status_code == 422

    response = client.post(
        "/spotify/file-restore", json={"playlistName": "Up", "trackIds": ["t1"]}
    )
    assert response.status_code == 200
    state = json.loads(_state_of(response.json()["url"]))
    assert state["flow"] == "fileRestore"

    callback = client.get(
        "/spotify/callback",
        params={"code": "c1", "state": json.dumps(state)},
        follow_redirects=False,
    )
    assert callback.headers["location"] == "http://client.test/home?fileRestored=true"


def test_callback_maps_errors_to_status_codes(client) -> None:
    assert client.get("/spotify/callback", params={"code": "c1"}).status_code == 400
    assert (
        client.get("/spotify/callback", params={"code": "c1", "state": "garbage"}).status_code
        == 400
    )
    login_state = _state_of(client.get("/spotify/login").json()["url"])
    not_linked = client.get("/spotify/callback", params={"code": "c1", "state": login_state})
    assert not_linked.status_code == 404


def test_callback_reports_provider_denial(client) -> None:
    response = client.get("/spotify/callback", params={"error": "access_denied"})

    assert response.status_code == 400
    assert "access_denied" in response.json()["detail"]


def test_unlink_endpoint(client, engine) -> None:
    state = _state_of(client.post("/spotify/link").json()["url"])
    client.get("/spotify/callback", params={"code": "c1", "state": state}, follow_redirects=False)

    response = client.delete("/spotify/link")

    assert response.status_code == 200
    assert engine.accounts.get("app-user-1") is None


def test_link_requires_session(engine) -> None:
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        anonymous = TestClient(app).post("/spotify/link")
        session = engine.sessions.issue("app-user-2")
        authed = TestClient(app).post(
            "/spotify/link",
            headers={"Authorization": f"Bearer {session.access_token}"},
        )
    finally:
        app.dependency_overrides.clear()

    assert anonymous.status_code == 401
    assert authed.status_code == 200


def test_link_accepts_upstream_user_header_without_session(engine) -> None:
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        response = TestClient(app).post("/spotify/link", headers={"X-User-Id": "new-user"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    state = json.loads(_state_of(response.json()["url"]))
    assert state["flow"] == "link"
    record = engine.nonces.get(state["nonce"])
    assert record is not None
    assert record.user_id == "new-user"
