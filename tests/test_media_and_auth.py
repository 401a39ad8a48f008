from unittest.mock import MagicMock, patch

import requests

from utils import admin_required

PUBLIC = "https://demo.supabase.co/storage/v1/object/public"


def _upstream(status=200, content=b"\x89PNG", content_type="image/png"):
    resp = MagicMock()
    resp.status_code = status
    resp.content = content
    resp.headers = {"Content-Type": content_type}
    return resp


def test_image_proxy_streams_public_object(auth_client):
    with patch("routes.media_routes.requests.get", return_value=_upstream()) as mock_get:
        resp = auth_client.get(
            "/api/image-proxy?url=https://demo.supabase.co/storage/v1/object/sign/File/id-cards/a.png?token=x"
        )
    assert resp.status_code == 200
    assert resp.data == b"\x89PNG"
    assert resp.mimetype == "image/png"
    assert resp.headers["Cache-Control"] == "public, max-age=86400"
    assert mock_get.call_args[0][0] == f"{PUBLIC}/File/id-cards/a.png"


def test_image_proxy_by_path(auth_client):
    with patch("routes.media_routes.requests.get", return_value=_upstream()) as mock_get:
        assert auth_client.get("/api/image-proxy?path=id-cards/b.png").status_code == 200
    assert mock_get.call_args[0][0] == f"{PUBLIC}/File/id-cards/b.png"


def test_image_proxy_rejects_bad_input(auth_client):
    assert auth_client.get("/api/image-proxy").status_code == 400
    assert auth_client.get("/api/image-proxy?url=https://example.com/x.png").status_code == 400
    assert auth_client.get("/api/image-proxy?path=../secrets").status_code == 400


def test_image_proxy_upstream_failures(auth_client):
    with patch("routes.media_routes.requests.get", return_value=_upstream(status=404)):
        assert auth_client.get("/api/image-proxy?path=a.png").status_code == 502
    with patch("routes.media_routes.requests.get", side_effect=requests.ConnectionError("down")):
        assert auth_client.get("/api/image-proxy?path=a.png").status_code == 502


def test_cache_endpoints(auth_client, app):
    app.extensions["data_cache"].set("classes", ["c1"])
    assert auth_client.get("/api/cache").get_json()["dataCache"] == 1
    assert auth_client.delete("/api/cache").status_code == 200
    assert auth_client.get("/api/cache").get_json()["dataCache"] == 0


def test_login_logout_verify(client):
    assert client.get("/api/auth/verify").status_code == 401
    assert client.post("/api/auth/login", json={}).status_code == 400
    assert client.post("/api/auth/login", json={"key": "wrong"}).status_code == 401

    resp = client.post("/api/auth/login", json={"key": "test-access-key"})
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    with client.session_transaction() as sess:
        assert sess.permanent
        assert sess["admin_logged_in"] is True
    assert client.get("/api/auth/verify").get_json()["valid"] is True
    assert client.get("/api/classes").status_code == 200

    client.post("/api/auth/logout")
    assert client.get("/api/auth/verify").status_code == 401
    assert client.get("/api/classes").status_code == 401


def test_blank_access_key_never_matches(client, app):
    app.config["ACCESS_KEY"] = ""
    assert client.post("/api/auth/login", json={"key": " "}).status_code == 400
    assert client.post("/api/auth/login", json={"key": "anything"}).status_code == 401


def test_admin_required_on_bare_app():
    from flask import Flask

    app = Flask(__name__)
    app.secret_key = "test_secret"

    @app.route("/protected")
    @admin_required
    def protected():
        return "Admin Access"

    client = app.test_client()
    resp = client.get("/protected")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Unauthorized"}
    with client.session_transaction() as sess:
        sess["admin_logged_in"] = True
    assert client.get("/protected").data == b"Admin Access"


def test_json_errors_and_security_headers(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert "error" in resp.get_json()
    health = client.get("/health")
    assert health.headers["X-Content-Type-Options"] == "nosniff"
