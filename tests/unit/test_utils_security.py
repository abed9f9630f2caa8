from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from shop.auth.service import determine_role, get_user_from_token
from shop.utils.security import COOKIE_NAME, get_current_user, require_admin

def _make_app():
    app = FastAPI()

    @app.get("/me")
    def me(user=Depends(get_current_user)):
        return user

    @app.get("/admin")
    def admin(user=Depends(require_admin)):
        return {"ok": True}

    return app

def test_determine_role():
    assert determine_role({"role": "admin"}) == "admin"
    assert determine_role({"role": "ADMIN"}) == "admin"
    assert determine_role({"role": "scanner"}) == "user"
    assert determine_role(None) == "user"

def test_get_user_from_token_normalizes(monkeypatch):
    monkeypatch.setattr(
        "shop.auth.service._repo_get_user_from_token",
        lambda token: {"id": "u1", "email": "a@b", "user_metadata": {"role": "admin"}},
    )
    user = get_user_from_token("tok")
    assert user == {"id": "u1", "email": "a@b", "metadata": {"role": "admin"}, "role": "admin", "token": "tok"}

def test_get_current_user_bearer_success(monkeypatch):
    monkeypatch.setattr(
        "shop.utils.security.get_user_from_token",
        lambda token: {"id": "u1", "email": "a@b", "role": "user"},
    )
    client = TestClient(_make_app())

    r = client.get("/me", headers={"Authorization": "Bearer tok-123"})
    assert r.status_code == 200
    assert r.json() == {"id": "u1", "email": "a@b", "role": "user"}

def test_get_current_user_cookie_success(monkeypatch):
    seen = []
    def _fake(token):
        seen.append(token)
        return {"id": "u1", "email": "a@b", "role": "admin"}
    monkeypatch.setattr("shop.utils.security.get_user_from_token", _fake)

    client = TestClient(_make_app())
    client.cookies.set(COOKIE_NAME, "cookie-token")

    r = client.get("/me")
    assert r.status_code == 200
    assert r.json()["role"] == "admin"
    assert seen == ["cookie-token"]

def test_get_current_user_missing_token_401():
    client = TestClient(_make_app())
    r = client.get("/me")
    assert r.status_code == 401
    assert "Non authentifié" in r.text

def test_get_current_user_missing_id_401(monkeypatch):
    monkeypatch.setattr("shop.utils.security.get_user_from_token", lambda token: {"email": "x@y"})
    client = TestClient(_make_app())

    r = client.get("/me", headers={"Authorization": "Bearer tok"})
    assert r.status_code == 401
    assert "Session expirée" in r.text

def test_get_current_user_auth_error_401(monkeypatch):
    def _boom(token):
        raise RuntimeError("supabase down")
    monkeypatch.setattr("shop.utils.security.get_user_from_token", _boom)
    client = TestClient(_make_app())

    r = client.get("/me", headers={"Authorization": "Bearer tok"})
    assert r.status_code == 401

def test_require_admin_forbidden_and_allowed(monkeypatch):
    client = TestClient(_make_app())

    monkeypatch.setattr("shop.utils.security.get_user_from_token", lambda token: {"id": "u1", "role": "user"})
    r_forbidden = client.get("/admin", headers={"Authorization": "Bearer tok"})
    assert r_forbidden.status_code == 403

    monkeypatch.setattr("shop.utils.security.get_user_from_token", lambda token: {"id": "u1", "role": "admin"})
    r_ok = client.get("/admin", headers={"Authorization": "Bearer tok"})
    assert r_ok.status_code == 200
    assert r_ok.json() == {"ok": True}
