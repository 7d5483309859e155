# tests/test_refresh_flow.py
from datetime import datetime, timedelta, timezone

from app.models.user import User
from tests.helpers import auth_header, create_user


def _login(client, user):
    r = client.post("/auth/login", json={"phone": user.phone, "password": "UserPassw0rd!"})
    assert r.status_code == 200, r.text
    return r.json()


def test_refresh_token_rotation(client, db_session):
    user = create_user(db_session)
    login = _login(client, user)
    refresh1 = login["refreshToken"]

    r1 = client.post("/auth/refresh-token", json={"refreshToken": refresh1})
    assert r1.status_code == 200, r1.text
    access2 = r1.json()["token"]
    refresh2 = r1.json()["refreshToken"]
    assert refresh2 and refresh2 != refresh1

    # 새 access token 으로 보호 API 접근 가능
    me = client.get("/users/me", headers=auth_header(access2))
    assert me.status_code == 200

    # 이전 refresh token 은 폐기됨
    r_old = client.post("/auth/refresh-token", json={"refreshToken": refresh1})
    assert r_old.status_code == 401
    assert r_old.json()["detail"] == "Invalid refresh token"


def test_refresh_token_validation(client):
    missing = client.post("/auth/refresh-token", json={})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Refresh token required"

    bad_format = client.post("/auth/refresh-token", json={"refreshToken": "abc"})
    assert bad_format.status_code == 400
    assert bad_format.json()["detail"] == "Invalid refresh token format"

    unknown = client.post("/auth/refresh-token", json={"refreshToken": "a" * 64})
    assert unknown.status_code == 401


def test_expired_refresh_token_is_cleared(client, db_session):
    user = create_user(db_session)
    refresh = _login(client, user)["refreshToken"]

    db_session.expire_all()
    stored = db_session.get(User, user.id)
    stored.refresh_token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db_session.commit()

    r = client.post("/auth/refresh-token", json={"refreshToken": refresh})
    assert r.status_code == 401
    assert r.json()["detail"] == "Refresh token expired"

    db_session.expire_all()
    assert db_session.get(User, user.id).refresh_token is None
