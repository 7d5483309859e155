"""
FCM 토큰 등록 / 해제 테스트.
"""

from app.models.user import User
from tests.helpers import make_token, setup_user


def _stored_token(db, user_id):
    db.expire_all()
    return db.get(User, user_id).fcm_token


def test_register_and_clear_token(client, db_session):
    me = setup_user(client, db_session)
    token = make_token("device")

    r = client.post("/notifications/fcm-token", json={"token": token}, headers=me["headers"])
    assert r.status_code == 200, r.text
    assert _stored_token(db_session, me["id"]) == token

    cleared = client.delete("/notifications/fcm-token", headers=me["headers"])
    assert cleared.status_code == 200
    assert _stored_token(db_session, me["id"]) is None


def test_register_rejects_malformed_token(client, db_session):
    me = setup_user(client, db_session)

    for bad in ("test_token", "short", "x" * 301, "has spaces " * 12):
        r = client.post("/notifications/fcm-token", json={"token": bad}, headers=me["headers"])
        assert r.status_code == 400, bad
        assert r.json()["detail"].startswith("Invalid push token")

    assert _stored_token(db_session, me["id"]) is None


def test_update_token_via_users_route(client, db_session):
    me = setup_user(client, db_session, name="나")
    other = setup_user(client, db_session, name="남")
    token = make_token("phone")

    ok = client.put(f"/users/{me['id']}/fcm-token", json={"token": token}, headers=me["headers"])
    assert ok.status_code == 200, ok.text
    assert _stored_token(db_session, me["id"]) == token

    forbidden = client.put(f"/users/{other['id']}/fcm-token", json={"token": token}, headers=me["headers"])
    assert forbidden.status_code == 403

    bad = client.put(f"/users/{me['id']}/fcm-token", json={"token": "undefined"}, headers=me["headers"])
    assert bad.status_code == 400
