"""
알림 조회 / 읽음 처리 API 테스트.
- 최신순 목록 + 페이지네이션, 읽지 않은 알림 수,
  단일 / 전체 / 관련 게시글 기준 읽음 처리,
  다른 사용자의 알림은 변경 불가를 검증한다.
"""

from app.services.notifications import create_notification
from tests.helpers import make_token, setup_user


def _seed(db, user_id, count, *, type_="system", related_id=None):
    ids = []
    for i in range(count):
        n = create_notification(
            db, user_id=user_id, title=f"알림 {i}", message=f"내용 {i}", type=type_, related_id=related_id
        )
        ids.append(n.id)
    db.commit()
    return ids


def test_list_and_unread_count(client, db_session):
    me = setup_user(client, db_session)
    ids = _seed(db_session, me["id"], 3)

    r = client.get("/notifications", headers=me["headers"])
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["unread_count"] == 3
    assert [n["id"] for n in body["notifications"]] == list(reversed(ids))
    assert body["pagination"] == {"page": 1, "page_size": 10, "has_more": False}
    first = body["notifications"][0]
    assert first["is_read"] is False
    assert first["type"] == "system"

    page = client.get("/notifications", params={"page": 1, "page_size": 2}, headers=me["headers"])
    assert len(page.json()["notifications"]) == 2
    assert page.json()["pagination"]["has_more"] is True

    too_big = client.get("/notifications", params={"page_size": 101}, headers=me["headers"])
    assert too_big.status_code == 400

    count = client.get("/notifications/unread-count", headers=me["headers"])
    assert count.json() == {"success": True, "count": 3}


def test_mark_one_read(client, db_session):
    me = setup_user(client, db_session, name="나")
    other = setup_user(client, db_session, name="남")
    mine = _seed(db_session, me["id"], 2)
    theirs = _seed(db_session, other["id"], 1)

    r = client.patch(f"/notifications/{mine[0]}/read", headers=me["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["unread_count"] == 1

    again = client.patch(f"/notifications/{mine[0]}/read", headers=me["headers"])
    assert again.status_code == 404

    foreign = client.patch(f"/notifications/{theirs[0]}/read", headers=me["headers"])
    assert foreign.status_code == 404
    other_count = client.get("/notifications/unread-count", headers=other["headers"])
    assert other_count.json()["count"] == 1


def test_mark_all_read(client, db_session):
    me = setup_user(client, db_session, name="나")
    other = setup_user(client, db_session, name="남")
    _seed(db_session, me["id"], 4)
    _seed(db_session, other["id"], 2)

    r = client.patch("/notifications/read-all", headers=me["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["updated_count"] == 4
    assert r.json()["unread_count"] == 0

    assert client.get("/notifications/unread-count", headers=other["headers"]).json()["count"] == 2


def test_mark_related_read(client, db_session):
    me = setup_user(client, db_session)
    _seed(db_session, me["id"], 1, type_="notice", related_id=5)
    _seed(db_session, me["id"], 2, type_="like", related_id=5)
    _seed(db_session, me["id"], 1, type_="testimony", related_id=5)
    _seed(db_session, me["id"], 1, type_="notice", related_id=6)

    r = client.post(
        "/notifications/mark-related-read",
        json={"type": "notice", "related_id": 5},
        headers=me["headers"],
    )
    assert r.status_code == 200, r.text
    assert r.json()["affected_count"] == 3

    # testimony 알림과 다른 게시글 알림은 그대로
    assert client.get("/notifications/unread-count", headers=me["headers"]).json()["count"] == 2

    bad = client.post(
        "/notifications/mark-related-read",
        json={"type": "event", "related_id": 5},
        headers=me["headers"],
    )
    assert bad.status_code == 422


def test_requires_login(client):
    assert client.get("/notifications").status_code == 401
    assert client.patch("/notifications/read-all").status_code == 401


def test_system_notification_to_user(client, db_session, push):
    admin = setup_user(client, db_session, name="관리자", authority="ADMIN")
    token = make_token("target")
    target = setup_user(client, db_session, name="대상", fcm_token=token)
    _seed(db_session, target["id"], 1)

    r = client.post(
        "/notifications/system",
        json={"title": "점검 안내", "message": "오늘 밤 서버 점검", "user_id": target["id"]},
        headers=admin["headers"],
    )
    assert r.status_code == 201, r.text
    notification = r.json()["notification"]
    assert notification["type"] == "system"
    assert notification["sender_name"] == "관리자"
    assert "warning" not in r.json()

    sent = push.sent_to(token)
    assert len(sent) == 1
    assert sent[0].apns.payload.aps.badge == 2
    assert sent[0].data["type"] == "system"

    missing = client.post(
        "/notifications/system", json={"title": "t", "message": "m", "user_id": 99999}, headers=admin["headers"]
    )
    assert missing.status_code == 404


def test_system_notification_to_topic(client, db_session, push):
    admin = setup_user(client, db_session, authority="NCMN_STAFF")

    r = client.post("/notifications/system", json={"title": "전체 공지", "message": "내용"}, headers=admin["headers"])
    assert r.status_code == 201, r.text
    assert r.json()["topic"] == "all"
    assert len(push.sent) == 1
    assert push.sent[0].topic == "all"
    assert push.sent[0].notification.title == "전체 공지"


def test_system_notification_requires_master(client, db_session):
    leader = setup_user(client, db_session, authority="LEADERSHIP")
    r = client.post("/notifications/system", json={"title": "t", "message": "m"}, headers=leader["headers"])
    assert r.status_code == 403
