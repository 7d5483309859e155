"""
간증 / 댓글 API + 알림 통합 테스트.
- 간증 작성 시 전체 알림, 댓글 → 간증 작성자 알림, 대댓글 → 부모 댓글 작성자 알림,
  대댓글의 대댓글 금지, 댓글 좋아요 알림(related_id = 간증 ID),
  삭제 시 댓글 / 좋아요 정리, HOT 간증 조건을 검증한다.
"""

from sqlalchemy import func, select, update

from app.models.notification import Notification
from app.models.testimony import Testimony, TestimonyComment
from tests.helpers import make_token, setup_user


def _rows(db, user_id, type_=None):
    db.expire_all()
    stmt = select(Notification).where(Notification.user_id == user_id)
    if type_:
        stmt = stmt.where(Notification.type == type_)
    return db.scalars(stmt.order_by(Notification.id)).all()


def _create_testimony(client, headers, content="하나님의 은혜", category="campus"):
    r = client.post("/testimonies", json={"category": category, "content": content}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["testimony"]


def test_create_testimony_broadcasts(client, db_session, push):
    author_token = make_token("author")
    author = setup_user(client, db_session, name="간증자", fcm_token=author_token)
    reader = setup_user(client, db_session, name="독자", fcm_token=make_token("reader"))

    testimony = _create_testimony(client, author["headers"], content="캠퍼스에서 있었던 일")
    assert testimony["category"] == "campus"
    assert testimony["author_name"] == "간증자"

    rows = _rows(db_session, reader["id"], "testimony")
    assert len(rows) == 1
    assert rows[0].title == "새로운 간증이 도착했어요"
    assert rows[0].related_id == testimony["id"]

    msg = push.sent_to(author_token)[0]
    assert msg.data["testimony_id"] == str(testimony["id"])
    assert msg.data["action"] == "open_testimony"
    assert msg.data["author_name"] == "간증자"


def test_invalid_category(client, db_session):
    author = setup_user(client, db_session)
    r = client.post("/testimonies", json={"category": "unknown", "content": "x"}, headers=author["headers"])
    assert r.status_code == 422


def test_comment_and_reply_notifications(client, db_session, push):
    author = setup_user(client, db_session, name="간증자", fcm_token=make_token("author"))
    commenter = setup_user(client, db_session, name="댓글러", fcm_token=make_token("commenter"))
    replier = setup_user(client, db_session, name="답글러", fcm_token=make_token("replier"))

    testimony = _create_testimony(client, author["headers"])

    comment = client.post(
        f"/testimonies/{testimony['id']}/comments",
        json={"content": "아멘!"},
        headers=commenter["headers"],
    )
    assert comment.status_code == 201, comment.text
    comment_id = comment.json()["comment"]["id"]

    comment_rows = _rows(db_session, author["id"], "comment")
    assert len(comment_rows) == 1
    assert comment_rows[0].title == "새 댓글"
    assert comment_rows[0].related_id == testimony["id"]
    assert comment_rows[0].sender_name == "댓글러"

    reply = client.post(
        f"/testimonies/{testimony['id']}/comments",
        json={"content": "저도요", "parent_id": comment_id},
        headers=replier["headers"],
    )
    assert reply.status_code == 201, reply.text
    reply_id = reply.json()["comment"]["id"]

    reply_rows = _rows(db_session, commenter["id"], "reply")
    assert len(reply_rows) == 1
    assert reply_rows[0].title == "새 답글"
    assert reply_rows[0].related_id == testimony["id"]
    # 대댓글은 간증 작성자에게 댓글 알림을 만들지 않음
    assert len(_rows(db_session, author["id"], "comment")) == 1

    nested = client.post(
        f"/testimonies/{testimony['id']}/comments",
        json={"content": "x", "parent_id": reply_id},
        headers=author["headers"],
    )
    assert nested.status_code == 400
    assert nested.json()["detail"] == "Cannot reply to a reply"

    missing = client.post(
        f"/testimonies/{testimony['id']}/comments",
        json={"content": "x", "parent_id": 99999},
        headers=author["headers"],
    )
    assert missing.status_code == 404

    listing = client.get(f"/testimonies/{testimony['id']}/comments")
    assert listing.status_code == 200
    comments = listing.json()["comments"]
    assert len(comments) == 1
    assert comments[0]["id"] == comment_id
    assert [r["id"] for r in comments[0]["replies"]] == [reply_id]


def test_own_comment_does_not_notify(client, db_session):
    author = setup_user(client, db_session, fcm_token=make_token("author"))
    testimony = _create_testimony(client, author["headers"])

    r = client.post(
        f"/testimonies/{testimony['id']}/comments", json={"content": "제 글"}, headers=author["headers"]
    )
    assert r.status_code == 201
    assert _rows(db_session, author["id"], "comment") == []


def test_comment_like_notifies_comment_author(client, db_session, push):
    author = setup_user(client, db_session, name="간증자")
    commenter_token = make_token("commenter")
    commenter = setup_user(client, db_session, name="댓글러", fcm_token=commenter_token)
    fan = setup_user(client, db_session, name="팬")

    testimony = _create_testimony(client, author["headers"])
    comment_id = client.post(
        f"/testimonies/{testimony['id']}/comments", json={"content": "은혜"}, headers=commenter["headers"]
    ).json()["comment"]["id"]

    like = client.post(f"/testimony-comments/{comment_id}/like", headers=fan["headers"])
    assert like.status_code == 200, like.text
    assert like.json()["is_liked"] is True
    assert like.json()["like_count"] == 1

    rows = _rows(db_session, commenter["id"], "like")
    assert len(rows) == 1
    assert rows[0].title == "댓글 좋아요"
    assert rows[0].related_id == testimony["id"]

    msg = push.sent_to(commenter_token)[-1]
    assert msg.data["comment_id"] == str(comment_id)

    # 간증 화면 진입 시 관련 알림 일괄 읽음
    read = client.post(
        "/notifications/mark-related-read",
        json={"type": "testimony", "related_id": testimony["id"]},
        headers=commenter["headers"],
    )
    assert read.status_code == 200
    assert read.json()["affected_count"] == 2


def test_testimony_like_and_hot(client, db_session):
    author = setup_user(client, db_session, name="간증자", fcm_token=make_token("author"))
    fan = setup_user(client, db_session, name="팬")
    testimony = _create_testimony(client, author["headers"])

    like = client.post(f"/testimonies/{testimony['id']}/like", headers=fan["headers"])
    assert like.json() == {"success": True, "is_liked": True, "like_count": 1}
    assert len(_rows(db_session, author["id"], "like")) == 1

    assert client.get("/testimonies/hot").json()["testimonies"] == []

    db_session.execute(update(Testimony).where(Testimony.id == testimony["id"]).values(like_count=10))
    db_session.commit()

    hot = client.get("/testimonies/hot").json()["testimonies"]
    assert [t["id"] for t in hot] == [testimony["id"]]
    assert hot[0]["is_hot"] is True


def test_update_and_delete_testimony(client, db_session):
    author = setup_user(client, db_session, name="간증자")
    other = setup_user(client, db_session, name="다른회원")
    staff = setup_user(client, db_session, name="간사", authority="NCMN_STAFF")

    testimony = _create_testimony(client, author["headers"])
    tid = testimony["id"]

    assert client.patch(f"/testimonies/{tid}", json={"content": "x"}, headers=other["headers"]).status_code == 403
    ok = client.patch(f"/testimonies/{tid}", json={"category": "camp"}, headers=author["headers"])
    assert ok.status_code == 200, ok.text
    assert ok.json()["testimony"]["category"] == "camp"

    comment_id = client.post(
        f"/testimonies/{tid}/comments", json={"content": "댓글"}, headers=other["headers"]
    ).json()["comment"]["id"]
    client.post(f"/testimonies/{tid}/comments", json={"content": "답글", "parent_id": comment_id},
                headers=author["headers"])
    client.post(f"/testimony-comments/{comment_id}/like", headers=author["headers"])

    r = client.delete(f"/testimonies/{tid}", headers=staff["headers"])
    assert r.status_code == 200, r.text
    assert client.get(f"/testimonies/{tid}").status_code == 404

    db_session.expire_all()
    remaining = db_session.scalar(select(func.count(TestimonyComment.id)).where(TestimonyComment.testimony_id == tid))
    assert remaining == 0


def test_comment_edit_and_delete(client, db_session):
    author = setup_user(client, db_session, name="간증자")
    commenter = setup_user(client, db_session, name="댓글러")
    testimony = _create_testimony(client, author["headers"])

    comment_id = client.post(
        f"/testimonies/{testimony['id']}/comments", json={"content": "원래"}, headers=commenter["headers"]
    ).json()["comment"]["id"]
    client.post(
        f"/testimonies/{testimony['id']}/comments",
        json={"content": "답글", "parent_id": comment_id},
        headers=author["headers"],
    )

    assert client.patch(
        f"/testimony-comments/{comment_id}", json={"content": "수정"}, headers=author["headers"]
    ).status_code == 403
    edited = client.patch(f"/testimony-comments/{comment_id}", json={"content": "수정"}, headers=commenter["headers"])
    assert edited.status_code == 200
    assert edited.json()["comment"]["content"] == "수정"

    assert client.delete(f"/testimony-comments/{comment_id}", headers=author["headers"]).status_code == 403
    assert client.delete(f"/testimony-comments/{comment_id}", headers=commenter["headers"]).status_code == 200

    # 최상위 댓글 삭제 시 대댓글도 함께 삭제
    listing = client.get(f"/testimonies/{testimony['id']}/comments").json()["comments"]
    assert listing == []
