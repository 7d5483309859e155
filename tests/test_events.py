"""
일정(Event) API 테스트.
- 조회는 모든 회원, 작성 / 수정 / 삭제는 지부장(레벨 3) 이상.
"""

from tests.helpers import setup_user

EVENT = {
    "title": "여름 수련회",
    "description": "2박 3일",
    "category": "camp",
    "location": "강원도",
    "start_date": "2026-07-20",
    "end_date": "2026-07-22",
    "start_time": "09:00",
    "end_time": "18:00",
}


def test_event_crud(client, db_session):
    director = setup_user(client, db_session, name="지부장", authority="BRANCH_DIRECTOR")
    member = setup_user(client, db_session, name="회원")

    created = client.post("/events", json=EVENT, headers=director["headers"])
    assert created.status_code == 201, created.text
    event = created.json()["event"]
    assert event["start_time"] == "09:00"
    assert event["created_by"] == director["id"]

    listing = client.get("/events", headers=member["headers"])
    assert [e["id"] for e in listing.json()["events"]] == [event["id"]]
    assert client.get("/events", params={"category": "meeting"}, headers=member["headers"]).json()["events"] == []

    updated = client.put(f"/events/{event['id']}", json={"location": None, "title": "수련회"},
                         headers=director["headers"])
    assert updated.status_code == 200, updated.text
    assert updated.json()["event"]["location"] is None
    assert updated.json()["event"]["title"] == "수련회"

    bad_period = client.put(f"/events/{event['id']}", json={"end_date": "2026-07-01"}, headers=director["headers"])
    assert bad_period.status_code == 400

    deleted = client.delete(f"/events/{event['id']}", headers=director["headers"])
    assert deleted.status_code == 200
    assert client.get(f"/events/{event['id']}", headers=member["headers"]).status_code == 404


def test_event_write_requires_training_manager(client, db_session):
    team_leader = setup_user(client, db_session, authority="TEAM_LEADER")

    r = client.post("/events", json=EVENT, headers=team_leader["headers"])
    assert r.status_code == 403
    assert r.json()["detail"] == "Requires authority level <= 3"


def test_event_period_validation(client, db_session):
    admin = setup_user(client, db_session, authority="ADMIN")
    r = client.post("/events", json={**EVENT, "end_date": "2026-07-19"}, headers=admin["headers"])
    assert r.status_code == 422
