"""
팀 / 팀원 관리 API 테스트.
- 팀장은 팀당 한 명, 새 팀장 지정 시 기존 팀장은 부팀장으로 변경.
"""

from tests.helpers import create_user, setup_user


def _create_team(client, headers, name="찬양팀"):
    r = client.post("/teams", json={"name": name}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["team"]["id"]


def test_team_member_roles(client, db_session):
    admin = setup_user(client, db_session, name="운영자", authority="ADMIN")
    manager = setup_user(client, db_session, name="관리자", authority="TEAM_LEADER")
    a = create_user(db_session, name="가")
    b = create_user(db_session, name="나")

    team_id = _create_team(client, admin["headers"])
    # 팀장 권한으로는 팀 생성 불가
    assert client.post("/teams", json={"name": "x"}, headers=manager["headers"]).status_code == 403

    add_a = client.post(f"/teams/{team_id}/members", json={"user_id": a.id, "role": "팀장"},
                        headers=manager["headers"])
    assert add_a.status_code == 201, add_a.text

    second_leader = client.post(f"/teams/{team_id}/members", json={"user_id": b.id, "role": "팀장"},
                                headers=manager["headers"])
    assert second_leader.status_code == 400
    assert second_leader.json()["detail"] == "Team already has a leader"

    add_b = client.post(f"/teams/{team_id}/members", json={"user_id": b.id}, headers=manager["headers"])
    assert add_b.status_code == 201
    assert {m["name"]: m["role"] for m in add_b.json()["members"]} == {"가": "팀장", "나": "팀원"}

    dup = client.post(f"/teams/{team_id}/members", json={"user_id": b.id}, headers=manager["headers"])
    assert dup.status_code == 400

    promote = client.patch(f"/teams/{team_id}/members/{b.id}", json={"role": "팀장"}, headers=manager["headers"])
    assert promote.status_code == 200, promote.text
    members = promote.json()["members"]
    assert [(m["name"], m["role"]) for m in members] == [("나", "팀장"), ("가", "부팀장")]

    detail = client.get(f"/teams/{team_id}", headers=manager["headers"])
    assert len(detail.json()["team"]["members"]) == 2

    removed = client.delete(f"/teams/{team_id}/members/{a.id}", headers=manager["headers"])
    assert removed.status_code == 200
    assert [m["name"] for m in removed.json()["members"]] == ["나"]

    listing = client.get("/teams", headers=manager["headers"])
    assert listing.json()["teams"][0]["member_count"] == 1


def test_team_not_found_and_permissions(client, db_session):
    manager = setup_user(client, db_session, authority="ADMIN")
    member = setup_user(client, db_session, name="회원")

    assert client.post("/teams", json={"name": "x"}, headers=member["headers"]).status_code == 403

    missing_team = client.post("/teams/99999/members", json={"user_id": member["id"]}, headers=manager["headers"])
    assert missing_team.status_code == 404

    team_id = _create_team(client, manager["headers"])
    missing_user = client.post(f"/teams/{team_id}/members", json={"user_id": 99999}, headers=manager["headers"])
    assert missing_user.status_code == 404
    assert missing_user.json()["detail"] == "User not found"

    not_member = client.patch(f"/teams/{team_id}/members/{member['id']}", json={"role": "부팀장"},
                              headers=manager["headers"])
    assert not_member.status_code == 404
