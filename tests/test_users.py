"""
회원 조회 / 수정 API 테스트.
"""

from app.services.users import get_or_create_region_group
from tests.helpers import setup_user


def test_list_users_with_region_filter(client, db_session):
    seoul = get_or_create_region_group(db_session, "서울", 1)
    busan = get_or_create_region_group(db_session, "부산", 2)
    db_session.commit()

    me = setup_user(client, db_session, name="가나다")
    b = setup_user(client, db_session, name="라마바")
    c = setup_user(client, db_session, name="사아자")
    me["user"].region_group_id = seoul.id
    b["user"].region_group_id = seoul.id
    c["user"].region_group_id = busan.id
    db_session.commit()

    r = client.get("/users", params={"region": "서울"}, headers=me["headers"])
    assert r.status_code == 200, r.text
    names = [u["name"] for u in r.json()["users"]]
    assert names == ["가나다", "라마바"]
    assert r.json()["users"][0]["region"] == "서울"
    assert "password_hash" not in r.json()["users"][0]

    all_users = client.get("/users", headers=me["headers"])
    assert len(all_users.json()["users"]) == 3


def test_region_group_is_reused(db_session):
    first = get_or_create_region_group(db_session, "대구", None)
    second = get_or_create_region_group(db_session, "대구", 1)
    db_session.commit()
    assert first.id == second.id
    assert first.group_number == 1


def test_get_user(client, db_session):
    me = setup_user(client, db_session, authority="GROUP_LEADER")
    r = client.get(f"/users/{me['id']}", headers=me["headers"])
    assert r.status_code == 200
    assert r.json()["user"]["authority"] == "조장"
    assert client.get("/users/99999", headers=me["headers"]).status_code == 404


def test_update_self(client, db_session):
    me = setup_user(client, db_session, name="원래이름")

    r = client.patch(f"/users/{me['id']}", json={"name": "새이름", "grade": 3}, headers=me["headers"])
    assert r.status_code == 200, r.text
    assert set(r.json()["updated_fields"]) == {"name", "grade"}
    assert r.json()["user"]["name"] == "새이름"

    # 보내지 않은 필드는 그대로, null 로 보낸 필드는 비움
    cleared = client.patch(f"/users/{me['id']}", json={"grade": None}, headers=me["headers"])
    assert cleared.json()["user"]["grade"] is None
    assert cleared.json()["user"]["name"] == "새이름"

    null_name = client.patch(f"/users/{me['id']}", json={"name": None}, headers=me["headers"])
    assert null_name.status_code == 400

    bad_group = client.patch(f"/users/{me['id']}", json={"region_group_id": 99999}, headers=me["headers"])
    assert bad_group.status_code == 404


def test_update_other_requires_manager(client, db_session):
    member = setup_user(client, db_session, name="회원")
    target = setup_user(client, db_session, name="대상")
    manager = setup_user(client, db_session, name="팀장", authority="TEAM_LEADER")

    forbidden = client.patch(f"/users/{target['id']}", json={"school": "X대"}, headers=member["headers"])
    assert forbidden.status_code == 403

    ok = client.patch(f"/users/{target['id']}", json={"school": "X대"}, headers=manager["headers"])
    assert ok.status_code == 200, ok.text
    assert ok.json()["user"]["school"] == "X대"



def test_update_email(client, db_session):
    me = setup_user(client, db_session, name="나")
    other = setup_user(client, db_session, name="다른회원")
    other["user"].email = "taken@example.com"
    db_session.commit()

    r = client.post("/users/update-email", json={"email": "me@example.com"}, headers=me["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["email"] == "me@example.com"
    assert client.get("/users/me", headers=me["headers"]).json()["user"]["email"] == "me@example.com"

    same = client.post("/users/update-email", json={"email": "me@example.com"}, headers=me["headers"])
    assert same.status_code == 400
    taken = client.post("/users/update-email", json={"email": "taken@example.com"}, headers=me["headers"])
    assert taken.status_code == 400
    assert taken.json()["detail"] == "Email already in use"

    assert client.post("/users/update-email", json={"email": "not-an-email"}, headers=me["headers"]).status_code == 422


def test_update_vision_camp_batch(client, db_session):
    me = setup_user(client, db_session)
    r = client.patch(f"/users/{me['id']}", json={"vision_camp_batch": "12기"}, headers=me["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["updated_fields"] == ["vision_camp_batch"]
    assert r.json()["user"]["vision_camp_batch"] == "12기"
