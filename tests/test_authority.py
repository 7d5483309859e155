"""
권한(Authority) 계산 / 부여 / 제거 테스트.
- 기본 권한(리더) 대체, 겸직 시 최고 레벨 계산,
  팀장 이상만 권한 관리 가능, 재부여 시 중복 없이 재활성화,
  users.authority 레거시 표시명 동기화까지 검증한다.
"""

from sqlalchemy import func, select

from app.models.authority import Authority, UserAuthority
from app.models.user import User
from app.services.authority import remove_authority, resolve_authorities
from app.services.legacy_authority import convert_legacy_level
from tests.helpers import create_user, grant_authority, setup_user


def _authority_id(db, name: str) -> int:
    return db.scalar(select(Authority.id).where(Authority.name == name))


def test_resolve_defaults_to_leader(db_session):
    user = create_user(db_session)

    resolved = resolve_authorities(db_session, user.id)
    assert resolved.names == ["LEADER"]
    assert resolved.highest_authority_level == 6
    assert resolved.authority_display_names == "리더"
    assert not resolved.can_manage_users()
    assert not resolved.is_master_authority()


def test_resolve_missing_user(db_session):
    assert resolve_authorities(db_session, 99999) is None


def test_multiple_authorities_sorted_by_level(db_session):
    user = create_user(db_session)
    grant_authority(db_session, user, "GROUP_LEADER")
    grant_authority(db_session, user, "BRANCH_DIRECTOR")

    resolved = resolve_authorities(db_session, user.id)
    assert resolved.names == ["BRANCH_DIRECTOR", "GROUP_LEADER"]
    assert resolved.highest_authority_level == 3
    assert resolved.authority_display_names == "지부장, 조장"
    assert resolved.can_manage_users()
    assert resolved.can_manage_training()
    assert not resolved.is_master_authority()

    db_session.expire_all()
    assert db_session.get(User, user.id).authority == "지부장"


def test_removed_authority_falls_back_to_default(db_session):
    user = create_user(db_session)
    grant_authority(db_session, user, "TEAM_LEADER")

    assert remove_authority(db_session, user_id=user.id, authority_id=_authority_id(db_session, "TEAM_LEADER"))
    db_session.commit()
    # 이미 비활성화된 권한은 False
    assert not remove_authority(db_session, user_id=user.id, authority_id=_authority_id(db_session, "TEAM_LEADER"))

    resolved = resolve_authorities(db_session, user.id)
    assert resolved.names == ["LEADER"]


def test_convert_legacy_level(db_session):
    assert convert_legacy_level(db_session, 0).name == "ADMIN"
    assert convert_legacy_level(db_session, 3).name == "BRANCH_DIRECTOR"
    assert convert_legacy_level(db_session, 9).name == "LEADER"
    assert convert_legacy_level(db_session, None).name == "LEADER"


def test_list_authorities(client, db_session):
    me = setup_user(client, db_session)
    r = client.get("/authorities", headers=me["headers"])
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert [a["name"] for a in data["authorities"]][0] == "ADMIN"
    assert len(data["authorities"]) == 7
    assert {c["name"] for c in data["categories"]} == {"MINISTRY", "ORGANIZATION"}


def test_manage_authority_requires_manager(client, db_session):
    member = setup_user(client, db_session, name="일반회원")
    target = create_user(db_session, name="대상")

    r = client.post(
        "/authorities",
        json={"action": "add", "targetUserId": target.id, "authorityId": _authority_id(db_session, "ADMIN")},
        headers=member["headers"],
    )
    assert r.status_code == 403


def test_manage_authority_add_and_remove(client, db_session):
    manager = setup_user(client, db_session, name="팀장", authority="TEAM_LEADER")
    target = create_user(db_session, name="대상")
    group_leader_id = _authority_id(db_session, "GROUP_LEADER")

    add = client.post(
        "/authorities",
        json={"action": "add", "targetUserId": target.id, "authorityId": group_leader_id},
        headers=manager["headers"],
    )
    assert add.status_code == 200, add.text
    body = add.json()
    assert body["message"] == "Authority added"
    assert body["targetUser"]["userId"] == target.id
    assert [a["name"] for a in body["targetUser"]["authorities"]] == ["GROUP_LEADER"]

    # 같은 권한을 다시 부여해도 행은 하나
    again = client.post(
        "/authorities",
        json={"action": "add", "targetUserId": target.id, "authorityId": group_leader_id},
        headers=manager["headers"],
    )
    assert again.status_code == 200
    count = db_session.scalar(
        select(func.count(UserAuthority.id)).where(
            UserAuthority.user_id == target.id, UserAuthority.authority_id == group_leader_id
        )
    )
    assert count == 1

    view = client.get(f"/authorities/users/{target.id}", headers=manager["headers"])
    assert view.json()["data"]["authority"] == "조장"

    remove = client.post(
        "/authorities",
        json={"action": "remove", "targetUserId": target.id, "authorityId": group_leader_id},
        headers=manager["headers"],
    )
    assert remove.status_code == 200
    assert remove.json()["message"] == "Authority removed"
    assert [a["name"] for a in remove.json()["targetUser"]["authorities"]] == ["LEADER"]

    db_session.expire_all()
    assert db_session.get(User, target.id).authority == "리더"


def test_manage_authority_not_found(client, db_session):
    manager = setup_user(client, db_session, authority="ADMIN")

    no_user = client.post(
        "/authorities",
        json={"action": "add", "targetUserId": 99999, "authorityId": _authority_id(db_session, "LEADER")},
        headers=manager["headers"],
    )
    assert no_user.status_code == 404
    assert no_user.json()["detail"] == "Target user not found"

    no_authority = client.post(
        "/authorities",
        json={"action": "add", "targetUserId": manager["id"], "authorityId": 99999},
        headers=manager["headers"],
    )
    assert no_authority.status_code == 404
    assert no_authority.json()["detail"] == "Authority not found"


def test_my_authorities(client, db_session):
    me = setup_user(client, db_session, authority="NCMN_STAFF")
    r = client.get("/authorities/me", headers=me["headers"])
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["userId"] == me["id"]
    assert data["highestAuthorityLevel"] == 1
    assert data["authorityDisplayNames"] == "NCMN 간사"


def test_can_access_by_level_is_monotonic(db_session):
    user = create_user(db_session)
    grant_authority(db_session, user, "TEAM_LEADER")
    resolved = resolve_authorities(db_session, user.id)

    allowed = [level for level in range(0, 12) if resolved.can_access_by_level(level)]
    assert allowed == list(range(4, 12))
    # 한 번 허용된 레벨보다 느슨한 요구 레벨은 모두 허용
    for level in allowed:
        assert all(resolved.can_access_by_level(looser) for looser in range(level, 20))


def test_remove_never_assigned_authority(db_session):
    user = create_user(db_session)
    grant_authority(db_session, user, "GROUP_LEADER")
    before = resolve_authorities(db_session, user.id)

    assert not remove_authority(db_session, user_id=user.id, authority_id=_authority_id(db_session, "ADMIN"))
    db_session.commit()

    after = resolve_authorities(db_session, user.id)
    assert after.names == before.names == ["GROUP_LEADER"]
    assert after.highest_authority_level == before.highest_authority_level
    assert after.authority_display_names == before.authority_display_names
    rows = db_session.scalar(select(func.count(UserAuthority.id)).where(UserAuthority.user_id == user.id))
    assert rows == 1


def test_remove_from_user_without_assignments(db_session):
    user = create_user(db_session)

    assert not remove_authority(db_session, user_id=user.id, authority_id=_authority_id(db_session, "LEADER"))
    assert resolve_authorities(db_session, user.id).names == ["LEADER"]
