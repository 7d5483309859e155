"""
레거시 권한 이관 스크립트 테스트.
- 숫자 레벨 / 표시명 / 알 수 없는 값을 새 권한으로 옮기고
  이미 권한이 있는 회원은 건너뛰는지 검증한다.
"""

from app.models.user import User
from app.services.authority import resolve_authorities
from scripts.migrate_legacy_authorities import migrate
from tests.helpers import create_user, grant_authority


def _with_legacy(db, name, value):
    user = create_user(db, name=name)
    user.authority = value
    db.commit()
    return user


def test_migrate_legacy_values(db_session):
    numeric = _with_legacy(db_session, "숫자", "3")
    display = _with_legacy(db_session, "표시명", "조장")
    unknown = _with_legacy(db_session, "모름", "9")
    empty = _with_legacy(db_session, "없음", None)
    already = create_user(db_session, name="이관완료")
    grant_authority(db_session, already, "TEAM_LEADER")

    migrated, skipped = migrate(db_session)
    db_session.commit()

    assert (migrated, skipped) == (4, 1)
    assert resolve_authorities(db_session, numeric.id).names == ["BRANCH_DIRECTOR"]
    assert resolve_authorities(db_session, display.id).names == ["GROUP_LEADER"]
    assert resolve_authorities(db_session, unknown.id).names == ["LEADER"]
    assert resolve_authorities(db_session, empty.id).names == ["LEADER"]
    assert resolve_authorities(db_session, already.id).names == ["TEAM_LEADER"]

    db_session.expire_all()
    assert db_session.get(User, numeric.id).authority == "지부장"

    # 다시 실행해도 변화 없음
    assert migrate(db_session) == (0, 5)
