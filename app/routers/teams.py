"""
teams.py

팀(Team) / 팀원 관리 API.

규칙:
- 조회는 로그인한 모든 회원
- 팀 생성은 마스터 권한(ADMIN, NCMN_STAFF)
- 팀원 추가 / 역할 변경 / 제외는 팀장 이상(can_manage_users)
- 팀장은 팀당 한 명
  → 추가 시 이미 팀장이 있으면 400
  → 역할 변경으로 새 팀장을 지정하면 기존 팀장은 부팀장으로 변경

"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.deps import get_current_manager, get_current_master, get_current_user, get_db
from app.models.team import Team, TeamMember, TeamRole
from app.models.user import User
from app.schemas.team import TeamCreateRequest, TeamMemberAddRequest, TeamMemberRoleRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/teams", tags=["teams"])

# 팀장 → 부팀장 → 팀원 순 정렬
_ROLE_ORDER = {TeamRole.LEADER.value: 0, TeamRole.SUB_LEADER.value: 1, TeamRole.MEMBER.value: 2}


def _get_team_or_404(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


def _get_member(db: Session, team_id: int, user_id: int) -> TeamMember | None:
    return db.scalar(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )


def _members(db: Session, team_id: int) -> list[dict]:
    rows = db.execute(
        select(TeamMember, User)
        .join(User, TeamMember.user_id == User.id)
        .where(TeamMember.team_id == team_id)
    ).all()
    members = [
        {"user_id": user.id, "name": user.name, "role": member.role}
        for member, user in rows
    ]
    members.sort(key=lambda m: (_ROLE_ORDER.get(m["role"], 99), m["name"]))
    return members


@router.get("")
def list_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = db.execute(
        select(Team, func.count(TeamMember.id))
        .outerjoin(TeamMember, TeamMember.team_id == Team.id)
        .group_by(Team.id)
        .order_by(Team.id.asc())
    ).all()
    return {
        "success": True,
        "teams": [
            {"id": team.id, "name": team.name, "description": team.description, "member_count": count}
            for team, count in rows
        ],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_team(
    data: TeamCreateRequest,
    db: Session = Depends(get_db),
    master: User = Depends(get_current_master),
):
    try:
        team = Team(name=data.name, description=data.description)
        db.add(team)
        db.commit()
        db.refresh(team)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "team": {"id": team.id, "name": team.name, "description": team.description}}


@router.get("/{team_id}")
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    team = _get_team_or_404(db, team_id)
    return {
        "success": True,
        "team": {
            "id": team.id,
            "name": team.name,
            "description": team.description,
            "members": _members(db, team.id),
        },
    }


@router.post("/{team_id}/members", status_code=status.HTTP_201_CREATED)
def add_member(
    team_id: int,
    data: TeamMemberAddRequest,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_manager),
):
    team = _get_team_or_404(db, team_id)

    if not db.get(User, data.user_id):
        raise HTTPException(status_code=404, detail="User not found")

    if data.role == TeamRole.LEADER:
        leader = db.scalar(
            select(TeamMember).where(TeamMember.team_id == team.id, TeamMember.role == TeamRole.LEADER.value)
        )
        if leader:
            raise HTTPException(status_code=400, detail="Team already has a leader")

    if _get_member(db, team.id, data.user_id):
        raise HTTPException(status_code=400, detail="User is already a team member")

    try:
        db.add(TeamMember(team_id=team.id, user_id=data.user_id, role=data.role.value))
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "members": _members(db, team.id)}


@router.patch("/{team_id}/members/{user_id}")
def change_member_role(
    team_id: int,
    user_id: int,
    data: TeamMemberRoleRequest,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_manager),
):
    team = _get_team_or_404(db, team_id)
    member = _get_member(db, team.id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")

    try:
        if data.role == TeamRole.LEADER:
            db.execute(
                update(TeamMember)
                .where(
                    TeamMember.team_id == team.id,
                    TeamMember.role == TeamRole.LEADER.value,
                    TeamMember.user_id != user_id,
                )
                .values(role=TeamRole.SUB_LEADER.value)
            )
        member.role = data.role.value
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("Team %s member %s role -> %s by %s", team.id, user_id, data.role.value, manager.id)
    return {"success": True, "members": _members(db, team.id)}


@router.delete("/{team_id}/members/{user_id}")
def remove_member(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    manager: User = Depends(get_current_manager),
):
    team = _get_team_or_404(db, team_id)
    member = _get_member(db, team.id, user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")

    try:
        db.delete(member)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "members": _members(db, team.id)}
