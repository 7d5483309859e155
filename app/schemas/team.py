from pydantic import BaseModel, Field

from app.models.team import TeamRole


class TeamMemberAddRequest(BaseModel):
    user_id: int = Field(ge=1)
    role: TeamRole = TeamRole.MEMBER


class TeamMemberRoleRequest(BaseModel):
    role: TeamRole


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)
