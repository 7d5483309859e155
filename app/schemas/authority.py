from typing import Literal
from pydantic import BaseModel, Field


class AuthorityActionRequest(BaseModel):
    action: Literal["add", "remove"]
    targetUserId: int = Field(ge=1)
    authorityId: int = Field(ge=1)
