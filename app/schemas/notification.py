from typing import Literal
from pydantic import BaseModel, Field


class MarkRelatedReadRequest(BaseModel):
    type: Literal["notice", "testimony"]
    related_id: int = Field(ge=1)


# user_id 가 없으면 토픽(전체) 푸시
class SystemNotificationRequest(BaseModel):
    title: str = Field(min_length=1, max_length=100)
    message: str = Field(min_length=1, max_length=1000)
    user_id: int | None = Field(default=None, ge=1)
