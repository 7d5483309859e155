import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field


# 🔹 유저 응답용 (비밀번호 / 토큰 제외)
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)  # SQLAlchemy → Pydantic 변환

    id: int
    phone: str
    name: str
    email: str | None = None
    birthday: datetime.date | None = None
    gender: str | None = None
    school: str | None = None
    major: str | None = None
    student_id: str | None = None
    grade: int | None = None
    semester: int | None = None
    region_group_id: int | None = None
    vision_camp_batch: str | None = None


# 🔹 부분 수정 요청 (보낸 필드만 반영)
class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None
    birthday: datetime.date | None = None
    gender: str | None = None
    school: str | None = None
    major: str | None = None
    student_id: str | None = None
    grade: int | None = Field(default=None, ge=1, le=6)
    semester: int | None = Field(default=None, ge=1, le=2)
    region_group_id: int | None = None
    vision_camp_batch: str | None = Field(default=None, max_length=20)


class PushTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class UpdateEmailRequest(BaseModel):
    email: EmailStr
