import datetime
from pydantic import BaseModel, EmailStr, Field


class JoinRequest(BaseModel):
    phone: str = Field(min_length=9, max_length=20)
    password: str = Field(min_length=8, max_length=64)
    name: str = Field(min_length=1, max_length=50)
    email: EmailStr | None = None
    birthday: datetime.date | None = None
    gender: str | None = None
    school: str | None = None
    major: str | None = None
    student_id: str | None = None
    grade: int | None = Field(default=None, ge=1, le=6)
    semester: int | None = Field(default=None, ge=1, le=2)
    region: str | None = None
    group_number: int | None = Field(default=None, ge=1)
    vision_camp_batch: str = Field(default="미수료", max_length=20)

class LoginRequest(BaseModel):
    phone: str = Field(min_length=1)
    password: str = Field(min_length=1)

class RefreshTokenRequest(BaseModel):
    refreshToken: str | None = None

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)

class VerifyUserInfoRequest(BaseModel):
    phone: str = Field(min_length=1)
    email: EmailStr
