from pydantic import BaseModel, Field


class NoticeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    image_urls: list[str] = Field(default_factory=list)
    is_pinned: bool = False


class NoticeUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    is_pinned: bool | None = None
    # 보내면 기존 이미지를 모두 교체
    image_urls: list[str] | None = None


# 공지사항 댓글 작성 / 수정 공용
class NoticeCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
