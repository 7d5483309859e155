from pydantic import BaseModel, Field

from app.models.testimony import TestimonyCategory


class TestimonyCreateRequest(BaseModel):
    category: TestimonyCategory
    content: str = Field(min_length=1)
    image_urls: list[str] = Field(default_factory=list)


class TestimonyUpdateRequest(BaseModel):
    category: TestimonyCategory | None = None
    content: str | None = Field(default=None, min_length=1)
    image_urls: list[str] | None = None


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    parent_id: int | None = None


class CommentUpdateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
