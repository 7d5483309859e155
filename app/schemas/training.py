import datetime
from pydantic import BaseModel, Field

from app.models.training import TrainingType


class TrainingRecordRequest(BaseModel):
    type: TrainingType
    date: datetime.date
    completed: bool = True
    content: str | None = Field(default=None, max_length=2000)
