from pydantic import BaseModel, ConfigDict, Field


class AcademicYearResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year_code: str
    display_name: str
    full_year: int
    is_active: bool


class AcademicYearCreateRequest(BaseModel):
    year_code: str = Field(min_length=1, max_length=10)
    display_name: str = Field(min_length=1, max_length=50)
    full_year: int = Field(ge=1900, le=2100)
