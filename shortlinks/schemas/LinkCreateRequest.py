from pydantic import BaseModel, Field, field_validator
from typing import Optional

# Request DTOs
class LinkCreateRequest(BaseModel):
    url: str = Field(..., max_length=2048)
    # Empty or missing keyword: one is generated from the counter
    keyword: Optional[str] = None
    title: Optional[str] = None

    @field_validator('keyword')
    def validate_keyword(cls, v):
        if v is None:
            return v
        if len(v) > 200:
            raise ValueError('keyword must be 200 characters or less')
        return v
