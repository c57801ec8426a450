from pydantic import BaseModel, Field
from typing import Optional

class LinkEditRequest(BaseModel):
    url: str = Field(..., max_length=2048)
    # Defaults to the current keyword
    new_keyword: Optional[str] = None
    title: Optional[str] = None
