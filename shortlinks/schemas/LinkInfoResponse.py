from pydantic import BaseModel
from datetime import datetime

# Response DTOs
class LinkInfoResponse(BaseModel):
    keyword: str
    url: str
    shorturl: str
    title: str = ""
    timestamp: datetime
    ip: str = ""
    clicks: int = 0

    model_config = {"from_attributes": True}
