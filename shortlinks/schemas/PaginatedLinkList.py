from shortlinks.schemas.LinkInfoResponse import LinkInfoResponse
from pydantic import BaseModel
from typing import List

class PaginatedLinkList(BaseModel):
    total: int
    skip: int
    limit: int
    links: List[LinkInfoResponse]
