from pydantic import BaseModel
from typing import Optional

from shortlinks.schemas.LinkInfoResponse import LinkInfoResponse

class LinkResult(BaseModel):
    """Outcome of a create or edit call; failures carry a machine-readable ``code``."""
    status: str
    code: str = ""
    message: str
    status_code: int
    shorturl: Optional[str] = None
    title: Optional[str] = None
    # The new link, or on error:url the link already stored for that URL
    link: Optional[LinkInfoResponse] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
