# re-export common schemas for simpler imports
from .LinkCreateRequest import LinkCreateRequest
from .LinkEditRequest import LinkEditRequest
from .LinkInfoResponse import LinkInfoResponse
from .LinkResult import LinkResult
from .PaginatedLinkList import PaginatedLinkList

__all__ = [
    "LinkCreateRequest",
    "LinkEditRequest",
    "LinkInfoResponse",
    "LinkResult",
    "PaginatedLinkList",
]
