from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
import logging

from shortlinks.api.deps import get_link_service
from shortlinks.schemas.LinkEditRequest import LinkEditRequest
from shortlinks.schemas.LinkResult import LinkResult
from shortlinks.schemas.PaginatedLinkList import PaginatedLinkList
from shortlinks.services.shortener import ShortLinkService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/list", response_model=PaginatedLinkList)
def list_links_endpoint(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: ShortLinkService = Depends(get_link_service),
):
    total, links = service.list_links(skip, limit)
    return PaginatedLinkList(total=total, skip=skip, limit=limit, links=links)


@router.get("/analytics/total_clicks", response_model=dict)
def get_total_clicks(service: ShortLinkService = Depends(get_link_service)):
    return {"total_clicks": service.total_clicks()}


@router.put("/links/{keyword}", response_model=LinkResult)
def edit_link_endpoint(keyword: str, edit: LinkEditRequest, service: ShortLinkService = Depends(get_link_service)):
    result = service.edit_link(keyword, edit.url, edit.new_keyword, edit.title)
    if not result.ok:
        return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))
    logger.info(f"Admin edited {keyword} -> {result.shorturl}")
    return result


@router.delete("/links/{keyword}")
def delete_link_endpoint(keyword: str, service: ShortLinkService = Depends(get_link_service)):
    deleted = service.delete_link(keyword)
    if not deleted:
        raise HTTPException(status_code=404, detail="Error: short URL not found")
    logger.info(f"Admin deleted {keyword}")
    return {"deleted": deleted}
