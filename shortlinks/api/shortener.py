import os

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
import logging

from shortlinks.FloodHelper import get_client_ip
from shortlinks.api.deps import get_link_service, get_resolver
from shortlinks.schemas.LinkCreateRequest import LinkCreateRequest
from shortlinks.schemas.LinkInfoResponse import LinkInfoResponse
from shortlinks.schemas.LinkResult import LinkResult
from shortlinks.services.metrics import Visit
from shortlinks.services.resolver import OutcomeKind, RedirectResolver
from shortlinks.services.shortener import ShortLinkService

logger = logging.getLogger(__name__)

router = APIRouter()
redirect_router = APIRouter(tags=["redirect"])


@router.post("/v1/shorten", response_model=LinkResult, status_code=status.HTTP_201_CREATED)
def shorten_url_endpoint(link_request: LinkCreateRequest, request: Request,
                         service: ShortLinkService = Depends(get_link_service)):
    result = service.create_short_link(
        link_request.url,
        link_request.keyword,
        link_request.title,
        ip=get_client_ip(request),
    )
    if not result.ok:
        return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))

    logger.info(f"API success: {result.message} as {result.link.keyword}")
    return result


@router.get("/v1/links/{keyword}", response_model=LinkInfoResponse)
def get_link_stats_endpoint(keyword: str, service: ShortLinkService = Depends(get_link_service)):
    stats = service.get_keyword_stats(keyword)
    if stats is None:
        logger.warning(f"Stats 404: keyword not found: {keyword}")
        raise HTTPException(status_code=404, detail="Error: short URL not found")
    return stats


@redirect_router.get("/{keyword}")
def redirect_to_url_endpoint(keyword: str, request: Request, background_tasks: BackgroundTasks,
                             resolver: RedirectResolver = Depends(get_resolver)):
    visit = Visit(
        ip=get_client_ip(request),
        referrer=request.headers.get("referer", ""),
        user_agent=request.headers.get("user-agent", ""),
    )
    outcome = resolver.resolve_keyword(keyword, visit, defer=background_tasks.add_task)

    if outcome.kind == OutcomeKind.PAGE:
        return FileResponse(os.path.join(resolver.settings.PAGES_DIR, f"{outcome.keyword}.html"),
                            media_type="text/html")

    if outcome.kind == OutcomeKind.NOT_FOUND:
        logger.info(f"Redirect miss for {keyword!r}, sending to site root")
    else:
        logger.info(f"Redirect {outcome.keyword} -> {outcome.location[:50]}")

    response = RedirectResponse(url=outcome.location, status_code=outcome.status_code)
    response.headers["X-Robots-Tag"] = "noindex"
    return response
