from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shortlinks.core.config import Settings, get_settings
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.Connection import database
from shortlinks.db.repository import SQLLinkStore
from shortlinks.services.keyword_cache import KeywordCache
from shortlinks.services.resolver import RedirectResolver
from shortlinks.services.shortener import ShortLinkService


def get_hooks(request: Request) -> HookRegistry:
    return request.app.state.hooks


def get_store(db: Session = Depends(database.get_db)) -> SQLLinkStore:
    return SQLLinkStore(db)


def get_keyword_cache(settings: Settings = Depends(get_settings)) -> Optional[KeywordCache]:
    if not settings.KEYWORD_CACHE_ENABLED:
        return None
    return KeywordCache(database.redis_client, ttl=settings.KEYWORD_CACHE_TTL)


def get_link_service(
    request: Request,
    store: SQLLinkStore = Depends(get_store),
    hooks: HookRegistry = Depends(get_hooks),
    settings: Settings = Depends(get_settings),
    cache: Optional[KeywordCache] = Depends(get_keyword_cache),
) -> ShortLinkService:
    return ShortLinkService(store, hooks, settings, cache=cache, reserved_routes=request.app.state.reserved_routes)


def get_resolver(service: ShortLinkService = Depends(get_link_service)) -> RedirectResolver:
    return RedirectResolver(service.store, service.validator, service.hooks, service.settings, cache=service.cache)
