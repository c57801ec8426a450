import logging
from typing import Iterable, List, Optional, Tuple

from shortlinks.FloodHelper import check_ip_flood
from shortlinks.core.config import Settings
from shortlinks.core.errors import (
    DuplicateUrl,
    InvalidUrl,
    KeywordConflict,
    KeywordUnavailable,
    LinkNotFound,
    ShortenerError,
    ShortUrlLoopDetected,
)
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import LinkRecord, LinkStore
from shortlinks.schemas.LinkInfoResponse import LinkInfoResponse
from shortlinks.schemas.LinkResult import LinkResult
from shortlinks.services.allocator import KeywordAllocator
from shortlinks.services.keyword_cache import KeywordCache
from shortlinks.services.keywords import KeywordValidator
from shortlinks.utils.sanitize import get_protocol, sanitize_title, trim_long_string

logger = logging.getLogger(__name__)

# Per-failure filters, applied before the generic add_new_link filter
FAILURE_FILTERS = {
    InvalidUrl: "add_new_link_fail_nourl",
    ShortUrlLoopDetected: "add_new_link_fail_noloop",
    DuplicateUrl: "add_new_link_already_stored_filter",
    KeywordUnavailable: "add_new_link_keyword_exists",
}


class ShortLinkService:

    def __init__(self, store: LinkStore, hooks: HookRegistry, settings: Settings,
                 cache: Optional[KeywordCache] = None, reserved_routes: Iterable[str] = ()):
        self.store = store
        self.hooks = hooks
        self.settings = settings
        self.cache = cache
        self.validator = KeywordValidator(store, hooks, settings, reserved_routes)
        self.allocator = KeywordAllocator(store, self.validator, hooks, settings)

    def link(self, keyword: str) -> str:
        return self.hooks.apply_filter("shorturl", f"{self.settings.BASE_URL.rstrip('/')}/{keyword}", keyword)

    def link_info(self, link: LinkRecord) -> LinkInfoResponse:
        return LinkInfoResponse(
            keyword=link.keyword,
            url=link.url,
            shorturl=self.link(link.keyword),
            title=link.title,
            timestamp=link.timestamp,
            ip=link.ip,
            clicks=link.clicks,
        )

    def allow_duplicate_longurls(self) -> bool:
        return self.hooks.apply_filter("allow_duplicate_longurls", not self.settings.UNIQUE_URLS)

    def long_url_exists(self, url: str) -> Optional[LinkRecord]:
        pre = self.hooks.shunt("shunt_url_exists", url)
        if pre is not None:
            return pre
        return self.hooks.apply_filter("url_exists", self.store.get_by_url(url), url)

    def create_short_link(self, url: str, keyword: Optional[str] = None, title: Optional[str] = None,
                          ip: str = "") -> LinkResult:
        pre = self.hooks.shunt("shunt_add_new_link", url, keyword, title)
        if pre is not None:
            return pre

        try:
            result = self._add_new_link(url, keyword, title, ip)
        except ShortenerError as e:
            logger.warning(f"Failed to create short URL for {(url or '')[:50]}... due to: {e.message}")
            result = self._failure(e)
            failure_filter = FAILURE_FILTERS.get(type(e))
            if failure_filter:
                result = self.hooks.apply_filter(failure_filter, result, url, keyword, title)

        self.hooks.do_action("post_add_new_link", url, keyword, title, result)
        return self.hooks.apply_filter("add_new_link", result, url, keyword, title)

    def _add_new_link(self, url: str, keyword: Optional[str], title: Optional[str], ip: str) -> LinkResult:
        url = self.validator.sanitize_url(url or "")
        protocol = get_protocol(url)
        if not url or not protocol or url == protocol:
            raise InvalidUrl("Missing or malformed URL")

        check_ip_flood(self.store, self.hooks, self.settings, ip)

        # a short URL of this installation would redirect to itself
        if self.validator.is_shorturl(url):
            raise ShortUrlLoopDetected("URL is a short URL")

        self.hooks.do_action("pre_add_new_link", url, keyword, title)

        if not self.allow_duplicate_longurls():
            existing = self.long_url_exists(url)
            if existing:
                self.hooks.do_action("add_new_link_already_stored", url, keyword, title)
                site = self.settings.BASE_URL.rstrip("/").split("://", 1)[-1]
                raise DuplicateUrl(
                    f"{trim_long_string(url)} already exists in database (short URL: {site}/{existing.keyword})",
                    link=self.link_info(existing),
                )

        title = sanitize_title(title, fallback=url)
        title = self.hooks.apply_filter("add_new_title", title, url, keyword)

        link = self.allocator.allocate(url, title, ip, keyword=keyword)
        logger.info(f"Shortened {url[:50]}... to {link.keyword}")

        return LinkResult(
            status="success",
            message=f"{trim_long_string(url)} added to database",
            status_code=201,
            shorturl=self.link(link.keyword),
            title=link.title,
            link=self.link_info(link),
        )

    def _failure(self, error: ShortenerError) -> LinkResult:
        link = error.link
        return LinkResult(
            status="fail",
            code=error.code,
            message=error.message,
            status_code=error.status_code,
            shorturl=link.shorturl if link else None,
            title=link.title if link else None,
            link=link,
        )

    def edit_link(self, keyword: str, url: str, new_keyword: Optional[str] = None,
                  title: Optional[str] = None) -> LinkResult:
        pre = self.hooks.shunt("shunt_edit_link", keyword, url, new_keyword, title)
        if pre is not None:
            return pre

        try:
            result = self._edit_link(keyword, url, new_keyword, title)
        except ShortenerError as e:
            logger.warning(f"Failed to edit {keyword}: {e.message}")
            result = self._failure(e)
        return self.hooks.apply_filter("edit_link", result, keyword, url, new_keyword, title)

    def _edit_link(self, keyword: str, url: str, new_keyword: Optional[str], title: Optional[str]) -> LinkResult:
        url = self.validator.sanitize_url(url or "")
        keyword = self.validator.sanitize(keyword)
        new_keyword = self.validator.sanitize(keyword if new_keyword is None else new_keyword, True)
        title = sanitize_title(title)

        if not url or not new_keyword:
            raise InvalidUrl("Long URL or Short URL cannot be blank")

        current = self.store.get(keyword)
        if current is None:
            raise LinkNotFound(f"Short URL {keyword} not found")

        url_taken = (
            current.url != url
            and not self.allow_duplicate_longurls()
            and self.store.get_by_url(url) is not None
        )
        keyword_ok = new_keyword == keyword or self.validator.is_free(new_keyword)

        self.hooks.do_action("pre_edit_link", url, keyword, new_keyword, url_taken, keyword_ok)

        if url_taken:
            raise DuplicateUrl("URL already exists in database")
        if not keyword_ok:
            raise KeywordUnavailable(f"Short URL {new_keyword} already exists in database or is reserved")

        try:
            self.store.update(keyword, url, new_keyword, title)
        except KeywordConflict:
            raise KeywordUnavailable(f"Short URL {new_keyword} already exists in database or is reserved")

        self._invalidate(keyword, new_keyword)
        updated = self.store.get(new_keyword)
        return LinkResult(
            status="success",
            message="Link updated in database",
            status_code=200,
            shorturl=self.link(new_keyword),
            title=title,
            link=self.link_info(updated) if updated else None,
        )

    def delete_link(self, keyword: str) -> int:
        pre = self.hooks.shunt("shunt_delete_link_by_keyword", keyword)
        if pre is not None:
            return pre
        keyword = self.validator.sanitize(keyword)
        deleted = self.store.delete(keyword)
        self._invalidate(keyword)
        self.hooks.do_action("delete_link", keyword, deleted)
        return deleted

    def get_keyword_stats(self, keyword: str) -> Optional[LinkInfoResponse]:
        link = self.store.get(self.validator.sanitize(keyword))
        stats = self.link_info(link) if link else None
        return self.hooks.apply_filter("get_link_stats", stats, keyword)

    def list_links(self, skip: int = 0, limit: int = 100) -> Tuple[int, List[LinkInfoResponse]]:
        total, links = self.store.list(skip, limit)
        return total, [self.link_info(l) for l in links]

    def total_clicks(self) -> int:
        return self.store.total_clicks()

    def _invalidate(self, *keywords: str):
        if self.cache is None:
            return
        for keyword in set(keywords):
            self.cache.invalidate(keyword)
