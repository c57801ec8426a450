import logging
import os
from typing import Iterable

from shortlinks.core.config import Settings
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import LinkStore
from shortlinks.utils.sanitize import get_protocol, normalize_uri, sanitize_keyword, sanitize_url

logger = logging.getLogger(__name__)


class KeywordValidator:
    """Keyword sanitation and the reserved / taken / free checks."""

    def __init__(self, store: LinkStore, hooks: HookRegistry, settings: Settings,
                 reserved_routes: Iterable[str] = ()):
        self.store = store
        self.hooks = hooks
        self.settings = settings
        self.reserved_routes = frozenset(reserved_routes)

    @property
    def charset(self) -> str:
        return self.hooks.apply_filter("get_shorturl_charset", self.settings.SHORTURL_CHARSET)

    def sanitize(self, keyword: str, restrict_to_charset: bool = False) -> str:
        valid = sanitize_keyword(
            keyword,
            restrict_to_charset,
            charset=self.charset,
            max_length=self.settings.MAX_KEYWORD_LENGTH,
            protocols=self.settings.ALLOWED_PROTOCOLS,
        )
        return self.hooks.apply_filter("sanitize_string", valid, keyword, restrict_to_charset)

    def sanitize_url(self, url: str) -> str:
        return self.hooks.apply_filter("sanitize_url", sanitize_url(url, self.settings.ALLOWED_PROTOCOLS), url)

    def is_page(self, keyword: str) -> bool:
        page = False
        pages_dir = self.settings.PAGES_DIR
        # only plain charset keywords may name a file
        if pages_dir and keyword and keyword == self.sanitize(keyword, True):
            page = os.path.isfile(os.path.join(pages_dir, f"{keyword}.html"))
        return self.hooks.apply_filter("is_page", page, keyword)

    def is_reserved(self, keyword: str) -> bool:
        keyword = self.sanitize(keyword)
        reserved = (
            not keyword
            or keyword in self.settings.RESERVED_KEYWORDS
            or keyword in self.reserved_routes
            or self.is_page(keyword)
        )
        return self.hooks.apply_filter("keyword_is_reserved", reserved, keyword)

    def is_taken(self, keyword: str) -> bool:
        pre = self.hooks.shunt("shunt_keyword_is_taken", keyword)
        if pre is not None:
            return pre
        taken = self.store.exists(self.sanitize(keyword))
        return self.hooks.apply_filter("keyword_is_taken", taken, keyword)

    def is_free(self, keyword: str) -> bool:
        free = not (self.is_reserved(keyword) or self.is_taken(keyword))
        return self.hooks.apply_filter("keyword_is_free", free, keyword)

    def relative_url(self, url: str) -> str:
        """Keyword part of a URL under BASE_URL, or '' when the URL lives elsewhere."""
        url = self.sanitize_url(url)
        site = normalize_uri(self.settings.BASE_URL.rstrip("/"))
        noproto_url = url.replace("https:", "http:", 1)
        noproto_site = site.replace("https:", "http:", 1)
        prefix = noproto_site + "/"
        relative = noproto_url[len(prefix):] if noproto_url.startswith(prefix) else ""
        return self.hooks.apply_filter("get_relative_url", relative, url)

    def is_shorturl(self, shorturl: str) -> bool:
        """True for 'BASE_URL/abc' or 'abc' when 'abc' is a stored keyword."""
        if get_protocol(shorturl):
            keyword = self.relative_url(shorturl)
        else:
            keyword = shorturl
        is_short = bool(keyword) and keyword == self.sanitize(keyword) and self.is_taken(keyword)
        return self.hooks.apply_filter("is_shorturl", is_short, shorturl)
