import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from shortlinks.core.config import Settings
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import ClickSink, LinkStore
from shortlinks.services import metrics
from shortlinks.services.keyword_cache import KeywordCache
from shortlinks.services.keywords import KeywordValidator

logger = logging.getLogger(__name__)


class OutcomeKind(str, enum.Enum):
    PAGE = "page"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass
class RedirectOutcome:
    kind: OutcomeKind
    keyword: str
    location: Optional[str] = None
    status_code: Optional[int] = None


class RedirectResolver:
    """
    keyword -> page | redirect to the long URL | redirect to the site root.

    Unknown keywords are sent to BASE_URL with a temporary redirect rather
    than a 404, so browsers don't cache the failure and status codes don't
    reveal which keywords exist.
    """

    def __init__(self, store: LinkStore, validator: KeywordValidator, hooks: HookRegistry, settings: Settings,
                 cache: Optional[KeywordCache] = None, sink: Optional[ClickSink] = None):
        self.store = store
        self.validator = validator
        self.hooks = hooks
        self.settings = settings
        self.cache = cache
        self.sink = sink

    def resolve_keyword(self, keyword: str, visit: Optional[metrics.Visit] = None,
                        defer: Optional[Callable] = None) -> RedirectOutcome:
        """
        Decide where ``keyword`` leads. On a hit the click is recorded through
        ``defer(func, *args)`` when given (e.g. BackgroundTasks.add_task),
        otherwise inline; either way a click failure never changes the outcome.
        """
        pre = self.hooks.shunt("shunt_resolve_keyword", keyword, visit)
        if pre is not None:
            return pre

        keyword = self.validator.sanitize(keyword)
        if not keyword:
            self.hooks.do_action("redirect_no_keyword")
            return self._not_found(keyword)

        if self.validator.is_page(keyword):
            self.hooks.do_action("load_template_page", keyword)
            return RedirectOutcome(kind=OutcomeKind.PAGE, keyword=keyword)

        url = self.get_keyword_longurl(keyword)
        if not url:
            self.hooks.do_action("redirect_keyword_not_found", keyword)
            return self._not_found(keyword)

        self.hooks.do_action("redirect_shorturl", url, keyword)
        location = self.hooks.apply_filter("redirect_location", url, self.settings.REDIRECT_STATUS_CODE)
        code = self.hooks.apply_filter("redirect_code", self.settings.REDIRECT_STATUS_CODE, location)

        if defer is not None:
            defer(self.record_click, keyword, visit)
        else:
            self.record_click(keyword, visit)

        return RedirectOutcome(kind=OutcomeKind.REDIRECT, keyword=keyword, location=location, status_code=code)

    def get_keyword_longurl(self, keyword: str) -> Optional[str]:
        if self.cache is not None:
            cached = self.cache.get(keyword)
            if cached:
                return cached

        link = self.store.get(keyword)
        if link is None:
            return None
        if self.cache is not None:
            self.cache.put(keyword, link.url)
        return link.url

    def record_click(self, keyword: str, visit: Optional[metrics.Visit] = None):
        metrics.record_click(self.store, self.hooks, self.settings, keyword, visit, sink=self.sink)

    def _not_found(self, keyword: str) -> RedirectOutcome:
        root = self.settings.BASE_URL.rstrip("/") + "/"
        return RedirectOutcome(
            kind=OutcomeKind.NOT_FOUND,
            keyword=keyword,
            location=root,
            status_code=self.settings.NOT_FOUND_STATUS_CODE,
        )
