import logging
from datetime import datetime
from typing import Optional, Tuple

from shortlinks.core.config import Settings
from shortlinks.core.errors import AllocationConflict, KeywordConflict, KeywordUnavailable
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import LinkRecord, LinkStore
from shortlinks.services.keywords import KeywordValidator
from shortlinks.utils.encoding import int2string

logger = logging.getLogger(__name__)


class KeywordAllocator:
    """
    Picks a free keyword and stores the link under it.

    Checking that a keyword is free and inserting it are two separate store
    calls, so concurrent requests can pick the same keyword. The store's
    atomic insert settles the race: the loser gets KeywordConflict and, for
    generated keywords, moves on to the next id.

    The ``next_id`` counter is advanced before the insert and never rolled
    back, so failed or abandoned requests leave gaps in the sequence.
    """

    def __init__(self, store: LinkStore, validator: KeywordValidator, hooks: HookRegistry, settings: Settings):
        self.store = store
        self.validator = validator
        self.hooks = hooks
        self.settings = settings

    def allocate(self, url: str, title: str, ip: str, keyword: Optional[str] = None) -> LinkRecord:
        if keyword:
            return self._allocate_custom(url, title, ip, keyword)
        return self._allocate_generated(url, title, ip)

    def claim_custom(self, keyword: str, url: str, title: str) -> str:
        self.hooks.do_action("add_new_link_custom_keyword", url, keyword, title)
        keyword = self.validator.sanitize(keyword, True)
        keyword = self.hooks.apply_filter("custom_keyword", keyword, url, title)
        if not self.validator.is_free(keyword):
            raise KeywordUnavailable(f"Short URL {keyword} already exists in database or is reserved")
        return keyword

    def next_free_keyword(self, url: str, title: str, start_id: Optional[int] = None) -> Tuple[str, int]:
        """
        Walk ids from the stored counter until a free keyword shows up, then
        persist the id after it. Returns the keyword and the new counter value.
        """
        next_id = int(self.hooks.apply_filter("get_next_decimal", self.store.get_next_id()))
        if start_id is not None and start_id > next_id:
            next_id = start_id

        charset = self.validator.charset
        while True:
            keyword = int2string(next_id, charset)
            keyword = self.hooks.apply_filter("random_keyword", keyword, url, title)
            next_id += 1
            if self.validator.is_free(keyword):
                break

        self.store.set_next_id(next_id)
        self.hooks.do_action("update_next_decimal", next_id)
        return keyword, next_id

    def _allocate_custom(self, url: str, title: str, ip: str, keyword: str) -> LinkRecord:
        keyword = self.claim_custom(keyword, url, title)
        try:
            return self._insert(keyword, url, title, ip)
        except KeywordConflict:
            # the caller asked for this exact keyword, so no machine-picked fallback
            logger.info("Custom keyword %s was taken by a concurrent request", keyword)
            self.hooks.do_action("allocation_conflict", keyword, url, 1)
            raise KeywordUnavailable(f"Short URL {keyword} already exists in database or is reserved")

    def _allocate_generated(self, url: str, title: str, ip: str) -> LinkRecord:
        self.hooks.do_action("add_new_link_create_keyword", url, title)
        max_retries = max(1, self.settings.MAX_ALLOCATION_RETRIES)
        start_id = None

        for attempt in range(1, max_retries + 1):
            keyword, start_id = self.next_free_keyword(url, title, start_id)
            try:
                return self._insert(keyword, url, title, ip)
            except KeywordConflict:
                logger.info(f"Keyword collision on attempt {attempt}/{max_retries}: {keyword}")
                self.hooks.do_action("allocation_conflict", keyword, url, attempt)

        logger.error("Gave up allocating a keyword for %s after %s attempts", url[:50], max_retries)
        raise AllocationConflict(f"Could not allocate a short URL after {max_retries} attempts, please retry")

    def _insert(self, keyword: str, url: str, title: str, ip: str) -> LinkRecord:
        timestamp = datetime.utcnow()
        link = self.store.insert(keyword, url, title, timestamp, ip)
        self.hooks.do_action("insert_link", True, url, keyword, title, timestamp, ip)
        return link
