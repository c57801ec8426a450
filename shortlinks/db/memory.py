import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from shortlinks.core.errors import KeywordConflict
from shortlinks.db.store import ClickEntry, LinkRecord, LinkStore


class MemoryLinkStore(LinkStore):
    """
    Process-local LinkStore. The lock stands in for the unique index of a
    database: it makes insert-if-absent and the click increment atomic.
    """

    def __init__(self, next_id: int = 1):
        self._links: Dict[str, LinkRecord] = {}
        self._clicks_log: List[ClickEntry] = []
        self._next_id = next_id
        self._lock = threading.Lock()

    def _snapshot(self) -> List[LinkRecord]:
        with self._lock:
            return list(self._links.values())

    @property
    def click_log(self) -> List[ClickEntry]:
        return list(self._clicks_log)

    def exists(self, keyword: str) -> bool:
        return keyword in self._links

    def get(self, keyword: str) -> Optional[LinkRecord]:
        link = self._links.get(keyword)
        return replace(link) if link else None

    def get_by_url(self, url: str) -> Optional[LinkRecord]:
        matches = [l for l in self._snapshot() if l.url == url]
        if not matches:
            return None
        return replace(min(matches, key=lambda l: l.timestamp))

    def insert(self, keyword: str, url: str, title: str, timestamp: datetime, ip: str) -> LinkRecord:
        with self._lock:
            if keyword in self._links:
                raise KeywordConflict(keyword)
            link = LinkRecord(keyword=keyword, url=url, title=title, timestamp=timestamp, ip=ip)
            self._links[keyword] = link
        return replace(link)

    def increment_clicks(self, keyword: str) -> int:
        with self._lock:
            link = self._links.get(keyword)
            if link is None:
                return 0
            link.clicks += 1
            return 1

    def update(self, keyword: str, url: str, new_keyword: str, title: str) -> int:
        with self._lock:
            link = self._links.get(keyword)
            if link is None:
                return 0
            if new_keyword != keyword and new_keyword in self._links:
                raise KeywordConflict(new_keyword)
            del self._links[keyword]
            self._links[new_keyword] = replace(link, keyword=new_keyword, url=url, title=title)
            return 1

    def delete(self, keyword: str) -> int:
        with self._lock:
            return 1 if self._links.pop(keyword, None) else 0

    def list(self, skip: int = 0, limit: int = 100) -> Tuple[int, List[LinkRecord]]:
        links = sorted(self._snapshot(), key=lambda l: (l.timestamp, l.keyword), reverse=True)
        return len(links), [replace(l) for l in links[skip:skip + limit]]

    def total_clicks(self) -> int:
        return sum(l.clicks for l in self._snapshot())

    def last_created_at(self, ip: str) -> Optional[datetime]:
        stamps = [l.timestamp for l in self._snapshot() if l.ip == ip]
        return max(stamps) if stamps else None

    def get_next_id(self) -> int:
        return self._next_id

    def set_next_id(self, value: int) -> None:
        self._next_id = value

    def append_click(self, entry: ClickEntry) -> int:
        with self._lock:
            self._clicks_log.append(entry)
        return 1
