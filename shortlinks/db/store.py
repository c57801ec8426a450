"""
Storage contracts the shortener core depends on.

``LinkStore.insert`` is the one operation that must be atomic: when two
callers insert the same keyword, exactly one succeeds and the other gets
``KeywordConflict``. Everything racy in keyword allocation is made safe by
that guarantee, so the allocator itself takes no locks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass
class LinkRecord:
    keyword: str
    url: str
    title: str
    timestamp: datetime
    ip: str
    clicks: int = 0


@dataclass
class ClickEntry:
    keyword: str
    click_time: datetime
    referrer: str
    user_agent: str
    ip_address: str
    country_code: str


class ClickSink(ABC):
    """Append-only destination for detailed click entries."""

    @abstractmethod  # pragma: no cover
    def append_click(self, entry: ClickEntry) -> int:
        raise NotImplementedError


class LinkStore(ClickSink):

    @abstractmethod  # pragma: no cover
    def exists(self, keyword: str) -> bool:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get(self, keyword: str) -> Optional[LinkRecord]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_by_url(self, url: str) -> Optional[LinkRecord]:
        """Oldest link pointing at ``url``, used when duplicate long URLs are refused."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def insert(self, keyword: str, url: str, title: str, timestamp: datetime, ip: str) -> LinkRecord:
        """Store a new link or raise ``KeywordConflict`` if the keyword is already stored."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def increment_clicks(self, keyword: str) -> int:
        """Add one click, returning the number of rows affected."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update(self, keyword: str, url: str, new_keyword: str, title: str) -> int:
        """Rewrite a link; raises ``KeywordConflict`` if ``new_keyword`` is taken meanwhile."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete(self, keyword: str) -> int:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def list(self, skip: int = 0, limit: int = 100) -> Tuple[int, List[LinkRecord]]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def total_clicks(self) -> int:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def last_created_at(self, ip: str) -> Optional[datetime]:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_next_id(self) -> int:
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def set_next_id(self, value: int) -> None:
        raise NotImplementedError
