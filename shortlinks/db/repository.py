from datetime import datetime
from functools import wraps
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func, insert
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from shortlinks.core.errors import KeywordConflict, StorageUnavailable
from shortlinks.db.Models.models import ClickLog, Option, ShortLink
from shortlinks.db.store import ClickEntry, LinkRecord, LinkStore

logger = logging.getLogger(__name__)

NEXT_ID_OPTION = "next_id"


def _to_record(row: ShortLink) -> LinkRecord:
    return LinkRecord(
        keyword=row.keyword,
        url=row.url,
        title=row.title or "",
        timestamp=row.timestamp,
        ip=row.ip or "",
        clicks=row.clicks or 0,
    )


def _storage_guard(method):
    """Turn lost connections and other driver failures into StorageUnavailable."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except IntegrityError:
            raise
        except DBAPIError as e:
            try:
                self.db.rollback()
            except DBAPIError:
                logger.debug("Rollback failed after storage error")
            logger.error("Storage error in %s: %s", method.__name__, e)
            raise StorageUnavailable("The link database could not be reached") from e
    return wrapper


class SQLLinkStore(LinkStore):
    """LinkStore over a SQLAlchemy session. Each mutation commits on its own."""

    def __init__(self, db: Session):
        self.db = db

    @_storage_guard
    def exists(self, keyword: str) -> bool:
        return self.db.query(ShortLink.keyword).filter(ShortLink.keyword == keyword).first() is not None

    @_storage_guard
    def get(self, keyword: str) -> Optional[LinkRecord]:
        row = self.db.query(ShortLink).filter(ShortLink.keyword == keyword).first()
        return _to_record(row) if row else None

    @_storage_guard
    def get_by_url(self, url: str) -> Optional[LinkRecord]:
        row = (
            self.db.query(ShortLink)
            .filter(ShortLink.url == url)
            .order_by(ShortLink.timestamp.asc())
            .first()
        )
        return _to_record(row) if row else None

    @_storage_guard
    def insert(self, keyword: str, url: str, title: str, timestamp: datetime, ip: str) -> LinkRecord:
        # Core INSERT, so the database (not the session identity map) arbitrates the race
        try:
            self.db.execute(
                insert(ShortLink).values(
                    keyword=keyword, url=url, title=title, timestamp=timestamp, ip=ip, clicks=0
                )
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("IntegrityError inserting keyword=%s url=%s: %s", keyword, url[:50], e.orig)
            raise KeywordConflict(keyword) from e
        return LinkRecord(keyword=keyword, url=url, title=title, timestamp=timestamp, ip=ip, clicks=0)

    @_storage_guard
    def increment_clicks(self, keyword: str) -> int:
        updated = self.db.query(ShortLink).filter(ShortLink.keyword == keyword).update(
            {ShortLink.clicks: ShortLink.clicks + 1}, synchronize_session=False
        )
        self.db.commit()
        return updated

    @_storage_guard
    def update(self, keyword: str, url: str, new_keyword: str, title: str) -> int:
        try:
            updated = self.db.query(ShortLink).filter(ShortLink.keyword == keyword).update(
                {ShortLink.url: url, ShortLink.keyword: new_keyword, ShortLink.title: title},
                synchronize_session=False,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("IntegrityError renaming keyword=%s to %s: %s", keyword, new_keyword, e.orig)
            raise KeywordConflict(new_keyword) from e
        return updated

    @_storage_guard
    def delete(self, keyword: str) -> int:
        deleted = self.db.query(ShortLink).filter(ShortLink.keyword == keyword).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    @_storage_guard
    def list(self, skip: int = 0, limit: int = 100) -> Tuple[int, List[LinkRecord]]:
        total = self.db.query(func.count(ShortLink.keyword)).scalar()
        rows = (
            self.db.query(ShortLink)
            .order_by(ShortLink.timestamp.desc(), ShortLink.keyword)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return total, [_to_record(r) for r in rows]

    @_storage_guard
    def total_clicks(self) -> int:
        total = self.db.query(func.sum(ShortLink.clicks)).scalar()
        return int(total) if total else 0

    @_storage_guard
    def last_created_at(self, ip: str) -> Optional[datetime]:
        return (
            self.db.query(ShortLink.timestamp)
            .filter(ShortLink.ip == ip)
            .order_by(ShortLink.timestamp.desc())
            .limit(1)
            .scalar()
        )

    @_storage_guard
    def get_next_id(self) -> int:
        value = self.db.query(Option.value).filter(Option.key == NEXT_ID_OPTION).scalar()
        return int(value) if value else 1

    @_storage_guard
    def set_next_id(self, value: int) -> None:
        self.db.merge(Option(key=NEXT_ID_OPTION, value=str(value), updated_at=datetime.utcnow()))
        self.db.commit()

    @_storage_guard
    def append_click(self, entry: ClickEntry) -> int:
        self.db.add(ClickLog(
            click_time=entry.click_time,
            shorturl=entry.keyword,
            referrer=entry.referrer,
            user_agent=entry.user_agent,
            ip_address=entry.ip_address,
            country_code=entry.country_code,
        ))
        self.db.commit()
        return 1


def ensure_installed(db: Session) -> None:
    """Seed installation state; the allocation counter starts at 1."""
    if db.query(Option).filter(Option.key == NEXT_ID_OPTION).first() is None:
        db.add(Option(key=NEXT_ID_OPTION, value="1"))
        db.commit()
        logger.info("Keyword counter initialized at 1")
