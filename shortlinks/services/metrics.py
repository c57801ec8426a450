from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from shortlinks.core.config import Settings
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import ClickEntry, ClickSink, LinkStore

logger = logging.getLogger(__name__)

REFERRER_MAX_LENGTH = 200
USER_AGENT_MAX_LENGTH = 255


@dataclass
class Visit:
    ip: str = ""
    referrer: str = ""
    user_agent: str = ""


def update_clicks(store: LinkStore, hooks: HookRegistry, keyword: str) -> int:
    pre = hooks.shunt("shunt_update_clicks", keyword)
    if pre is not None:
        return pre
    updated = store.increment_clicks(keyword)
    hooks.do_action("update_clicks", keyword, updated)
    return updated


def log_redirect(sink: ClickSink, hooks: HookRegistry, settings: Settings, keyword: str, visit: Visit) -> int:
    pre = hooks.shunt("shunt_log_redirect", keyword, visit)
    if pre is not None:
        return pre
    if settings.NOSTATS:
        return 0

    entry = ClickEntry(
        keyword=keyword,
        click_time=datetime.utcnow(),
        referrer=(visit.referrer or "direct")[:REFERRER_MAX_LENGTH],
        user_agent=(visit.user_agent or "")[:USER_AGENT_MAX_LENGTH],
        ip_address=visit.ip,
        country_code=(hooks.apply_filter("geo_ip_to_countrycode", "", visit.ip) or "")[:2],
    )
    return sink.append_click(entry)


def record_click(store: LinkStore, hooks: HookRegistry, settings: Settings, keyword: str,
                 visit: Optional[Visit] = None, sink: Optional[ClickSink] = None):
    """
    Click accounting after a redirect. The redirect has already been decided,
    so every failure in here is logged and dropped.
    """
    visit = visit or Visit()
    try:
        updated = update_clicks(store, hooks, keyword)
        if updated:
            logger.info("metrics.record_click: click counter updated for %s", keyword)
    except Exception:
        logger.exception("metrics.record_click: failed to update click counter for %s", keyword)

    try:
        log_redirect(sink or store, hooks, settings, keyword, visit)
    except Exception:
        logger.exception("metrics.record_click: failed to log redirect for %s", keyword)

    try:
        hooks.do_action("post_redirect", keyword, visit)
    except Exception:
        logger.exception("metrics.record_click: post_redirect hook failed for %s", keyword)
