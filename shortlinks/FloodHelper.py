import logging
from datetime import datetime

from fastapi import Request

from shortlinks.core.config import Settings
from shortlinks.core.errors import FloodDetected
from shortlinks.core.hooks import HookRegistry
from shortlinks.db.store import LinkStore
from shortlinks.utils.sanitize import sanitize_ip

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return sanitize_ip(xff.split(",")[0].strip())
    return sanitize_ip(request.client.host) if request.client else ""


def is_whitelisted(ip: str, settings: Settings) -> bool:
    return ip in {entry.strip() for entry in settings.FLOOD_IP_WHITELIST}


def check_ip_flood(store: LinkStore, hooks: HookRegistry, settings: Settings, ip: str) -> bool:
    """Refuse a new link if this IP created one less than FLOOD_DELAY_SECONDS ago."""
    pre = hooks.shunt("shunt_check_IP_flood", ip)
    if pre is not None:
        return pre

    hooks.do_action("pre_check_ip_flood", ip)

    delay = settings.FLOOD_DELAY_SECONDS
    if delay <= 0 or is_whitelisted(ip, settings):
        return True

    hooks.do_action("check_ip_flood", ip)

    last_time = store.last_created_at(ip)
    if last_time:
        elapsed = (datetime.utcnow() - last_time).total_seconds()
        if elapsed <= delay:
            hooks.do_action("ip_flood", ip, elapsed)
            logger.warning(f"IP flood from {ip}: last link created {elapsed:.1f}s ago (delay {delay}s)")
            raise FloodDetected("Too many URLs added too fast. Slow down please.")
    return True
