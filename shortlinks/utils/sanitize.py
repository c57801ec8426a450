import re
from typing import Iterable, Optional

from shortlinks.core.config import CHARSET_36

# Characters allowed in a stored long URL; anything non-ASCII is kept as-is
_UNSAFE_URL_CHARS = re.compile(r"[^a-z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]\u0080-\U0010FFFF]", re.IGNORECASE)
_ENCODED_CRLF = re.compile(r"%0[da]", re.IGNORECASE)
_DOUBLED_SCHEME = re.compile(r"http://(?=https?://)", re.IGNORECASE)
_PROTOCOL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]+:(//)?")
_TAGS = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_IP_CHARS = re.compile(r"[^0-9a-fA-F:., ]")


def get_protocol(url: str) -> str:
    """Return the scheme part of ``url`` including ':' or '://', or ''."""
    match = _PROTOCOL.match(url)
    return match.group(0) if match else ""


def is_allowed_protocol(url: str, protocols: Iterable[str]) -> bool:
    return get_protocol(url).lower() in {p.lower() for p in protocols}


def normalize_uri(url: str) -> str:
    """Lowercase the scheme and, for 'scheme://' URLs, the host. Path and query keep their case."""
    scheme = get_protocol(url)
    if not scheme:
        return url
    rest = url[len(scheme):]
    if not scheme.endswith("//"):
        # mailto:, tel: ... what follows may be case sensitive
        return scheme.lower() + rest

    end = len(rest)
    for delimiter in "/?#":
        pos = rest.find(delimiter)
        if pos != -1:
            end = min(end, pos)
    authority, tail = rest[:end], rest[end:]
    userinfo, at, hostport = authority.rpartition("@")
    return scheme.lower() + userinfo + at + hostport.lower() + tail


def _strip_encoded_crlf(url: str) -> str:
    # removing one %0d can glue together another one: repeat until stable
    while True:
        cleaned = _ENCODED_CRLF.sub("", url)
        if cleaned == url:
            return cleaned
        url = cleaned


def sanitize_url(unsafe_url: str, protocols: Optional[Iterable[str]] = None) -> str:
    """
    Make a long URL safe to store and to send back in a Location header.

    Returns '' when nothing usable is left or when the URL carries a protocol
    outside ``protocols``. A URL without any protocol is returned sanitized;
    callers decide whether that is acceptable.
    """
    url = unsafe_url
    # each removal can expose whitespace or another match: repeat until stable
    while True:
        cleaned = _UNSAFE_URL_CHARS.sub("", url.strip())
        cleaned = _strip_encoded_crlf(cleaned)
        cleaned = _DOUBLED_SCHEME.sub("", cleaned).strip()
        if cleaned == url:
            break
        url = cleaned
    if not url:
        return url

    url = normalize_uri(url)

    if protocols is not None and get_protocol(url) and not is_allowed_protocol(url, protocols):
        return ""
    return url


def sanitize_keyword(keyword: str, restrict_to_charset: bool = False, charset: str = CHARSET_36,
                     max_length: int = 100, protocols: Optional[Iterable[str]] = None) -> str:
    """
    Restricted: keep only charset characters, truncated to ``max_length``.
    Otherwise the keyword is cleaned like a URL, which is what incoming
    requests and pasted short URLs need.
    """
    if restrict_to_charset:
        return "".join(ch for ch in keyword if ch in charset)[:max_length]
    return sanitize_url(keyword, protocols)


def sanitize_title(unsafe_title: Optional[str], fallback: str = "") -> str:
    title = _TAGS.sub("", unsafe_title or "")
    title = _WHITESPACE.sub(" ", title.strip())
    return title or fallback


def sanitize_ip(ip: str) -> str:
    return _UNSAFE_IP_CHARS.sub("", ip or "")


def trim_long_string(string: str, length: int = 60, append: str = "[...]") -> str:
    if len(string) > length:
        return string[:length - len(append)] + append
    return string
