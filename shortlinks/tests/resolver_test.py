from datetime import datetime

import pytest
import redis.exceptions

from shortlinks.db.memory import MemoryLinkStore
from shortlinks.services.keyword_cache import KeywordCache
from shortlinks.services.keywords import KeywordValidator
from shortlinks.services.metrics import Visit
from shortlinks.services.resolver import OutcomeKind, RedirectResolver

LONG_URL = "https://example.com/a/long/path?x=1"


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value.encode()

    def delete(self, key):
        self.data.pop(key, None)


class DownRedis:
    def get(self, key):
        raise redis.exceptions.ConnectionError("down")

    def setex(self, key, ttl, value):
        raise redis.exceptions.ConnectionError("down")

    def delete(self, key):
        raise redis.exceptions.ConnectionError("down")


class BrokenSink:
    def append_click(self, entry):
        raise RuntimeError("click log table is gone")


class NoIncrementStore(MemoryLinkStore):
    def increment_clicks(self, keyword):
        raise RuntimeError("counter update failed")


@pytest.fixture
def store():
    s = MemoryLinkStore()
    s.insert("abc", LONG_URL, "Long", datetime.utcnow(), "127.0.0.1")
    return s


def make_resolver(store, hooks, settings, **kwargs):
    validator = KeywordValidator(store, hooks, settings)
    return RedirectResolver(store, validator, hooks, settings, **kwargs)


def test_hit_redirects_permanently_and_counts_the_click(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings)
    visit = Visit(ip="1.2.3.4", referrer="https://news.example.com", user_agent="pytest")

    outcome = resolver.resolve_keyword("abc", visit)

    assert outcome.kind == OutcomeKind.REDIRECT
    assert outcome.location == LONG_URL
    assert outcome.status_code == 301
    assert store.get("abc").clicks == 1

    entry = store.click_log[0]
    assert entry.keyword == "abc"
    assert entry.referrer == "https://news.example.com"
    assert entry.user_agent == "pytest"
    assert entry.ip_address == "1.2.3.4"


def test_click_log_defaults_and_truncation(store, hooks, test_settings):
    hooks.add_filter("geo_ip_to_countrycode", lambda code, ip: "FRA")
    resolver = make_resolver(store, hooks, test_settings)

    resolver.resolve_keyword("abc", Visit(ip="1.2.3.4", user_agent="u" * 400))

    entry = store.click_log[0]
    assert entry.referrer == "direct"
    assert len(entry.user_agent) == 255
    assert entry.country_code == "FR"


def test_nostats_still_counts_but_skips_the_log(store, hooks, test_settings):
    test_settings.NOSTATS = True
    resolver = make_resolver(store, hooks, test_settings)

    resolver.resolve_keyword("abc")

    assert store.get("abc").clicks == 1
    assert store.click_log == []


def test_unknown_keyword_goes_to_site_root(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings)

    outcome = resolver.resolve_keyword("nope")

    assert outcome.kind == OutcomeKind.NOT_FOUND
    assert outcome.location == "http://sho.rt/"
    assert outcome.status_code == 302
    assert store.click_log == []
    assert hooks.did_action("redirect_keyword_not_found") == 1


def test_empty_keyword_goes_to_site_root(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings)

    outcome = resolver.resolve_keyword("<>")

    assert outcome.kind == OutcomeKind.NOT_FOUND
    assert hooks.did_action("redirect_no_keyword") == 1


def test_keywords_are_case_sensitive(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings)
    assert resolver.resolve_keyword("ABC").kind == OutcomeKind.NOT_FOUND


def test_page_wins_over_stored_link(store, hooks, test_settings, tmp_path):
    (tmp_path / "abc.html").write_text("<h1>About</h1>")
    test_settings.PAGES_DIR = str(tmp_path)
    resolver = make_resolver(store, hooks, test_settings)

    outcome = resolver.resolve_keyword("abc")

    assert outcome.kind == OutcomeKind.PAGE
    assert store.get("abc").clicks == 0


def test_click_failures_never_change_the_redirect(hooks, test_settings):
    store = NoIncrementStore()
    store.insert("abc", LONG_URL, "", datetime.utcnow(), "127.0.0.1")
    hooks.add_action("post_redirect", lambda keyword, visit: 1 / 0)
    resolver = make_resolver(store, hooks, test_settings, sink=BrokenSink())

    outcome = resolver.resolve_keyword("abc")

    assert outcome.kind == OutcomeKind.REDIRECT
    assert outcome.location == LONG_URL


def test_click_is_deferred_when_asked(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings)
    deferred = []

    outcome = resolver.resolve_keyword("abc", Visit(ip="1.2.3.4"), defer=lambda fn, *args: deferred.append((fn, args)))

    assert outcome.status_code == 301
    assert store.get("abc").clicks == 0
    fn, args = deferred[0]
    fn(*args)
    assert store.get("abc").clicks == 1


def test_redirect_hooks_can_rewrite_location_and_code(store, hooks, test_settings):
    hooks.add_filter("redirect_location", lambda url, code: url + "&utm_source=short")
    hooks.add_filter("redirect_code", lambda code, location: 302)
    resolver = make_resolver(store, hooks, test_settings)

    outcome = resolver.resolve_keyword("abc")

    assert outcome.location == LONG_URL + "&utm_source=short"
    assert outcome.status_code == 302


def test_cache_is_filled_then_served(store, hooks, test_settings):
    cache = KeywordCache(FakeRedis())
    resolver = make_resolver(store, hooks, test_settings, cache=cache)

    assert resolver.resolve_keyword("abc").location == LONG_URL
    assert cache.get("abc") == LONG_URL

    # served from the cache even once the row is gone
    store.delete("abc")
    assert resolver.resolve_keyword("abc").location == LONG_URL


def test_redis_outage_falls_back_to_store(store, hooks, test_settings):
    resolver = make_resolver(store, hooks, test_settings, cache=KeywordCache(DownRedis()))

    outcome = resolver.resolve_keyword("abc")

    assert outcome.kind == OutcomeKind.REDIRECT
    assert outcome.location == LONG_URL
