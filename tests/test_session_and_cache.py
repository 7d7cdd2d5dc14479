"""Tests for the synthetic session identity and the response cache."""

import random
import re

from core.response_cache import ResponseCache
from core.session_manager import STATIC_COOKIES, SessionManager
from core.types import PipelineConfig, ProductRecord


def _record(title: str = "Sample") -> ProductRecord:
    return ProductRecord(
        title=title,
        images=(),
        price_tiers=(),
        attributes={},
        specifications={},
        description="",
        sold_count=0,
        reviews=(),
    )


def test_identity_is_memoized(session: SessionManager) -> None:
    first = session.get_identity()

    assert session.get_identity() == first
    assert session.get_session() is session.get_session()


def test_identity_format(session: SessionManager) -> None:
    cookie = session.get_identity()
    parts = cookie.split("; ")

    assert re.fullmatch(r"PHPSESSID=[0-9a-z]{26}", parts[0])
    assert tuple(parts[1:]) == STATIC_COOKIES


def test_separate_managers_get_separate_identities() -> None:
    first = SessionManager(rng=random.Random(1))
    second = SessionManager(rng=random.Random(2))

    assert first.get_session().session_id != second.get_session().session_id


def test_identity_headers_use_configured_user_agent() -> None:
    config = PipelineConfig(user_agent="TestAgent/1.0", marketplace_origin="https://shop.test")
    headers = SessionManager(config, rng=random.Random(3)).identity_headers()

    assert headers["User-Agent"] == "TestAgent/1.0"
    assert headers["Referer"] == "https://shop.test"
    assert headers["cookie"].startswith("PHPSESSID=")


def test_cache_hit_returns_same_record(fake_clock) -> None:
    cache = ResponseCache(60.0, clock=fake_clock)
    record = _record()
    cache.set("https://a.test/1.html", record)

    fake_clock.advance(59.9)

    assert cache.get("https://a.test/1.html") is record
    assert cache.hits == 1


def test_cache_entry_expires_by_age(fake_clock) -> None:
    cache = ResponseCache(60.0, clock=fake_clock)
    cache.set("https://a.test/1.html", _record())

    fake_clock.advance(60.0)

    assert cache.get("https://a.test/1.html") is None
    assert "https://a.test/1.html" not in cache
    assert len(cache) == 0
    assert cache.misses == 1


def test_cache_reads_do_not_extend_lifetime(fake_clock) -> None:
    cache = ResponseCache(60.0, clock=fake_clock)
    cache.set("https://a.test/1.html", _record())

    fake_clock.advance(30.0)
    assert cache.get("https://a.test/1.html") is not None
    fake_clock.advance(30.0)

    assert cache.get("https://a.test/1.html") is None


def test_cache_key_is_the_literal_url(fake_clock) -> None:
    cache = ResponseCache(60.0, clock=fake_clock)
    cache.set("https://a.test/1.html", _record())

    assert cache.get("https://a.test/1.html?ref=x") is None
    assert cache.get("https://a.test/1.html") is not None


def test_stale_entries_are_kept_until_looked_up(fake_clock) -> None:
    cache = ResponseCache(10.0, clock=fake_clock)
    cache.set("https://a.test/1.html", _record("one"))
    cache.set("https://a.test/2.html", _record("two"))

    fake_clock.advance(11.0)

    assert len(cache) == 2
    cache.get("https://a.test/1.html")
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0
