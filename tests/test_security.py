import asyncio
import random
import time

import pytest

from somaai.cosmic import SUFFIXES, add_cosmic_touch
from somaai.models import StructuredAnalysis
from somaai.security import CsrfTokens, RateLimiter, origin_of, sanitize_for_log, sweep_forever
from somaai.store import MemoryStore


def test_memory_store_expires_and_sweeps():
    store = MemoryStore()
    store.set("a", 1, expires_at=10)
    store.set("b", 2, expires_at=100)
    assert store.get("a", now=5) == 1
    assert store.sweep(now=50) == 1
    assert store.get("a", now=5) is None
    assert store.get("b", now=50) == 2
    assert len(store) == 1
    store.delete("b")
    assert len(store) == 0


def test_memory_store_get_drops_expired_entry():
    store = MemoryStore()
    store.set("a", 1, expires_at=10)
    assert store.get("a", now=11) is None
    assert len(store) == 0


def test_rate_limiter_blocks_after_max_within_window():
    limiter = RateLimiter(MemoryStore(), window_s=60, max_requests=3)
    assert [limiter.hit("1.2.3.4", now=0) for _ in range(4)] == [True, True, True, False]
    assert limiter.hit("5.6.7.8", now=1)


def test_rate_limiter_window_resets():
    limiter = RateLimiter(MemoryStore(), window_s=60, max_requests=1)
    assert limiter.hit("ip", now=0)
    assert not limiter.hit("ip", now=30)
    assert limiter.hit("ip", now=61)
    assert not limiter.hit("ip", now=62)


def test_rate_limiter_entries_are_swept():
    store = MemoryStore()
    limiter = RateLimiter(store, window_s=60, max_requests=10)
    limiter.hit("a", now=0)
    limiter.hit("b", now=100)
    assert store.sweep(now=120) == 1
    assert len(store) == 1


def test_csrf_tokens_verify_per_client():
    csrf = CsrfTokens(MemoryStore(), ttl_s=3600)
    token = csrf.issue("client-a", now=0)
    assert csrf.verify("client-a", token, now=10)
    assert not csrf.verify("client-b", token, now=10)
    assert not csrf.verify("client-a", "wrong", now=10)
    assert not csrf.verify("client-a", None, now=10)
    assert not csrf.verify("client-a", token, now=3601)


def test_csrf_tokens_are_random():
    csrf = CsrfTokens(MemoryStore(), ttl_s=60)
    assert csrf.issue("a", now=0) != csrf.issue("b", now=0)


def test_csrf_tokens_from_one_client_stay_valid_together():
    csrf = CsrfTokens(MemoryStore(), ttl_s=3600)
    first = csrf.issue("10.0.0.1", now=0)
    second = csrf.issue("10.0.0.1", now=5)
    assert csrf.verify("10.0.0.1", first, now=10)
    assert csrf.verify("10.0.0.1", second, now=10)


@pytest.mark.parametrize(
    "header, expected",
    [
        ("http://localhost:5173", "http://localhost:5173"),
        ("HTTP://LocalHost:5173/result?x=1", "http://localhost:5173"),
        ("http://localhost:5173.attacker.example", "http://localhost:5173.attacker.example"),
        ("localhost:5173", None),
        ("", None),
        (None, None),
    ],
)
def test_origin_of(header, expected):
    assert origin_of(header) == expected


@pytest.mark.asyncio
async def test_sweep_forever_drops_expired_entries():
    rates, tokens = MemoryStore(), MemoryStore()
    now = time.monotonic()
    rates.set("10.0.0.1", {"count": 3}, expires_at=now - 1)
    tokens.set("stale", "10.0.0.1", expires_at=now - 1)
    tokens.set("live", "10.0.0.1", expires_at=now + 3600)

    task = asyncio.create_task(sweep_forever([rates, tokens], 0))
    for _ in range(20):
        await asyncio.sleep(0)
        if len(rates) + len(tokens) == 1:
            break
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(rates) == 0
    assert len(tokens) == 1
    assert tokens.get("live", time.monotonic()) == "10.0.0.1"


def test_sanitize_redacts_sensitive_keys_and_truncates():
    headers = {
        "authorization": "Bearer sk-secret",
        "x-csrf-token": "abc",
        "Cookie": "session=1",
        "user-agent": "x" * 80,
        "count": 3,
    }
    clean = sanitize_for_log(headers)
    assert clean["authorization"] == "[REDACTED]"
    assert clean["x-csrf-token"] == "[REDACTED]"
    assert clean["Cookie"] == "[REDACTED]"
    assert len(clean["user-agent"]) == 50
    assert clean["count"] == 3


def test_sanitize_escapes_newlines():
    assert "\n" not in sanitize_for_log("line one\nFAKE LOG LINE")


class _AlwaysCosmic:
    def random(self):
        return 0.0

    def choice(self, seq):
        return seq[0]


def test_cosmic_touch_applied_when_lucky():
    result = add_cosmic_touch(StructuredAnalysis(summary="Rest up.", friendly="Hi"), _AlwaysCosmic())
    assert result.summary == f"Rest up. {SUFFIXES[0]}"
    assert result.friendly == f"Hi {SUFFIXES[0]}"


def test_cosmic_touch_sets_friendly_when_missing():
    result = add_cosmic_touch(StructuredAnalysis(summary="Rest up."), _AlwaysCosmic())
    assert result.friendly == SUFFIXES[0]


@pytest.mark.parametrize("seed", range(5))
def test_cosmic_touch_keeps_factual_fields(seed):
    original = StructuredAnalysis(summary="Rest up.", urgency="HIGH", grounding=["Breathe"])
    result = add_cosmic_touch(original, random.Random(seed))
    assert result.urgency == "HIGH"
    assert result.grounding == ["Breathe"]
