import redis

from brandkit.workflows.rate_limiter import InMemoryStore, RateLimiter, RateLimitResult, check_rate_limit

WINDOW_MS = 60 * 60 * 1000
NOW = 1_700_000_000_000


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class _RecordingStore(InMemoryStore):
    def __init__(self):
        super().__init__()
        self.sets = []

    def set(self, name, value, ex=None):
        self.sets.append((name, value, ex))
        return super().set(name, value, ex=ex)


class _BrokenStore:
    def get(self, name):
        raise redis.exceptions.ConnectionError("connection refused")

    def set(self, name, value, ex=None):
        raise redis.exceptions.ConnectionError("connection refused")

    def delete(self, *names):
        raise redis.exceptions.ConnectionError("connection refused")


def _limiter(store=None, clock=None, max_requests=100):
    return RateLimiter(
        store if store is not None else InMemoryStore(),
        max_requests=max_requests,
        window_ms=WINDOW_MS,
        clock=clock or _Clock(NOW),
    )


def test_hundred_requests_then_limited():
    limiter = _limiter()
    results = [limiter.check_and_increment("203.0.113.7") for _ in range(100)]
    assert not any(result.limited for result in results)
    assert results[0].remaining == 99
    assert results[-1].remaining == 0

    blocked = limiter.check_and_increment("203.0.113.7")
    assert blocked.limited is True
    assert blocked.remaining == 0


def test_identities_are_counted_separately():
    limiter = _limiter(max_requests=1)
    assert not limiter.check_and_increment("a").limited
    assert limiter.check_and_increment("a").limited
    assert not limiter.check_and_increment("b").limited


def test_key_format_and_ttl_end_with_window():
    store = _RecordingStore()
    start = (NOW // WINDOW_MS) * WINDOW_MS
    limiter = _limiter(store=store, clock=_Clock(start + 1500))
    result = limiter.check_and_increment("ip1")

    assert store.sets == [(f"rate_limit:ip1:{start}", "1", 3599)]
    assert result.reset_epoch_ms == start + WINDOW_MS
    assert store.get(f"rate_limit:ip1:{start}") == "1"


def test_ttl_is_at_least_one_second():
    store = _RecordingStore()
    start = (NOW // WINDOW_MS) * WINDOW_MS
    limiter = _limiter(store=store, clock=_Clock(start + WINDOW_MS - 1))
    limiter.check_and_increment("ip1")
    assert store.sets[0][2] == 1


def test_new_window_resets_count():
    clock = _Clock(NOW)
    limiter = _limiter(clock=clock, max_requests=2)
    limiter.check_and_increment("ip")
    limiter.check_and_increment("ip")
    assert limiter.check_and_increment("ip").limited

    clock.now += WINDOW_MS
    fresh = limiter.check_and_increment("ip")
    assert fresh.limited is False
    assert fresh.remaining == 1


def test_store_failure_fails_open(caplog):
    limiter = _limiter(store=_BrokenStore())
    result = limiter.check_and_increment("ip")
    assert result.limited is False
    assert result.remaining == 99
    assert "allowing request" in caplog.text

    status = limiter.status("ip")
    assert status.limited is False
    assert status.remaining == 100
    assert limiter.clear("ip") is False


def test_empty_identity_is_limited():
    result = _limiter().check_and_increment("")
    assert result.limited is True
    assert result.remaining == 0


def test_status_does_not_count_and_clear_resets():
    limiter = _limiter(max_requests=3)
    assert limiter.status("ip").remaining == 3
    limiter.check_and_increment("ip")
    limiter.check_and_increment("ip")
    assert limiter.status("ip").remaining == 1
    assert limiter.status("ip").remaining == 1

    assert limiter.clear("ip") is True
    assert limiter.status("ip").remaining == 3
    assert check_rate_limit("ip", limiter).remaining == 2


def test_in_memory_store_expiry():
    now = [100.0]
    store = InMemoryStore(clock=lambda: now[0])
    store.set("k", 5, ex=10)
    assert store.get("k") == "5"
    now[0] = 110.0
    assert store.get("k") is None
    assert store.delete("k") == 0


def test_in_memory_store_purges_expired_keys_on_write():
    now = [100.0]
    store = InMemoryStore(clock=lambda: now[0])
    store.set("rate_limit:ip:1", 3, ex=10)
    store.set("keep", 1)
    now[0] = 111.0
    store.set("rate_limit:ip:2", 1, ex=10)
    assert set(store._data) == {"keep", "rate_limit:ip:2"}


def test_counts_stored_as_bytes_are_parsed():
    store = InMemoryStore()
    limiter = _limiter(store=store, max_requests=5)
    start = (NOW // WINDOW_MS) * WINDOW_MS
    store._data[f"rate_limit:ip:{start}"] = (b"4", None)
    result = limiter.check_and_increment("ip")
    assert result.remaining == 0
    assert limiter.check_and_increment("ip").limited


def test_result_headers_use_seconds():
    result = RateLimitResult(limited=False, remaining=7, reset_epoch_ms=1_700_003_600_000, limit=100)
    assert result.to_headers() == {
        "X-RateLimit-Limit": "100",
        "X-RateLimit-Remaining": "7",
        "X-RateLimit-Reset": "1700003600",
    }
    assert result.to_dict() == {"limited": False, "remaining": 7, "reset_epoch_ms": 1_700_003_600_000}
