from services.ttl_cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.set("rates", {"EUR": 0.9})

    clock.now += 59
    assert cache.get("rates") == {"EUR": 0.9}
    assert "rates" in cache

    clock.now += 1
    assert cache.get("rates") is None
    assert "rates" not in cache
    assert len(cache) == 0


def test_per_entry_ttl_override():
    clock = FakeClock()
    cache = TTLCache(3600, clock=clock)
    cache.set("token", "abc", ttl_seconds=10)
    cache.set("geo", "US")

    clock.now += 11
    assert cache.get("token", "expired") == "expired"
    assert cache.get("geo") == "US"


def test_non_positive_ttl_disables_caching():
    cache = TTLCache(0)
    cache.set("k", "v")
    assert cache.get("k") is None


def test_delete_and_clear():
    cache = TTLCache(60)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    assert cache.get("a") is None
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
