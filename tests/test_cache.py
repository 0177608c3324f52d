import asyncio

from salon_api.core.cache import (
    ResponseCache,
    cached,
    create_cache_tag,
    create_cache_tags,
    response_cache,
    revalidate_resource_cache,
    revalidate_user_cache,
)


def test_tags():
    assert create_cache_tag("products") == "products"
    assert create_cache_tag("products", "u1") == "products:u1"
    assert create_cache_tags("products", "u1") == ["products", "products:u1", "user:u1"]
    assert create_cache_tags("products") == ["products"]


def test_get_or_set_and_revalidate():
    cache = ResponseCache()
    calls = []

    async def fetch():
        calls.append(1)
        return {"n": len(calls)}

    async def scenario():
        first = await cache.get_or_set(fetch, ["products", "u1"], ttl=60, tags=["products:u1"])
        second = await cache.get_or_set(fetch, ["products", "u1"], ttl=60, tags=["products:u1"])
        assert first == second == {"n": 1}
        assert await cache.revalidate(["products:u2"]) == 0
        assert await cache.revalidate(["products:u1"]) == 1
        third = await cache.get_or_set(fetch, ["products", "u1"], ttl=60, tags=["products:u1"])
        assert third == {"n": 2}
        # ttl 0 never stores
        await cache.get_or_set(fetch, ["appointments", "u1"], ttl=0)
        assert len(cache) == 1

    asyncio.run(scenario())
    assert len(calls) == 3


def test_owner_isolation_and_user_revalidation():
    async def scenario():
        async def one():
            return 1

        async def two():
            return 2

        assert await cached("customers", "u1", one, "q") == 1
        assert await cached("customers", "u2", two, "q") == 2
        assert await cached("staff", "u1", two) == 2

        assert await revalidate_resource_cache("customers", "u1") == 1
        assert await cached("customers", "u2", one, "q") == 2
        assert await revalidate_user_cache("u1") == 1
        assert await revalidate_user_cache("u2", ["customers"]) == 1
        assert len(response_cache) == 0

    asyncio.run(scenario())


def test_cache_can_be_disabled(monkeypatch):
    monkeypatch.setenv("CACHE_ENABLED", "false")
    calls = []

    async def fetch():
        calls.append(1)
        return len(calls)

    async def scenario():
        await cached("customers", "u1", fetch)
        await cached("customers", "u1", fetch)

    asyncio.run(scenario())
    assert calls == [1, 1]


def test_list_endpoint_is_revalidated_after_create(client, auth):
    assert client.get("/api/v1/customers", headers=auth).json() == []
    client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth)
    assert [c["name"] for c in client.get("/api/v1/customers", headers=auth).json()] == ["Kim"]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def monotonic(self):
        return self.now


def test_expired_entries_are_purged_on_store(monkeypatch):
    from salon_api.core import cache as cache_module

    clock = FakeClock()
    monkeypatch.setattr(cache_module, "time", clock)
    cache = ResponseCache()

    async def fetch():
        return "v"

    async def scenario():
        for i in range(500):
            await cache.get_or_set(fetch, ["customers", "u1", f"search-{i}"], ttl=1)
        assert len(cache) == 500
        clock.now += 10_000
        await cache.get_or_set(fetch, ["customers", "u1", "fresh"], ttl=1)

    asyncio.run(scenario())
    assert len(cache) == 1


def test_least_recently_used_entry_is_evicted():
    cache = ResponseCache(max_entries=2)
    calls = []

    def fetcher(name):
        async def fetch():
            calls.append(name)
            return name

        return fetch

    async def scenario():
        await cache.get_or_set(fetcher("a"), ["a"], ttl=60)
        await cache.get_or_set(fetcher("b"), ["b"], ttl=60)
        # touching "a" makes "b" the coldest entry
        await cache.get_or_set(fetcher("a"), ["a"], ttl=60)
        await cache.get_or_set(fetcher("c"), ["c"], ttl=60)
        assert len(cache) == 2
        await cache.get_or_set(fetcher("a"), ["a"], ttl=60)
        await cache.get_or_set(fetcher("b"), ["b"], ttl=60)

    asyncio.run(scenario())
    assert calls == ["a", "b", "c", "b"]


def test_size_limit_comes_from_settings(monkeypatch):
    monkeypatch.setenv("CACHE_MAX_ENTRIES", "3")
    cache = ResponseCache()

    async def fetch():
        return 1

    async def scenario():
        for i in range(10):
            await cache.get_or_set(fetch, ["k", i], ttl=60)

    asyncio.run(scenario())
    assert len(cache) == 3


def test_customer_delete_refreshes_cached_transactions(client, auth):
    customer = client.post("/api/v1/customers", json={"name": "Kim"}, headers=auth).json()
    client.post("/api/v1/transactions", json={"customer_id": customer["id"], "amount": 100}, headers=auth)

    by_customer = client.get("/api/v1/transactions", params={"customer_id": customer["id"]}, headers=auth).json()
    assert [t["amount"] for t in by_customer] == [100.0]
    assert client.get("/api/v1/transactions", headers=auth).json()[0]["customer_id"] == customer["id"]

    assert client.delete(f"/api/v1/customers/{customer['id']}", headers=auth).status_code == 204

    assert client.get("/api/v1/transactions", params={"customer_id": customer["id"]}, headers=auth).json() == []
    assert client.get("/api/v1/transactions", headers=auth).json()[0]["customer_id"] is None


def test_appointment_delete_refreshes_cached_transactions(client, auth):
    appointment = client.post(
        "/api/v1/appointments", json={"appointment_date": "2026-10-20T10:00:00"}, headers=auth
    ).json()
    client.post("/api/v1/transactions", json={"appointment_id": appointment["id"], "amount": 50}, headers=auth)
    assert client.get("/api/v1/transactions", headers=auth).json()[0]["appointment_id"] == appointment["id"]

    assert client.delete(f"/api/v1/appointments/{appointment['id']}", headers=auth).status_code == 204
    assert client.get("/api/v1/transactions", headers=auth).json()[0]["appointment_id"] is None
