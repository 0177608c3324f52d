from salon_api.core.rate_limit import InMemoryRateLimiter


def test_window_limiter():
    limiter = InMemoryRateLimiter()
    assert limiter.allow("k", 2, 60) == (True, 0)
    assert limiter.allow("k", 2, 60) == (True, 0)
    allowed, retry_after = limiter.allow("k", 2, 60)
    assert allowed is False
    assert 1 <= retry_after <= 60
    # other keys are independent
    assert limiter.allow("other", 2, 60)[0] is True
    limiter.reset()
    assert limiter.allow("k", 2, 60)[0] is True


def test_login_is_rate_limited(client, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_AUTH_PER_MINUTE", "2")
    for _ in range(2):
        r = client.post("/api/v1/auth/login", data={"username": "nobody@example.com", "password": "x"})
        assert r.status_code == 401
    r = client.post("/api/v1/auth/login", data={"username": "nobody@example.com", "password": "x"})
    assert r.status_code == 429
    assert int(r.headers["retry-after"]) >= 1
    assert r.json()["error"]["type"] == "http_error"


def test_api_is_rate_limited(client, monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_API_PER_MINUTE", "3")
    codes = [client.get("/api/v1/health").status_code for _ in range(4)]
    assert codes == [200, 200, 200, 429]


class FakeClock:
    def __init__(self):
        self.now = 500.0

    def monotonic(self):
        return self.now


def test_idle_keys_are_dropped(monkeypatch):
    from salon_api.core import rate_limit

    clock = FakeClock()
    monkeypatch.setattr(rate_limit, "time", clock)
    limiter = InMemoryRateLimiter()

    limiter.allow("10.0.0.1", 5, 60)
    limiter.allow("10.0.0.2", 5, 60)
    assert len(limiter) == 2

    # a returning client whose hits all aged out starts from a fresh key
    clock.now += 61
    limiter.allow("10.0.0.1", 5, 60)
    assert len(limiter) == 1

    # clients that never come back are swept
    clock.now += 120
    limiter.allow("10.0.0.3", 5, 60)
    assert len(limiter) == 1


def test_window_slides(monkeypatch):
    from salon_api.core import rate_limit

    clock = FakeClock()
    monkeypatch.setattr(rate_limit, "time", clock)
    limiter = InMemoryRateLimiter()

    assert limiter.allow("k", 1, 60) == (True, 0)
    clock.now += 45
    assert limiter.allow("k", 1, 60) == (False, 15)
    clock.now += 15
    assert limiter.allow("k", 1, 60) == (True, 0)
