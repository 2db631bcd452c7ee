from __future__ import annotations

from backend.app import create_app
from backend.config import Settings
from backend.core.rate_limit import SlidingWindowLimiter


def test_limiter_blocks_after_max_requests(clock):
    limiter = SlidingWindowLimiter(2, 60, clock=clock)

    assert limiter.is_allowed("10.0.0.1")
    assert limiter.is_allowed("10.0.0.1")
    assert not limiter.is_allowed("10.0.0.1")
    assert limiter.is_allowed("10.0.0.2")


def test_limiter_window_slides(clock):
    limiter = SlidingWindowLimiter(1, 60, clock=clock)
    assert limiter.is_allowed("a")

    clock.advance(30)
    assert not limiter.is_allowed("a")
    assert limiter.retry_after("a") == 31

    clock.advance(31)
    assert limiter.is_allowed("a")


def test_api_returns_429_past_the_limit(tmp_path, gateway):
    settings = Settings(database_path=tmp_path / "leads.db", rate_limit_requests=3)
    app = create_app(settings=settings, gateway=gateway)

    with app.test_client() as client:
        statuses = [client.get("/api/health").status_code for _ in range(4)]
        resp = client.get("/api/calculations/market-insights")

    assert statuses == [200, 200, 200, 429]
    assert resp.status_code == 429
    assert resp.get_json()["success"] is False
    assert int(resp.headers["Retry-After"]) > 0


def test_limit_is_per_client(tmp_path, gateway):
    settings = Settings(database_path=tmp_path / "leads.db", rate_limit_requests=1)
    app = create_app(settings=settings, gateway=gateway)

    with app.test_client() as client:
        assert client.get("/api/health").status_code == 200
        assert client.get("/api/health").status_code == 429
        other = client.get("/api/health", environ_base={"REMOTE_ADDR": "10.1.2.3"})

    assert other.status_code == 200
