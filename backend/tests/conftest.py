from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

import pytest
from flask import Flask
from flask.testing import FlaskClient

from backend.app import create_app
from backend.config import Settings
from backend.core.cache import TTLCache
from backend.core.market_data import MarketDataGateway, PriceSource, SourceError


class FakeSource(PriceSource):
    """Price source that returns a fixed value or fails, counting calls."""

    def __init__(self, name: str, value: Optional[float] = None, error: Optional[str] = None):
        self.name = name
        self.value = value
        self.error = error
        self.calls = 0

    def fetch(self, session, timeout: float) -> float:
        self.calls += 1
        if self.error is not None:
            raise SourceError(f"{self.name}: {self.error}")
        return self.value


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def make_gateway(clock: FakeClock, sleeps: List[float]):
    def _make(
        bitcoin: Sequence[PriceSource] = (),
        treasury: Sequence[PriceSource] = (),
        ttl_seconds: float = 15 * 60,
    ) -> MarketDataGateway:
        return MarketDataGateway(
            cache=TTLCache(ttl_seconds, clock=clock),
            timeout=5.0,
            backoff_seconds=1.0,
            bitcoin_sources=list(bitcoin),
            treasury_sources=list(treasury),
            sleep=sleeps.append,
            now=lambda: "2026-10-19T12:00:00+00:00",
        )

    return _make


@pytest.fixture()
def gateway(make_gateway) -> MarketDataGateway:
    return make_gateway(
        bitcoin=[FakeSource("CoinGecko API", value=65000.0), FakeSource("CoinDesk API", value=64900.0)],
        treasury=[FakeSource("Yahoo Finance ^TNX", value=0.045)],
    )


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_path=tmp_path / "leads.db",
        admin_password="secret",
        refresh_cooldown_seconds=5.0,
        live_rates=True,
    )


@pytest.fixture()
def app(settings: Settings, gateway: MarketDataGateway) -> Flask:
    return create_app(settings=settings, gateway=gateway)


@pytest.fixture()
def client(app: Flask) -> Iterator[FlaskClient]:
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def fake_source():
    return FakeSource
