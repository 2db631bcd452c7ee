from __future__ import annotations

import pytest
import requests

from backend.core.market_data import (
    CoinDeskBitcoin,
    CoinGeckoBitcoin,
    FallbackChain,
    SourceError,
    YahooTreasuryYield,
)
from backend.domain.assets import ASSET_KEYS
from backend.schemas.market import SourceStatus


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, bad_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.bad_json:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_coingecko_reads_usd_price():
    session = FakeSession(FakeResponse({"bitcoin": {"usd": 65000}}))

    assert CoinGeckoBitcoin().fetch(session, timeout=5.0) == 65000.0
    url, params, timeout = session.calls[0]
    assert params == {"ids": "bitcoin", "vs_currencies": "usd"}
    assert timeout == 5.0


def test_coindesk_reads_rate_float():
    session = FakeSession(FakeResponse({"bpi": {"USD": {"rate_float": 64123.5}}}))
    assert CoinDeskBitcoin().fetch(session, timeout=5.0) == 64123.5


def test_treasury_yield_is_converted_to_decimal():
    payload = {"chart": {"result": [{"meta": {"regularMarketPrice": 4.31}}]}}
    value = YahooTreasuryYield().fetch(FakeSession(FakeResponse(payload)), timeout=5.0)
    assert value == pytest.approx(0.0431)


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.Timeout("timed out")),
        FakeSession(error=requests.ConnectionError("refused")),
        FakeSession(FakeResponse({"bitcoin": {"usd": 1}}, status_code=503)),
        FakeSession(FakeResponse(bad_json=True)),
        FakeSession(FakeResponse({"bitcoin": {}})),
        FakeSession(FakeResponse({"bitcoin": {"usd": "n/a"}})),
        FakeSession(FakeResponse({"bitcoin": {"usd": 0}})),
        FakeSession(FakeResponse(["unexpected"])),
    ],
)
def test_every_failure_becomes_source_error(session):
    with pytest.raises(SourceError):
        CoinGeckoBitcoin().fetch(session, timeout=5.0)


def test_chain_stops_at_first_success(fake_source, sleeps):
    primary = fake_source("primary", value=1.0)
    secondary = fake_source("secondary", value=2.0)
    chain = FallbackChain([primary, secondary], backoff_seconds=1.0, sleep=sleeps.append)

    source, value = chain.run(session=None, timeout=5.0)

    assert (source.name, value) == ("primary", 1.0)
    assert secondary.calls == 0
    assert sleeps == []


def test_chain_backs_off_between_attempts(fake_source, sleeps):
    primary = fake_source("primary", error="down")
    secondary = fake_source("secondary", value=2.0)
    chain = FallbackChain([primary, secondary], backoff_seconds=1.0, sleep=sleeps.append)

    source, value = chain.run(session=None, timeout=5.0)

    assert (source.name, value) == ("secondary", 2.0)
    assert primary.calls == 1
    assert sleeps == [1.0]


def test_exhausted_chain_returns_none(fake_source, sleeps):
    chain = FallbackChain(
        [fake_source("a", error="down"), fake_source("b", error="down")],
        backoff_seconds=1.0,
        sleep=sleeps.append,
    )
    assert chain.run(session=None, timeout=5.0) is None


def test_live_snapshot(gateway):
    snapshot, cached = gateway.current()

    assert cached is False
    assert list(snapshot.assets) == ASSET_KEYS
    crypto = snapshot.assets["crypto"]
    assert crypto.status is SourceStatus.SUCCESS
    assert crypto.price == 65000.0
    assert crypto.source == "CoinGecko API"
    assert crypto.rate == 0.15

    bonds = snapshot.assets["bonds"]
    assert bonds.status is SourceStatus.SUCCESS
    assert bonds.rate == 0.045

    for key in ("bank", "stocks", "gold", "diversified"):
        assert snapshot.assets[key].status is SourceStatus.FALLBACK
    assert snapshot.fetchedAt == "2026-10-19T12:00:00+00:00"


def test_secondary_bitcoin_source_after_backoff(make_gateway, fake_source, sleeps):
    primary = fake_source("CoinGecko API", error="429")
    secondary = fake_source("CoinDesk API", value=64000.0)
    gateway = make_gateway(bitcoin=[primary, secondary], treasury=[fake_source("tnx", value=0.04)])

    snapshot, _ = gateway.current()

    assert snapshot.assets["crypto"].source == "CoinDesk API"
    assert snapshot.assets["crypto"].status is SourceStatus.SUCCESS
    assert sleeps == [1.0]


def test_all_sources_down_still_returns_full_snapshot(make_gateway, fake_source):
    gateway = make_gateway(
        bitcoin=[fake_source("CoinGecko API", error="down"), fake_source("CoinDesk API", error="down")],
        treasury=[fake_source("tnx", error="down")],
    )

    snapshot, _ = gateway.current()

    assert list(snapshot.assets) == ASSET_KEYS
    crypto = snapshot.assets["crypto"]
    assert crypto.status is SourceStatus.ERROR
    assert crypto.rate == 0.15
    assert crypto.label == "Data unavailable"
    assert crypto.price is None

    bonds = snapshot.assets["bonds"]
    assert bonds.status is SourceStatus.FALLBACK
    assert bonds.rate == 0.042


def test_snapshot_is_cached_until_ttl_or_refresh(make_gateway, fake_source, clock):
    btc = fake_source("CoinGecko API", value=65000.0)
    gateway = make_gateway(bitcoin=[btc], treasury=[fake_source("tnx", value=0.04)])

    gateway.current()
    _, cached = gateway.current()
    assert cached is True
    assert btc.calls == 1

    _, cached = gateway.current(force_refresh=True)
    assert cached is False
    assert btc.calls == 2

    clock.advance(15 * 60)
    _, cached = gateway.current()
    assert cached is False
    assert btc.calls == 3


def test_rates_map(gateway):
    rates = gateway.rates()
    assert list(rates) == ASSET_KEYS
    assert rates["bonds"] == 0.045
    assert rates["stocks"] == 0.10
