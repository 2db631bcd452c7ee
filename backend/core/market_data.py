"""
Market data gateway.

Live figures come from external price sources tried in a fixed order; anything
that fails (network error, timeout, bad status, malformed body) falls through to
the next source and finally to the built-in constants. The assembled snapshot is
cached under a single key.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import requests

from backend.core.cache import TTLCache
from backend.domain.assets import ASSET_CLASSES, AssetClass, get_asset_class
from backend.schemas.market import AssetQuote, MarketSnapshot, SourceStatus

logger = logging.getLogger(__name__)

CACHE_KEY = "market-current"
DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_BACKOFF_SECONDS = 1.0

USER_AGENT = "investment-forecast/1.0"

FALLBACK_SOURCE = "Fallback data"
UNAVAILABLE_LABEL = "Data unavailable"

STATIC_SOURCES: Dict[str, str] = {
    "bank": "Current high-yield savings average",
    "bonds": "10-year Treasury yield",
    "stocks": "Historical S&P 500 average",
    "gold": "Historical precious metals average",
    "crypto": "Historical Bitcoin average",
    "diversified": "Balanced portfolio average",
}


class SourceError(Exception):
    """A market data source could not produce a usable value."""


class PriceSource:
    """One upstream JSON endpoint and how to read a number out of it."""

    name: str = ""
    url: str = ""
    params: Optional[Dict[str, str]] = None

    def parse(self, payload: Any) -> float:
        raise NotImplementedError

    def fetch(self, session: requests.Session, timeout: float) -> float:
        try:
            response = session.get(self.url, params=self.params, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise SourceError(f"{self.name}: {exc}") from exc

        try:
            value = float(self.parse(payload))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise SourceError(f"{self.name}: malformed payload ({exc!r})") from exc

        if not math.isfinite(value) or value <= 0:
            raise SourceError(f"{self.name}: implausible value {value!r}")
        return value


class CoinGeckoBitcoin(PriceSource):
    name = "CoinGecko API"
    url = "https://api.coingecko.com/api/v3/simple/price"
    params = {"ids": "bitcoin", "vs_currencies": "usd"}

    def parse(self, payload: Any) -> float:
        return payload["bitcoin"]["usd"]


class CoinDeskBitcoin(PriceSource):
    name = "CoinDesk API"
    url = "https://api.coindesk.com/v1/bpi/currentprice.json"

    def parse(self, payload: Any) -> float:
        return payload["bpi"]["USD"]["rate_float"]


class YahooTreasuryYield(PriceSource):
    """10-year Treasury yield; ^TNX quotes it in percent."""

    name = "Yahoo Finance ^TNX"
    url = "https://query1.finance.yahoo.com/v8/finance/chart/%5ETNX"

    def parse(self, payload: Any) -> float:
        return payload["chart"]["result"][0]["meta"]["regularMarketPrice"] / 100


class FallbackChain:
    """Try sources one after another, pausing between attempts. First success wins."""

    def __init__(
        self,
        sources: Sequence[PriceSource],
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.sources = list(sources)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def run(self, session: requests.Session, timeout: float) -> Optional[Tuple[PriceSource, float]]:
        for index, source in enumerate(self.sources):
            if index:
                self._sleep(self.backoff_seconds)
            try:
                return source, source.fetch(session, timeout)
            except SourceError as exc:
                logger.warning("market source failed: %s", exc)
        return None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _static_quote(asset: AssetClass) -> AssetQuote:
    return AssetQuote(
        key=asset.key,
        name=asset.name,
        rate=asset.expected_return,
        status=SourceStatus.FALLBACK,
        label=f"{asset.expected_return * 100:.1f}% historical average",
        source=STATIC_SOURCES[asset.key],
    )


class MarketDataGateway:
    """
    Serves the current market snapshot.

      1) Fresh cached snapshot and no force-refresh -> returned as is.
      2) Otherwise crypto (primary then secondary price source) and the
         Treasury yield are fetched live; everything else uses constants.
      3) The assembled snapshot replaces the cached one.

    Upstream trouble only ever shows up as a per-asset status.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        bitcoin_sources: Optional[Sequence[PriceSource]] = None,
        treasury_sources: Optional[Sequence[PriceSource]] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], str] = _utc_now,
    ):
        self.cache = cache if cache is not None else TTLCache(DEFAULT_TTL_SECONDS)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        self.session = session
        self.timeout = timeout
        self._now = now
        self.bitcoin_chain = FallbackChain(
            bitcoin_sources if bitcoin_sources is not None else [CoinGeckoBitcoin(), CoinDeskBitcoin()],
            backoff_seconds=backoff_seconds,
            sleep=sleep,
        )
        self.treasury_chain = FallbackChain(
            treasury_sources if treasury_sources is not None else [YahooTreasuryYield()],
            backoff_seconds=backoff_seconds,
            sleep=sleep,
        )

    def current(self, force_refresh: bool = False) -> Tuple[MarketSnapshot, bool]:
        """Return (snapshot, served_from_cache)."""
        if force_refresh:
            logger.info("force refresh requested, bypassing market cache")
        snapshot, cached = self.cache.get_or_fetch(CACHE_KEY, self.fetch_snapshot, force=force_refresh)
        if cached:
            logger.info("returning cached market snapshot from %s", snapshot.fetchedAt)
        return snapshot, cached

    def rates(self) -> Dict[str, float]:
        snapshot, _ = self.current()
        return snapshot.rates()

    def snapshot_age(self) -> Optional[float]:
        return self.cache.age(CACHE_KEY)

    def fetch_snapshot(self) -> MarketSnapshot:
        fetched_at = self._now()
        quotes: Dict[str, AssetQuote] = {asset.key: _static_quote(asset) for asset in ASSET_CLASSES}
        quotes["crypto"] = self._crypto_quote(fetched_at)
        quotes["bonds"] = self._treasury_quote(fetched_at)

        snapshot = MarketSnapshot(assets=quotes, fetchedAt=fetched_at)
        logger.info(
            "fetched market snapshot: %s",
            {key: status.value for key, status in snapshot.status_map().items()},
        )
        return snapshot

    def _crypto_quote(self, fetched_at: str) -> AssetQuote:
        asset = get_asset_class("crypto")
        result = self.bitcoin_chain.run(self.session, self.timeout)
        if result is None:
            logger.warning("all bitcoin price sources failed, using fallback")
            return AssetQuote(
                key=asset.key,
                name=asset.name,
                rate=asset.expected_return,
                status=SourceStatus.ERROR,
                label=UNAVAILABLE_LABEL,
                source=FALLBACK_SOURCE,
            )

        source, price = result
        return AssetQuote(
            key=asset.key,
            name=asset.name,
            rate=asset.expected_return,
            status=SourceStatus.SUCCESS,
            label=f"${price:,.2f}",
            source=source.name,
            price=price,
            updatedAt=fetched_at,
        )

    def _treasury_quote(self, fetched_at: str) -> AssetQuote:
        asset = get_asset_class("bonds")
        result = self.treasury_chain.run(self.session, self.timeout)
        if result is None:
            return AssetQuote(
                key=asset.key,
                name=asset.name,
                rate=asset.expected_return,
                status=SourceStatus.FALLBACK,
                label=f"{asset.expected_return * 100:.1f}%",
                source=FALLBACK_SOURCE,
            )

        source, yield_rate = result
        return AssetQuote(
            key=asset.key,
            name=asset.name,
            rate=yield_rate,
            status=SourceStatus.SUCCESS,
            label=f"{yield_rate * 100:.2f}%",
            source=source.name,
            updatedAt=fetched_at,
        )


__all__ = [
    "CACHE_KEY",
    "SourceError",
    "PriceSource",
    "CoinGeckoBitcoin",
    "CoinDeskBitcoin",
    "YahooTreasuryYield",
    "FallbackChain",
    "MarketDataGateway",
]
