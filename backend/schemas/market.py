"""Data contracts for market data and insights."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class SourceStatus(str, Enum):
    SUCCESS = "success"
    FALLBACK = "fallback"
    ERROR = "error"


class AssetQuote(BaseModel):
    """Current figures for one asset class and where they came from."""

    key: str
    name: str
    rate: float = Field(..., description="Annual rate as a decimal fraction.")
    status: SourceStatus
    label: str
    source: str
    price: Optional[float] = None
    updatedAt: Optional[str] = None


class MarketSnapshot(BaseModel):
    assets: Dict[str, AssetQuote]
    fetchedAt: str

    def status_map(self) -> Dict[str, SourceStatus]:
        return {key: quote.status for key, quote in self.assets.items()}

    def rates(self) -> Dict[str, float]:
        return {key: quote.rate for key, quote in self.assets.items()}

    def has_live_data(self) -> bool:
        """True when at least one quote came from a live source."""
        return any(quote.status == SourceStatus.SUCCESS for quote in self.assets.values())


class MarketMeta(BaseModel):
    lastUpdated: str
    cached: bool
    apiStatus: Dict[str, SourceStatus]


class MarketResponse(BaseModel):
    success: bool = True
    message: str
    data: MarketSnapshot
    meta: MarketMeta


class RatesMeta(BaseModel):
    lastUpdated: str
    source: str
    format: str = "decimal_percentage"


class RatesResponse(BaseModel):
    success: bool = True
    message: str
    data: Dict[str, float]
    meta: RatesMeta


class MarketInsights(BaseModel):
    currentMarketCondition: str
    recommendations: Dict[str, str]
    marketTrends: Dict[str, str]
    riskWarnings: Dict[str, str]


class InsightsResponse(BaseModel):
    success: bool = True
    message: str
    data: MarketInsights
