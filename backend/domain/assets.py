"""Asset classes the calculator projects, in their fixed display order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class AssetClass:
    key: str
    name: str
    expected_return: float  # historical-average annual return, decimal
    volatility: float       # one standard deviation, used for best/worst bands
    color: str


# Order matters: it breaks ties when picking the best performer.
ASSET_CLASSES: List[AssetClass] = [
    AssetClass(key="bank", name="Bank Savings", expected_return=0.048, volatility=0.001, color="#8884d8"),
    AssetClass(key="bonds", name="Treasury Bonds", expected_return=0.042, volatility=0.05, color="#82ca9d"),
    AssetClass(key="stocks", name="Stocks (S&P 500)", expected_return=0.10, volatility=0.15, color="#ffc658"),
    AssetClass(key="gold", name="Gold", expected_return=0.03, volatility=0.12, color="#ff7300"),
    AssetClass(key="crypto", name="Crypto", expected_return=0.15, volatility=0.40, color="#8dd1e1"),
    AssetClass(key="diversified", name="Diversified Portfolio", expected_return=0.07, volatility=0.08, color="#d084d0"),
]

ASSET_KEYS: List[str] = [asset.key for asset in ASSET_CLASSES]

_BY_KEY: Dict[str, AssetClass] = {asset.key: asset for asset in ASSET_CLASSES}


def get_asset_class(key: str) -> AssetClass:
    return _BY_KEY[key]


def historical_rates() -> Dict[str, float]:
    """Built-in {key: rate} table used when live rates are unavailable."""
    return {asset.key: asset.expected_return for asset in ASSET_CLASSES}


__all__ = [
    "AssetClass",
    "ASSET_CLASSES",
    "ASSET_KEYS",
    "get_asset_class",
    "historical_rates",
]
