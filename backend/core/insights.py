"""Static market commentary shown next to a forecast."""

from backend.schemas.forecast import RiskProfile
from backend.schemas.market import MarketInsights

RECOMMENDATIONS = {
    RiskProfile.CONSERVATIVE.value: "Focus on high-yield savings and Treasury bonds in the current rate environment",
    RiskProfile.MODERATE.value: "Balanced portfolio with 60% stocks, 30% bonds, 10% alternatives",
    RiskProfile.AGGRESSIVE.value: "Higher stock allocation but consider dollar-cost averaging",
}


def get_market_insights() -> MarketInsights:
    """Return the current market commentary."""
    return MarketInsights(
        currentMarketCondition="Moderate volatility",
        recommendations=dict(RECOMMENDATIONS),
        marketTrends={
            "High-yield savings": "Rates at multi-year highs (4-5.5% APY)",
            "Stock market": "Historical averages suggest 7-10% long-term returns",
            "Bond yields": "10-year Treasury around 4.2%, attractive for conservative investors",
            "Gold": "Traditional inflation hedge, moderate long-term returns",
            "Cryptocurrency": "Extremely volatile, only for risk-tolerant investors",
        },
        riskWarnings={
            "crypto": "Cryptocurrency is highly volatile and speculative",
            "stocks": "Market can experience significant short-term volatility",
            "general": "Past performance does not guarantee future results",
        },
    )


