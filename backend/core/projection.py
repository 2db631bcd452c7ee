from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Union

from backend.domain.assets import ASSET_CLASSES, AssetClass, historical_rates
from backend.schemas.forecast import (
    BestPerformer,
    ForecastInput,
    ForecastMeta,
    ForecastRequest,
    ForecastResult,
    ForecastSummary,
    Projection,
    RiskProfile,
    ScenarioBand,
    YearPoint,
)
from backend.schemas.market import MarketSnapshot

Money = Union[float, int, Decimal]

RISK_MULTIPLIERS: Dict[RiskProfile, float] = {
    RiskProfile.CONSERVATIVE: 0.7,
    RiskProfile.MODERATE: 1.0,
    RiskProfile.AGGRESSIVE: 1.3,
}

# Worst-case rates never go below this, so high-volatility classes stay sane.
WORST_CASE_RATE_FLOOR = -0.05

# Longest forecast horizon accepted, in years.
MAX_HORIZON_YEARS = 100

DISCLAIMER = (
    "Projections based on historical averages and current market conditions. "
    "Past performance does not guarantee future results."
)


class InvalidInput(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def _risk_profile(value: Union[RiskProfile, str]) -> RiskProfile:
    try:
        return RiskProfile(value)
    except ValueError:
        raise InvalidInput([f"unknown risk profile: {value!r}"]) from None


def _check_amounts(principal: float, monthly_contribution: float, years: int) -> None:
    errors: List[str] = []
    if not math.isfinite(principal) or principal < 0:
        errors.append("principal must be a non-negative number")
    if not math.isfinite(monthly_contribution) or monthly_contribution < 0:
        errors.append("monthlyContribution must be a non-negative number")
    if years < 0:
        errors.append("years must not be negative")
    if errors:
        raise InvalidInput(errors)


def adjust_return_for_risk(base_rate: float, risk_profile: Union[RiskProfile, str]) -> float:
    """Scale a decimal annual rate by the risk profile's multiplier."""
    return base_rate * RISK_MULTIPLIERS[_risk_profile(risk_profile)]


def future_value(
    principal: Money,
    monthly_contribution: Money,
    annual_rate: float,
    years: int,
) -> float:
    """
    Value after `years` of:
      - the principal compounded annually at annual_rate, plus
      - an ordinary annuity of monthly contributions compounded monthly at annual_rate / 12.

    A rate of exactly zero makes the annuity a plain sum of contributions.
    Negative rates go through the same formula.
    """
    principal = float(principal)
    monthly_contribution = float(monthly_contribution)
    _check_amounts(principal, monthly_contribution, years)
    if not math.isfinite(annual_rate):
        raise InvalidInput(["annual rate must be a finite number"])

    try:
        principal_fv = principal * (1 + annual_rate) ** years

        monthly_rate = annual_rate / 12
        months = years * 12
        if monthly_rate == 0:
            annuity_fv = monthly_contribution * months
        else:
            annuity_fv = monthly_contribution * ((1 + monthly_rate) ** months - 1) / monthly_rate
    except OverflowError:
        raise InvalidInput(["projection is too large to compute"]) from None

    value = principal_fv + annuity_fv
    if not math.isfinite(value):
        raise InvalidInput(["projection is too large to compute"])
    return value


def scenario_band(
    principal: Money,
    monthly_contribution: Money,
    years: int,
    asset: AssetClass,
    risk_profile: Union[RiskProfile, str],
    base_rate: Optional[float] = None,
) -> ScenarioBand:
    """
    Expected / best / worst values for one asset class.

      expected: risk-adjusted rate
      best:     adjusted rate + volatility
      worst:    adjusted rate - volatility, floored at WORST_CASE_RATE_FLOOR
                (never above the expected rate itself)
    """
    rate = asset.expected_return if base_rate is None else base_rate
    adjusted = adjust_return_for_risk(rate, risk_profile)
    best_rate = adjusted + asset.volatility
    worst_rate = min(max(adjusted - asset.volatility, WORST_CASE_RATE_FLOOR), adjusted)

    return ScenarioBand(
        best=round(future_value(principal, monthly_contribution, best_rate, years)),
        worst=round(future_value(principal, monthly_contribution, worst_rate, years)),
        expected=round(future_value(principal, monthly_contribution, adjusted, years)),
    )


def resolve_rates(rates: Optional[Mapping[str, Optional[float]]] = None) -> Dict[str, float]:
    """Overlay live rates on the built-in table; missing keys keep their constant."""
    resolved = historical_rates()
    if rates:
        for key in resolved:
            if rates.get(key) is not None:
                resolved[key] = float(rates[key])
    return resolved


def yearly_series(
    principal: Money,
    monthly_contribution: Money,
    years: int,
    risk_profile: Union[RiskProfile, str],
    rates: Optional[Mapping[str, Optional[float]]] = None,
    start_year: Optional[int] = None,
) -> List[YearPoint]:
    """
    One point per year from 0 to `years` inclusive.

    Each value is evaluated from t=0 rather than accumulated from the previous
    point, so repeated calls give identical output.
    """
    profile = _risk_profile(risk_profile)
    base_rates = resolve_rates(rates)
    adjusted = {key: adjust_return_for_risk(rate, profile) for key, rate in base_rates.items()}
    first_year = start_year or 0

    points: List[YearPoint] = []
    for elapsed in range(years + 1):
        points.append(
            YearPoint(
                year=first_year + elapsed,
                elapsedYears=elapsed,
                values={
                    asset.key: round(
                        future_value(principal, monthly_contribution, adjusted[asset.key], elapsed)
                    )
                    for asset in ASSET_CLASSES
                },
            )
        )
    return points


def summarize(
    principal: Money,
    monthly_contribution: Money,
    years: int,
    projections: Mapping[str, Projection],
) -> ForecastSummary:
    """Total invested plus the asset class with the strictly greatest projected value."""
    total = Decimal(str(principal)) + Decimal(str(monthly_contribution)) * 12 * years

    best: Optional[AssetClass] = None
    best_value = 0
    # ties keep the earlier asset class
    for asset in ASSET_CLASSES:
        if asset.key not in projections:
            continue
        value = projections[asset.key].projectedValue
        if best is None or value > best_value:
            best, best_value = asset, value

    if best is None:
        raise InvalidInput(["no projections to summarize"])

    return ForecastSummary(
        totalInvested=int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
        bestPerformer=BestPerformer(key=best.key, name=best.name, value=best_value),
    )


def forecast(
    request: ForecastRequest,
    rates: Optional[Mapping[str, Optional[float]]] = None,
    current_year: Optional[int] = None,
    market: Optional[MarketSnapshot] = None,
) -> ForecastResult:
    """
    Build the full forecast for a request.

    `market` is the gateway's snapshot; its rates are used, and the forecast
    is reported as live only when at least one of them came from a live source.
    A bare `rates` map ({asset key: decimal rate}) is treated as live. Without
    either, the built-in historical averages are used.
    """
    year0 = current_year or datetime.now(timezone.utc).year
    years = request.targetYear - year0
    if years <= 0:
        raise InvalidInput(["targetYear must be in the future"])
    if years > MAX_HORIZON_YEARS:
        raise InvalidInput(["targetYear is too far in the future"])

    profile = _risk_profile(request.riskProfile)
    principal = request.principal
    monthly = request.monthlyContribution
    _check_amounts(float(principal), float(monthly), years)

    if market is not None:
        rates = market.rates()
        rates_source = "live" if market.has_live_data() else "historical"
        last_updated = market.fetchedAt
    else:
        rates_source = "live" if rates else "historical"
        last_updated = datetime.now(timezone.utc).isoformat(timespec="seconds")

    base_rates = resolve_rates(rates)

    projections: Dict[str, Projection] = {}
    scenarios: Dict[str, ScenarioBand] = {}
    for asset in ASSET_CLASSES:
        adjusted = adjust_return_for_risk(base_rates[asset.key], profile)
        value = future_value(principal, monthly, adjusted, years)

        annualized: Optional[float] = None
        if principal > 0 and value > 0:
            annualized = round((value / float(principal)) ** (1 / years) - 1, 4)

        projections[asset.key] = Projection(
            expectedReturnRate=round(adjusted, 4),
            projectedValue=round(value),
            annualizedGrowthRate=annualized,
        )
        scenarios[asset.key] = scenario_band(
            principal, monthly, years, asset, profile, base_rate=base_rates[asset.key]
        )

    return ForecastResult(
        input=ForecastInput(
            principal=float(principal),
            monthlyContribution=float(monthly),
            years=years,
            riskProfile=profile,
        ),
        projections=projections,
        scenarios=scenarios,
        yearlyProjections=yearly_series(
            principal, monthly, years, profile, rates=base_rates, start_year=year0
        ),
        summary=summarize(principal, monthly, years, projections),
        meta=ForecastMeta(
            ratesSource=rates_source,
            lastUpdated=last_updated,
            disclaimer=DISCLAIMER,
        ),
    )


__all__ = [
    "InvalidInput",
    "RISK_MULTIPLIERS",
    "WORST_CASE_RATE_FLOOR",
    "MAX_HORIZON_YEARS",
    "adjust_return_for_risk",
    "future_value",
    "scenario_band",
    "resolve_rates",
    "yearly_series",
    "summarize",
    "forecast",
]
