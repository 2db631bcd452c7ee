"""Data contracts for the investment forecast."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

CENTS = Decimal("0.01")


class RiskProfile(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class ForecastRequest(BaseModel):
    """Inputs for a forecast. Money arrives as a decimal string or a number."""

    model_config = ConfigDict(populate_by_name=True)

    principal: Decimal = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("principal", "amount"),
        description="Initial lump sum.",
    )
    monthlyContribution: Decimal = Field(
        Decimal("0"),
        ge=0,
        description="Amount added at the end of every month.",
    )
    targetYear: int = Field(..., description="Calendar year the projection runs to.")
    riskProfile: RiskProfile

    @field_validator("principal", "monthlyContribution", mode="before")
    @classmethod
    def _blank_is_zero(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return Decimal("0")
        return value

    @field_validator("principal", "monthlyContribution")
    @classmethod
    def _to_cents(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be a finite number")
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class Projection(BaseModel):
    expectedReturnRate: float
    projectedValue: int
    # None when there is no principal to annualize against
    annualizedGrowthRate: Optional[float]


class ScenarioBand(BaseModel):
    best: int
    worst: int
    expected: int


class YearPoint(BaseModel):
    year: int
    elapsedYears: int
    values: Dict[str, int]


class BestPerformer(BaseModel):
    key: str
    name: str
    value: int


class ForecastSummary(BaseModel):
    totalInvested: int
    bestPerformer: BestPerformer


class ForecastInput(BaseModel):
    principal: float
    monthlyContribution: float
    years: int
    riskProfile: RiskProfile


class ForecastMeta(BaseModel):
    ratesSource: str
    lastUpdated: str
    disclaimer: str


class ForecastResult(BaseModel):
    input: ForecastInput
    projections: Dict[str, Projection]
    scenarios: Dict[str, ScenarioBand]
    yearlyProjections: List[YearPoint]
    summary: ForecastSummary
    meta: ForecastMeta


class ForecastResponse(BaseModel):
    success: bool = True
    message: str
    data: ForecastResult
