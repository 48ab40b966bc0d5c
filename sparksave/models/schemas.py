"""
Pydantic request/response and domain models for the SparkSave recommendation engine.

This module provides type-safe data validation and serialization for the engine's
inputs (usage points, plans, preferences, current plan), its derived values
(usage profile, cost projection, risk flags, switching analysis) and its output
(recommendations), plus the HTTP request/response envelopes.

Field names are camelCase to match the JSON contracts used by the web client.
Domain inputs and outputs are frozen: a Recommendation is created once per request
and never mutated afterwards.

Energy plans are a discriminated union on `contractType`. Each variant carries only
the fields that make sense for that contract type, and variable/indexed variants
declare their rate as uncertain.

All models use Pydantic v2 syntax with proper field validation and examples.
"""

from datetime import datetime, date as DateType
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from sparksave.models.enums import (
    ContractType,
    CostSavingsPriority,
    DataQuality,
    ExplanationSource,
    RiskFlagType,
    RiskSeverity,
    SwitchRationale,
    UsageTrend,
)


# =============================================================================
# Usage Models
# =============================================================================


class UsagePoint(BaseModel):
    """
    One billing interval of metered consumption.

    Datetime timestamps (including ISO strings with a time part) are truncated
    to their calendar date.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"timestamp": "2025-07-01", "kwh": 812.5, "cost": 105.63}
        }
    )

    timestamp: DateType = Field(
        ...,
        description="Date of the billing interval"
    )
    kwh: float = Field(
        ...,
        ge=0.0,
        description="Energy consumed in the interval (kWh)"
    )
    cost: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Billed cost of the interval, if known"
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def _truncate_to_date(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return value


class UsageProfile(BaseModel):
    """
    Normalized summary of a customer's historical consumption.

    Month labels are `YYYY-MM` strings. `annualKwh` is the monthly average
    annualized over 12 months, which equals the plain sum when a full year
    was observed.
    """
    model_config = ConfigDict(frozen=True)

    averageMonthlyKwh: float = Field(..., ge=0.0, description="Mean kWh per observed month")
    peakMonth: Optional[str] = Field(default=None, description="Month with the highest usage")
    peakMonthKwh: float = Field(default=0.0, ge=0.0, description="Usage in the peak month")
    annualKwh: float = Field(..., ge=0.0, description="Annualized usage (kWh)")
    seasonalVariation: float = Field(
        default=0.0,
        ge=0.0,
        description="(peak - trough) / average; 0 when average is 0"
    )
    usageTrend: UsageTrend = Field(default=UsageTrend.STABLE)
    dataQuality: DataQuality = Field(...)
    monthsObserved: int = Field(..., ge=0)
    peakUsageMonths: List[str] = Field(
        default_factory=list,
        description="Up to three highest-usage months, highest first"
    )
    lowUsageMonths: List[str] = Field(
        default_factory=list,
        description="Up to three lowest-usage months, lowest first"
    )
    monthlyKwh: Dict[str, float] = Field(
        default_factory=dict,
        description="Observed usage per month, keyed by month label"
    )
    observedAnnualCost: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Billed cost annualized from the usage points, when they carry cost"
    )


# =============================================================================
# Plan Models
# =============================================================================


class PromotionalRate(BaseModel):
    """Introductory rate applied for the first `months` of a contract."""
    model_config = ConfigDict(frozen=True)

    rate: float = Field(..., ge=0.0, description="Promotional rate per kWh")
    months: int = Field(..., ge=0, description="Number of months the promotional rate applies")


class EnergyPlanBase(BaseModel):
    """
    Fields shared by every plan variant.

    `ratePerKwh` is deliberately not range-checked here: a non-positive rate is
    a malformed catalog record that excludes only that plan (InvalidPlanError
    from the cost projector) instead of rejecting the whole request.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    isRateUncertain: ClassVar[bool] = False

    planId: str = Field(..., min_length=1, description="Catalog identifier of the plan")
    supplierName: str = Field(..., description="Retail supplier offering the plan")
    planName: Optional[str] = Field(default=None, description="Marketing name of the plan")
    ratePerKwh: float = Field(..., description="Energy rate in $/kWh")
    contractLengthMonths: int = Field(
        default=0,
        ge=0,
        description="Commitment length in months (0 = no commitment)"
    )
    earlyTerminationFee: float = Field(default=0.0, ge=0.0)
    renewablePercentage: float = Field(default=0.0, ge=0.0, le=100.0)
    supplierRating: float = Field(..., ge=0.0, le=5.0)
    promotionalRate: Optional[PromotionalRate] = Field(default=None)
    monthlyFee: float = Field(default=0.0, ge=0.0)


class FixedRatePlan(EnergyPlanBase):
    contractType: Literal["fixed"] = "fixed"


class VariableRatePlan(EnergyPlanBase):
    """Supplier may reprice at any time; the quoted rate is only a point estimate."""
    isRateUncertain: ClassVar[bool] = True

    contractType: Literal["variable"] = "variable"


class IndexedRatePlan(EnergyPlanBase):
    """Rate tracks a published index; the quoted rate is only a point estimate."""
    isRateUncertain: ClassVar[bool] = True

    contractType: Literal["indexed"] = "indexed"
    indexName: Optional[str] = Field(
        default=None,
        description="Index the rate follows (e.g. a wholesale hub price)"
    )


class HybridRatePlan(EnergyPlanBase):
    contractType: Literal["hybrid"] = "hybrid"


EnergyPlan = Annotated[
    Union[FixedRatePlan, VariableRatePlan, IndexedRatePlan, HybridRatePlan],
    Field(discriminator="contractType"),
]

_energy_plan_adapter: TypeAdapter = TypeAdapter(EnergyPlan)


def parse_energy_plan(data: Dict[str, Any]) -> EnergyPlanBase:
    """Validate a raw catalog record into the matching plan variant."""
    return _energy_plan_adapter.validate_python(data)


class CurrentPlan(BaseModel):
    """The customer's existing supply contract, used only for switching analysis."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "supplierName": "Legacy Power",
                "ratePerKwh": 0.13,
                "contractEndDate": "2027-04-30",
                "earlyTerminationFee": 150.0
            }
        }
    )

    ratePerKwh: float = Field(..., gt=0.0)
    contractEndDate: Optional[DateType] = Field(default=None)
    earlyTerminationFee: float = Field(default=0.0, ge=0.0)
    supplierName: Optional[str] = Field(default=None)
    planName: Optional[str] = Field(default=None)
    contractType: ContractType = Field(default=ContractType.FIXED)
    monthlyFee: float = Field(default=0.0, ge=0.0)


# =============================================================================
# Preference Models
# =============================================================================


class BudgetConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    maxMonthlyCost: Optional[float] = Field(default=None, ge=0.0)
    maxAnnualCost: Optional[float] = Field(default=None, ge=0.0)


class UserPreferences(BaseModel):
    """
    Customer preferences driving hard filters and the suitability score.

    `supplierRatingPreference` is a hard floor, not a weight.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "costSavingsPriority": "high",
                "flexibilityPreferenceMonths": 12,
                "renewableEnergyPreference": 50,
                "supplierRatingPreference": 3.5,
                "contractTypePreference": "fixed",
                "earlyTerminationFeeTolerance": 100,
                "budgetConstraints": {"maxMonthlyCost": 150}
            }
        }
    )

    costSavingsPriority: CostSavingsPriority = Field(...)
    flexibilityPreferenceMonths: int = Field(
        ...,
        ge=0,
        description="Longest contract length (months) the customer is comfortable with"
    )
    renewableEnergyPreference: float = Field(..., ge=0.0, le=100.0)
    supplierRatingPreference: float = Field(..., ge=0.0, le=5.0)
    contractTypePreference: Optional[ContractType] = Field(default=None)
    earlyTerminationFeeTolerance: float = Field(..., ge=0.0)
    budgetConstraints: Optional[BudgetConstraints] = Field(default=None)


# =============================================================================
# Engine Configuration
# =============================================================================


class ScoringWeights(BaseModel):
    """Weights of the suitability score. Defaults are the reference baseline."""
    model_config = ConfigDict(frozen=True)

    cost_low: float = Field(default=0.2, ge=0.0)
    cost_medium: float = Field(default=0.4, ge=0.0)
    cost_high: float = Field(default=0.6, ge=0.0)
    renewable: float = Field(default=0.2, ge=0.0)
    flexibility: float = Field(default=0.1, ge=0.0)
    contract_type_bonus: float = Field(default=0.1, ge=0.0)
    termination_fee_penalty: float = Field(default=0.1, ge=0.0)

    def cost_weight(self, priority: CostSavingsPriority) -> float:
        return {
            CostSavingsPriority.LOW: self.cost_low,
            CostSavingsPriority.MEDIUM: self.cost_medium,
            CostSavingsPriority.HIGH: self.cost_high,
        }[CostSavingsPriority(priority)]


class RankingConfig(BaseModel):
    """
    Explicit configuration handed to the engine.

    Built from Settings by the API layer; the engine never reads the environment.
    """
    model_config = ConfigDict(frozen=True)

    top_n: int = Field(default=3, ge=1)
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    high_termination_fee_multiplier: float = Field(default=1.5, ge=0.0)
    low_supplier_rating_threshold: float = Field(default=3.0, ge=0.0, le=5.0)
    trend_dead_zone: float = Field(default=0.02, ge=0.0)
    max_promo_months: int = Field(default=12, ge=0, le=12)
    scoring_workers: int = Field(default=1, ge=1)
    score_tie_tolerance: float = Field(default=1e-6, ge=0.0)
    explanation_timeout_seconds: float = Field(default=2.0, gt=0.0)


# =============================================================================
# Derived Values
# =============================================================================


class CostBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    energyCost: float = Field(..., description="Usage billed at the standard rate")
    fees: float = Field(..., description="Recurring monthly fees over a year")
    promoDiscount: float = Field(
        default=0.0,
        description="Reduction from promotional months (negative if the promo rate is higher)"
    )


class CostProjection(BaseModel):
    """Projected first-year cost of a plan for a usage profile."""
    model_config = ConfigDict(frozen=True)

    annualCost: float = Field(...)
    monthlyCost: float = Field(...)
    breakdown: CostBreakdown = Field(...)
    rateUncertain: bool = Field(
        default=False,
        description="True when the rate is a point estimate (variable/indexed plans)"
    )


class RiskFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RiskFlagType = Field(...)
    severity: RiskSeverity = Field(...)
    reasonKey: str = Field(..., description="Stable key for localized display")
    message: str = Field(..., description="Human-readable reason")


class SwitchingAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendSwitch: bool = Field(...)
    monthsToBreakeven: Optional[float] = Field(default=None, ge=0.0)
    remainingContractMonths: int = Field(..., ge=0)
    rationale: SwitchRationale = Field(...)
    monthlySavings: float = Field(..., description="Current monthly cost minus candidate monthly cost")
    recommendedSwitchDate: Optional[DateType] = Field(
        default=None,
        description="When to switch if waiting for the current contract to end"
    )


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    costScore: float = Field(..., ge=0.0, le=1.0)
    costWeight: float = Field(..., ge=0.0)
    renewableScore: float = Field(..., ge=0.0, le=1.0)
    flexibilityScore: float = Field(..., ge=0.0, le=1.0)
    contractTypeBonus: float = Field(default=0.0, ge=0.0)
    terminationFeePenalty: float = Field(default=0.0, ge=0.0)


class PlanScore(BaseModel):
    """Suitability score of one plan plus its savings against the current cost."""
    model_config = ConfigDict(frozen=True)

    planId: str
    score: float = Field(..., ge=0.0, le=1.0)
    projectedAnnualSavings: float
    projectedMonthlySavings: float
    percentageSavings: float
    breakdown: ScoreBreakdown


class ExplanationInput(BaseModel):
    """
    Structured facts handed to the explanation generator for one recommendation.

    Contains no prose; the template explanation and any generated text are both
    derived from these fields only.
    """
    model_config = ConfigDict(frozen=True)

    # Plan identity and terms
    planId: str
    rank: int
    supplierName: str
    planName: Optional[str] = None
    contractType: ContractType
    ratePerKwh: float
    contractLengthMonths: int
    earlyTerminationFee: float
    renewablePercentage: float
    supplierRating: float
    promotionalRate: Optional[PromotionalRate] = None
    indexName: Optional[str] = None

    # Cost and savings
    annualCost: float
    monthlyCost: float
    currentAnnualCost: float
    savingsKnown: bool
    projectedAnnualSavings: float
    projectedMonthlySavings: float
    percentageSavings: float
    rateUncertain: bool

    # Score and risk
    score: float
    riskFlags: List[RiskFlagType] = Field(default_factory=list)
    riskScore: int = 0

    # Usage summary
    averageMonthlyKwh: float
    annualKwh: float
    peakMonth: Optional[str] = None
    usageTrend: UsageTrend
    dataQuality: DataQuality

    # Preference highlights
    costSavingsPriority: CostSavingsPriority
    renewableEnergyPreference: float
    contractTypeMatched: bool = False

    # Switching
    switchRationale: Optional[SwitchRationale] = None
    recommendSwitch: Optional[bool] = None
    monthsToBreakeven: Optional[float] = None
    remainingContractMonths: Optional[int] = None
    recommendedSwitchDate: Optional[DateType] = None


# =============================================================================
# Output Models
# =============================================================================


class Recommendation(BaseModel):
    """
    One ranked plan recommendation. Created fresh per request, never mutated.
    """
    model_config = ConfigDict(frozen=True)

    planId: str = Field(..., min_length=1)
    rank: int = Field(..., ge=1)
    score: float = Field(..., ge=0.0, le=1.0)
    projectedAnnualSavings: float = Field(
        ...,
        description="Current annual cost minus projected annual cost"
    )
    projectedMonthlySavings: float = Field(...)
    percentageSavings: float = Field(
        default=0.0,
        description="Savings as a percentage of the current cost (0 when unknown)"
    )
    costProjection: CostProjection = Field(...)
    riskFlags: List[RiskFlag] = Field(default_factory=list)
    riskScore: int = Field(default=0, ge=0, le=100)
    switchingAnalysis: Optional[SwitchingAnalysis] = Field(default=None)
    explanationInput: ExplanationInput = Field(...)
    explanation: str = Field(default="")
    explanationSource: ExplanationSource = Field(default=ExplanationSource.TEMPLATE)


class RecommendationResult(BaseModel):
    """Outcome of a full engine run including the explanation step."""
    model_config = ConfigDict(frozen=True)

    recommendations: List[Recommendation] = Field(default_factory=list)
    usageProfile: UsageProfile
    currentAnnualCost: float = Field(default=0.0, ge=0.0)
    explanationDegraded: bool = Field(
        default=False,
        description="True when generated explanations were replaced by templates"
    )
    degradationReason: Optional[str] = Field(default=None)


# =============================================================================
# API Envelopes
# =============================================================================


class RecommendationRequest(BaseModel):
    """
    Body of POST /recommendations.

    `preferences` and `candidatePlans` are optional at the schema level so that
    their absence is reported by the engine as a validation error.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "usagePoints": [
                    {"timestamp": "2025-01-01", "kwh": 640, "cost": 83.2},
                    {"timestamp": "2025-02-01", "kwh": 590, "cost": 76.7}
                ],
                "preferences": {
                    "costSavingsPriority": "high",
                    "flexibilityPreferenceMonths": 12,
                    "renewableEnergyPreference": 50,
                    "supplierRatingPreference": 3.5,
                    "earlyTerminationFeeTolerance": 100
                },
                "candidatePlans": [
                    {
                        "planId": "plan-1",
                        "supplierName": "Green Energy Co",
                        "ratePerKwh": 0.12,
                        "contractType": "fixed",
                        "contractLengthMonths": 12,
                        "renewablePercentage": 100,
                        "supplierRating": 4.4
                    }
                ],
                "asOfDate": "2025-12-31"
            }
        }
    )

    usagePoints: List[UsagePoint] = Field(default_factory=list)
    preferences: Optional[UserPreferences] = Field(default=None)
    candidatePlans: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Raw catalog records; malformed records are excluded individually",
    )
    currentPlan: Optional[CurrentPlan] = Field(default=None)
    asOfDate: Optional[DateType] = Field(default=None, description="Defaults to today")
    topN: Optional[int] = Field(default=None, description="Defaults to the configured top N")


class RecommendationResponse(RecommendationResult):
    success: bool = True
