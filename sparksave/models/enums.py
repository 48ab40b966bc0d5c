"""
Enumeration definitions for the SparkSave recommendation engine.

All enums inherit from both `str` and `Enum` to ensure JSON serialization compatibility
with Pydantic models, enabling automatic serialization/deserialization in API responses.
Values are the lowercase wire strings used by the web client.
"""

from enum import Enum


class ContractType(str, Enum):
    """
    Pricing structure of a supply contract.

    - fixed: One rate for the whole contract term
    - variable: Supplier may change the rate at any time
    - indexed: Rate follows a wholesale or published index
    - hybrid: Fixed base with some indexed or variable component
    """
    FIXED = "fixed"
    VARIABLE = "variable"
    INDEXED = "indexed"
    HYBRID = "hybrid"


class CostSavingsPriority(str, Enum):
    """How strongly the customer weights cost savings against other factors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UsageTrend(str, Enum):
    """Direction of monthly consumption over the observed window."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class DataQuality(str, Enum):
    """
    Coarse grade of how much usage history underlies a projection.

    - complete: 12 or more months observed
    - partial: 3 to 11 months observed
    - insufficient: fewer than 3 months, or no measurable usage
    """
    COMPLETE = "complete"
    PARTIAL = "partial"
    INSUFFICIENT = "insufficient"


class RiskFlagType(str, Enum):
    """Risk conditions evaluated for every recommended plan."""
    HIGH_TERMINATION_FEE = "high_termination_fee"
    VARIABLE_RATE_EXPOSURE = "variable_rate_exposure"
    PROMO_RATE_EXPIRING = "promo_rate_expiring"
    LOW_SUPPLIER_RATING = "low_supplier_rating"
    INSUFFICIENT_USAGE_DATA = "insufficient_usage_data"
    UNCLEAR_TERMS = "unclear_terms"


class RiskSeverity(str, Enum):
    """
    Severity attached to a risk flag.

    - critical: Should block the switch until reviewed
    - warning: Material downside the customer should weigh
    - info: Worth knowing, no action needed
    """
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class SwitchRationale(str, Enum):
    """
    Reason behind a switching recommendation.

    - no_savings: Candidate is not cheaper than the current plan
    - breakeven_within_term: Savings recover the termination fee before the current term ends
    - contract_ended: No penalty window left on the current contract
    - wait_for_contract_end: Fee outweighs savings; switch when the contract ends
    """
    NO_SAVINGS = "no_savings"
    BREAKEVEN_WITHIN_TERM = "breakeven_within_term"
    CONTRACT_ENDED = "contract_ended"
    WAIT_FOR_CONTRACT_END = "wait_for_contract_end"


class ExclusionReason(str, Enum):
    """Why a candidate plan was removed before scoring."""
    BELOW_SUPPLIER_RATING = "below_supplier_rating"
    EXCEEDS_MONTHLY_BUDGET = "exceeds_monthly_budget"
    EXCEEDS_ANNUAL_BUDGET = "exceeds_annual_budget"
    INVALID_PLAN = "invalid_plan"


class ExplanationSource(str, Enum):
    """Where a recommendation's explanation text came from."""
    GENERATED = "generated"
    TEMPLATE = "template"


class PipelineStage(str, Enum):
    """
    Stages of a recommendation request, in order.

    The pipeline is linear: each stage is a pure transform of the previous one
    and a failure at any stage aborts the request.
    """
    VALIDATED = "validated"
    PROFILE_BUILT = "profile_built"
    FILTERED = "filtered"
    SCORED = "scored"
    RANKED = "ranked"
    ANNOTATED = "annotated"
    COMPLETED = "completed"
