"""
Cost Projection Service

Projects the first-year cost of an energy plan against a usage profile.

Projection rules:
- energyCost = ratePerKwh x annualKwh
- A promotional rate bills the first min(promo months, 12) months at the promo
  rate, each month weighted by the average monthly usage
- Variable and indexed plans use the quoted rate as a point estimate and are
  marked rateUncertain; no inflation is added
- fees = monthlyFee x 12
- annualCost = energyCost - promoDiscount + fees, monthlyCost = annualCost / 12
- The early termination fee is an exit cost, never part of the baseline

Values are not rounded here; presentation layers round for display.
"""

import logging

from sparksave.core.errors import InvalidPlanError
from sparksave.models.enums import ContractType
from sparksave.models.schemas import (
    CostBreakdown,
    CostProjection,
    CurrentPlan,
    EnergyPlanBase,
    UsageProfile,
)


logger = logging.getLogger(__name__)


MONTHS_PER_YEAR = 12

# Default cap on promotional months counted inside one projected year
DEFAULT_MAX_PROMO_MONTHS = 12


def project_cost(
    plan: EnergyPlanBase,
    profile: UsageProfile,
    max_promo_months: int = DEFAULT_MAX_PROMO_MONTHS,
) -> CostProjection:
    """
    Project the annual and monthly cost of a candidate plan.

    Args:
        plan: Candidate plan (any contract type variant).
        profile: Usage profile of the customer.
        max_promo_months: Promotional months counted at most within the year.

    Returns:
        CostProjection: Annual/monthly cost with its breakdown.

    Raises:
        InvalidPlanError: If the plan's rate is not positive.
    """
    if plan.ratePerKwh <= 0:
        raise InvalidPlanError(plan.planId, f"ratePerKwh must be positive, got {plan.ratePerKwh}")

    energy_cost = plan.ratePerKwh * profile.annualKwh

    promo_discount = 0.0
    if plan.promotionalRate is not None:
        promo_months = min(plan.promotionalRate.months, max_promo_months, MONTHS_PER_YEAR)
        promo_discount = (
            profile.averageMonthlyKwh
            * promo_months
            * (plan.ratePerKwh - plan.promotionalRate.rate)
        )

    fees = plan.monthlyFee * MONTHS_PER_YEAR
    annual_cost = energy_cost - promo_discount + fees

    logger.debug(
        f"Projected plan {plan.planId}: annual={annual_cost:.2f} "
        f"(energy={energy_cost:.2f}, promo={promo_discount:.2f}, fees={fees:.2f})"
    )

    return CostProjection(
        annualCost=annual_cost,
        monthlyCost=annual_cost / MONTHS_PER_YEAR,
        breakdown=CostBreakdown(
            energyCost=energy_cost,
            fees=fees,
            promoDiscount=promo_discount,
        ),
        rateUncertain=plan.isRateUncertain,
    )


def project_current_plan_cost(current_plan: CurrentPlan, profile: UsageProfile) -> CostProjection:
    """
    Project the customer's existing plan with the same rules as candidates.

    The current plan has no promotional rate; its rate is uncertain when it is
    a variable or indexed contract.
    """
    energy_cost = current_plan.ratePerKwh * profile.annualKwh
    fees = current_plan.monthlyFee * MONTHS_PER_YEAR
    annual_cost = energy_cost + fees

    return CostProjection(
        annualCost=annual_cost,
        monthlyCost=annual_cost / MONTHS_PER_YEAR,
        breakdown=CostBreakdown(energyCost=energy_cost, fees=fees, promoDiscount=0.0),
        rateUncertain=current_plan.contractType in (ContractType.VARIABLE, ContractType.INDEXED),
    )
