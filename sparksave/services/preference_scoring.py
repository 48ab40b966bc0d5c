"""
Preference Scoring Service

Applies the customer's hard filters to candidate plans and computes a normalized
suitability score in [0, 1] for the plans that pass.

Hard filters (exclusion before scoring):
- supplierRating below the customer's rating floor
- projected monthly cost above budgetConstraints.maxMonthlyCost
- projected annual cost above budgetConstraints.maxAnnualCost

Score components (weights from ScoringWeights):
- Cost: 1 - clamp(annualCost / max(currentAnnualCost, annualCost), 0, 1),
  weighted by cost-savings priority (low 0.2, medium 0.4, high 0.6).
  Contributes 0 when the current annual cost is unknown (<= 0).
- Renewable: 1 - |renewablePercentage - preference| / 100, weight 0.2
- Flexibility: 1 within the preferred contract length, then linear decay to 0
  at twice that length, weight 0.1
- Contract type bonus: +0.1 when the plan matches the preferred type
- Termination fee penalty: -0.1 when the fee exceeds the customer's tolerance

Scores are compared on a grid of tolerance width (1e-6). Ties on that grid are
broken by lower rate, then higher renewable percentage, then planId, so ranking
is fully deterministic.
"""

import logging
from typing import List, Optional, Tuple

from sparksave.models.enums import ExclusionReason
from sparksave.models.schemas import (
    CostProjection,
    EnergyPlanBase,
    PlanScore,
    ScoreBreakdown,
    ScoringWeights,
    UsageProfile,
    UserPreferences,
)


logger = logging.getLogger(__name__)


DEFAULT_SCORE_TIE_TOLERANCE = 1e-6

ScoredPlan = Tuple[EnergyPlanBase, PlanScore]


# =============================================================================
# Hard Filters
# =============================================================================


def apply_hard_filters(
    plan: EnergyPlanBase,
    preferences: UserPreferences,
    projection: CostProjection,
) -> Optional[ExclusionReason]:
    """
    Check a projected plan against the customer's hard constraints.

    Returns:
        The first exclusion reason that applies, or None if the plan is eligible.
    """
    if plan.supplierRating < preferences.supplierRatingPreference:
        return ExclusionReason.BELOW_SUPPLIER_RATING

    budget = preferences.budgetConstraints
    if budget is not None:
        if budget.maxMonthlyCost is not None and projection.monthlyCost > budget.maxMonthlyCost:
            return ExclusionReason.EXCEEDS_MONTHLY_BUDGET
        if budget.maxAnnualCost is not None and projection.annualCost > budget.maxAnnualCost:
            return ExclusionReason.EXCEEDS_ANNUAL_BUDGET

    return None


# =============================================================================
# Sub-scores
# =============================================================================


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _cost_score(annual_cost: float, current_annual_cost: float) -> float:
    if current_annual_cost <= 0:
        return 0.0
    return 1.0 - _clamp(annual_cost / max(current_annual_cost, annual_cost))


def _renewable_score(renewable_percentage: float, preference: float) -> float:
    return _clamp(1.0 - abs(renewable_percentage - preference) / 100.0)


def _flexibility_score(contract_length: int, preferred_length: int) -> float:
    if contract_length <= preferred_length:
        return 1.0
    if preferred_length == 0:
        return 0.0
    return _clamp((2 * preferred_length - contract_length) / preferred_length)


# =============================================================================
# Scoring
# =============================================================================


def score_plan(
    plan: EnergyPlanBase,
    profile: UsageProfile,
    preferences: UserPreferences,
    projection: CostProjection,
    current_annual_cost: float,
    weights: Optional[ScoringWeights] = None,
) -> PlanScore:
    """
    Score an eligible plan against the customer's preferences.

    Args:
        plan: Candidate plan that passed the hard filters.
        profile: Usage profile the projection was computed from.
        preferences: Customer preferences.
        projection: Cost projection of the plan.
        current_annual_cost: Customer's current annual cost; 0 when unknown.
        weights: Scoring weights; the default baseline when omitted.

    Returns:
        PlanScore: Clamped score, savings figures and the sub-score breakdown.
    """
    weights = weights or ScoringWeights()

    cost_weight = weights.cost_weight(preferences.costSavingsPriority)
    cost_score = _cost_score(projection.annualCost, current_annual_cost)
    renewable_score = _renewable_score(
        plan.renewablePercentage, preferences.renewableEnergyPreference
    )
    flexibility_score = _flexibility_score(
        plan.contractLengthMonths, preferences.flexibilityPreferenceMonths
    )

    contract_bonus = 0.0
    if (
        preferences.contractTypePreference is not None
        and plan.contractType == preferences.contractTypePreference
    ):
        contract_bonus = weights.contract_type_bonus

    fee_penalty = 0.0
    if plan.earlyTerminationFee > preferences.earlyTerminationFeeTolerance:
        fee_penalty = weights.termination_fee_penalty

    raw_score = (
        cost_weight * cost_score
        + weights.renewable * renewable_score
        + weights.flexibility * flexibility_score
        + contract_bonus
        - fee_penalty
    )

    annual_savings = current_annual_cost - projection.annualCost
    percentage_savings = (
        annual_savings / current_annual_cost * 100 if current_annual_cost > 0 else 0.0
    )

    logger.debug(
        f"Scored plan {plan.planId}: raw={raw_score:.4f} cost={cost_score:.3f} "
        f"renewable={renewable_score:.3f} flexibility={flexibility_score:.3f}"
    )

    return PlanScore(
        planId=plan.planId,
        score=_clamp(raw_score),
        projectedAnnualSavings=annual_savings,
        projectedMonthlySavings=annual_savings / 12,
        percentageSavings=percentage_savings,
        breakdown=ScoreBreakdown(
            costScore=cost_score,
            costWeight=cost_weight,
            renewableScore=renewable_score,
            flexibilityScore=flexibility_score,
            contractTypeBonus=contract_bonus,
            terminationFeePenalty=fee_penalty,
        ),
    )


# =============================================================================
# Ordering
# =============================================================================


def _ranking_key(entry: ScoredPlan, tolerance: float) -> Tuple[float, float, float, str]:
    plan, plan_score = entry
    # Snapping to the tolerance grid keeps the key a total order
    score = round(plan_score.score / tolerance) if tolerance > 0 else plan_score.score
    return -score, plan.ratePerKwh, -plan.renewablePercentage, plan.planId


def rank_scored_plans(
    scored: List[ScoredPlan],
    tolerance: float = DEFAULT_SCORE_TIE_TOLERANCE,
) -> List[ScoredPlan]:
    """
    Order scored plans best first with the deterministic tie-break.

    The result does not depend on the input order.
    """
    return sorted(scored, key=lambda entry: _ranking_key(entry, tolerance))
