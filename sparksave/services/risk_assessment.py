"""
Risk Assessment Service

Evaluates a fixed rule set against a plan and produces RiskFlags with severity.
Every rule is evaluated independently; the returned flags are sorted by flag type
so the output does not depend on rule order.

Rules:
- high_termination_fee (warning): fee > tolerance x 1.5
- variable_rate_exposure (warning): variable or indexed contract
- promo_rate_expiring (info): promotional rate ends before the contract does,
  or the contract is open-ended
- low_supplier_rating (warning): supplier rating below 3.0
- insufficient_usage_data (info): usage profile is not complete
- unclear_terms (warning): a termination fee on a no-commitment plan, or a
  promotional rate that applies for zero months

calculate_risk_score() condenses a flag set into a 0-100 score for display.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sparksave.models.enums import ContractType, DataQuality, RiskFlagType, RiskSeverity
from sparksave.models.schemas import (
    EnergyPlanBase,
    RankingConfig,
    RiskFlag,
    UsageProfile,
    UserPreferences,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Risk Score Weights
# Points added per flag; the total is capped at MAX_RISK_SCORE.
# =============================================================================

RISK_SCORE_WEIGHTS: Dict[RiskFlagType, int] = {
    RiskFlagType.HIGH_TERMINATION_FEE: 25,
    RiskFlagType.VARIABLE_RATE_EXPOSURE: 30,
    RiskFlagType.PROMO_RATE_EXPIRING: 10,
    RiskFlagType.LOW_SUPPLIER_RATING: 20,
    RiskFlagType.INSUFFICIENT_USAGE_DATA: 10,
    RiskFlagType.UNCLEAR_TERMS: 15,
}

MAX_RISK_SCORE = 100

UNCERTAIN_RATE_TYPES = (ContractType.VARIABLE, ContractType.INDEXED)


def _flag(flag_type: RiskFlagType, severity: RiskSeverity, message: str) -> RiskFlag:
    return RiskFlag(
        type=flag_type,
        severity=severity,
        reasonKey=f"risk.{flag_type.value}",
        message=message,
    )


def assess_risks(
    plan: EnergyPlanBase,
    profile: UsageProfile,
    preferences: UserPreferences,
    config: Optional[RankingConfig] = None,
) -> List[RiskFlag]:
    """
    Evaluate every risk rule for a plan.

    Args:
        plan: Candidate plan.
        profile: Customer usage profile (drives the data quality rule).
        preferences: Customer preferences (drives the termination fee rule).
        config: Engine configuration holding the risk thresholds.

    Returns:
        List[RiskFlag]: Raised flags sorted by flag type; empty if none apply.
    """
    config = config or RankingConfig()
    flags: List[RiskFlag] = []

    fee_threshold = preferences.earlyTerminationFeeTolerance * config.high_termination_fee_multiplier
    if plan.earlyTerminationFee > fee_threshold:
        flags.append(_flag(
            RiskFlagType.HIGH_TERMINATION_FEE,
            RiskSeverity.WARNING,
            f"Early termination fee of ${plan.earlyTerminationFee:.2f} is well above "
            f"your ${preferences.earlyTerminationFeeTolerance:.2f} tolerance",
        ))

    if plan.contractType in UNCERTAIN_RATE_TYPES:
        flags.append(_flag(
            RiskFlagType.VARIABLE_RATE_EXPOSURE,
            RiskSeverity.WARNING,
            f"{plan.contractType.capitalize()} rate can change; projected costs are an estimate",
        ))

    promo = plan.promotionalRate
    if promo is not None and (
        plan.contractLengthMonths == 0 or promo.months < plan.contractLengthMonths
    ):
        flags.append(_flag(
            RiskFlagType.PROMO_RATE_EXPIRING,
            RiskSeverity.INFO,
            f"Promotional rate of ${promo.rate:.4f}/kWh ends after {promo.months} months; "
            f"the standard ${plan.ratePerKwh:.4f}/kWh applies afterwards",
        ))

    if plan.supplierRating < config.low_supplier_rating_threshold:
        flags.append(_flag(
            RiskFlagType.LOW_SUPPLIER_RATING,
            RiskSeverity.WARNING,
            f"Supplier rating {plan.supplierRating:.1f} is below "
            f"{config.low_supplier_rating_threshold:.1f}",
        ))

    if profile.dataQuality != DataQuality.COMPLETE:
        flags.append(_flag(
            RiskFlagType.INSUFFICIENT_USAGE_DATA,
            RiskSeverity.INFO,
            f"Projection is based on {profile.monthsObserved} months of usage history",
        ))

    if plan.contractLengthMonths == 0 and plan.earlyTerminationFee > 0:
        flags.append(_flag(
            RiskFlagType.UNCLEAR_TERMS,
            RiskSeverity.WARNING,
            "Plan has no contract term but charges an early termination fee",
        ))
    elif promo is not None and promo.months == 0:
        flags.append(_flag(
            RiskFlagType.UNCLEAR_TERMS,
            RiskSeverity.WARNING,
            "Plan lists a promotional rate that applies for zero months",
        ))

    flags.sort(key=lambda f: f.type.value)

    if flags:
        logger.debug(f"Plan {plan.planId} risk flags: {[f.type.value for f in flags]}")
    return flags


def calculate_risk_score(flags: Iterable[RiskFlag]) -> int:
    """
    Sum the per-flag weights of a flag set, capped at 100.

    Each flag type counts once even if it appears more than once.
    """
    flag_types = {flag.type for flag in flags}
    score = sum(RISK_SCORE_WEIGHTS.get(flag_type, 0) for flag_type in flag_types)
    return min(score, MAX_RISK_SCORE)
