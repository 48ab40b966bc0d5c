"""
Switching Advisor Service

Decides whether switching from the current plan to a candidate pays off now,
given the early termination fee still owed on the current contract.

Decision:
- No monthly savings: don't switch (no_savings)
- Contract already ended (or no end date): switch (contract_ended)
- Fee recovered by savings before the contract ends: switch (breakeven_within_term)
- Otherwise: wait and switch on the contract end date (wait_for_contract_end)
"""

import logging
from datetime import date
from typing import Optional

from sparksave.models.enums import SwitchRationale
from sparksave.models.schemas import CostProjection, CurrentPlan, SwitchingAnalysis


logger = logging.getLogger(__name__)


def remaining_contract_months(as_of_date: date, contract_end_date: Optional[date]) -> int:
    """
    Whole calendar months from the as-of date until the contract end date.

    A partial final month is not counted. Returns 0 when there is no end date
    or the end date is not in the future.

    Example:
        >>> remaining_contract_months(date(2025, 1, 15), date(2026, 7, 15))
        18
        >>> remaining_contract_months(date(2025, 1, 15), date(2026, 7, 14))
        17
    """
    if contract_end_date is None or contract_end_date <= as_of_date:
        return 0

    months = (
        (contract_end_date.year - as_of_date.year) * 12
        + (contract_end_date.month - as_of_date.month)
    )
    if contract_end_date.day < as_of_date.day:
        months -= 1
    return max(months, 0)


def analyze_switch(
    candidate_projection: CostProjection,
    current_projection: CostProjection,
    current_plan: CurrentPlan,
    as_of_date: date,
) -> SwitchingAnalysis:
    """
    Analyze the timing of a switch from the current plan to a candidate.

    Args:
        candidate_projection: Projected cost of the candidate plan.
        current_projection: Projected cost of the current plan.
        current_plan: Current plan (termination fee and contract end date).
        as_of_date: Evaluation date.

    Returns:
        SwitchingAnalysis: Recommendation, breakeven and rationale.
    """
    monthly_savings = current_projection.monthlyCost - candidate_projection.monthlyCost
    remaining = remaining_contract_months(as_of_date, current_plan.contractEndDate)

    if monthly_savings <= 0:
        return SwitchingAnalysis(
            recommendSwitch=False,
            monthsToBreakeven=None,
            remainingContractMonths=remaining,
            rationale=SwitchRationale.NO_SAVINGS,
            monthlySavings=monthly_savings,
        )

    months_to_breakeven = current_plan.earlyTerminationFee / monthly_savings

    if remaining <= 0:
        rationale = SwitchRationale.CONTRACT_ENDED
        recommend = True
    elif months_to_breakeven <= remaining:
        rationale = SwitchRationale.BREAKEVEN_WITHIN_TERM
        recommend = True
    else:
        rationale = SwitchRationale.WAIT_FOR_CONTRACT_END
        recommend = False

    logger.debug(
        f"Switch analysis: savings={monthly_savings:.2f}/mo, "
        f"breakeven={months_to_breakeven:.1f} mo, remaining={remaining} mo, "
        f"rationale={rationale.value}"
    )

    return SwitchingAnalysis(
        recommendSwitch=recommend,
        monthsToBreakeven=months_to_breakeven,
        remainingContractMonths=remaining,
        rationale=rationale,
        monthlySavings=monthly_savings,
        recommendedSwitchDate=None if recommend else current_plan.contractEndDate,
    )
