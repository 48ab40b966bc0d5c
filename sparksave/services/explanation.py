"""
Explanation Service

Produces the human-readable explanation attached to each recommendation.

Two sources:
- Template: deterministic prose built only from the ExplanationInput facts.
  Every recommendation carries one, so a response is never missing text.
- Generated: text from an injected ExplanationGenerator (typically a language
  model client). Calls for all recommendations run concurrently under a single
  timeout budget.

Degradation rules:
- No generator configured: template text, not degraded
- Budget exceeded: outstanding calls are cancelled, every recommendation keeps
  its template text, result is degraded
- One call fails or returns empty text: that recommendation keeps its template
  text, result is degraded

A degraded explanation step is never fatal to the request.
"""

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from sparksave.core.errors import ExplanationDegraded
from sparksave.models.enums import ContractType, ExplanationSource, RiskFlagType, SwitchRationale
from sparksave.models.schemas import ExplanationInput, Recommendation


logger = logging.getLogger(__name__)


DEFAULT_EXPLANATION_TIMEOUT_SECONDS = 2.0


@runtime_checkable
class ExplanationGenerator(Protocol):
    """External collaborator that phrases a recommendation in natural language."""

    async def explain(self, explanation_input: ExplanationInput) -> str:
        ...


# =============================================================================
# Template Explanations
# =============================================================================

RISK_FLAG_LABELS = {
    RiskFlagType.HIGH_TERMINATION_FEE: "a high early termination fee",
    RiskFlagType.VARIABLE_RATE_EXPOSURE: "a rate that can change",
    RiskFlagType.PROMO_RATE_EXPIRING: "a promotional rate that expires",
    RiskFlagType.LOW_SUPPLIER_RATING: "a low supplier rating",
    RiskFlagType.INSUFFICIENT_USAGE_DATA: "limited usage history",
    RiskFlagType.UNCLEAR_TERMS: "unclear contract terms",
}


def _describe_plan(facts: ExplanationInput) -> str:
    name = facts.planName or "plan"
    if facts.contractLengthMonths > 0:
        term = f"{facts.contractLengthMonths}-month {facts.contractType.value}"
    else:
        term = f"no-commitment {facts.contractType.value}"
    return (
        f"#{facts.rank}: {facts.supplierName} {name} ({term} rate) "
        f"at ${facts.ratePerKwh:.4f}/kWh."
    )


def _describe_savings(facts: ExplanationInput) -> str:
    if not facts.savingsKnown:
        return (
            f"Projected cost is ${facts.annualCost:.2f} per year "
            f"(about ${facts.monthlyCost:.2f}/month) for {facts.annualKwh:,.0f} kWh."
        )
    if facts.projectedAnnualSavings > 0:
        return (
            f"Projected to save ${facts.projectedAnnualSavings:.2f} per year "
            f"(${facts.projectedMonthlySavings:.2f}/month, {facts.percentageSavings:.1f}%) "
            f"compared with your current ${facts.currentAnnualCost:.2f}."
        )
    if facts.projectedAnnualSavings < 0:
        return (
            f"Projected to cost ${-facts.projectedAnnualSavings:.2f} more per year "
            f"than your current plan."
        )
    return "Projected to cost about the same as your current plan."


def _describe_preferences(facts: ExplanationInput) -> List[str]:
    sentences = []
    if facts.renewablePercentage >= facts.renewableEnergyPreference:
        sentences.append(
            f"{facts.renewablePercentage:.0f}% renewable energy meets your "
            f"{facts.renewableEnergyPreference:.0f}% preference."
        )
    else:
        sentences.append(
            f"{facts.renewablePercentage:.0f}% renewable energy is below your "
            f"{facts.renewableEnergyPreference:.0f}% preference."
        )
    if facts.contractTypeMatched:
        sentences.append(f"Matches your preferred {facts.contractType.value} contract type.")
    return sentences


def _describe_switch(facts: ExplanationInput) -> Optional[str]:
    if facts.switchRationale is None:
        return None
    if facts.switchRationale == SwitchRationale.NO_SAVINGS:
        return "Switching would not lower your costs."
    if facts.switchRationale == SwitchRationale.CONTRACT_ENDED:
        return "Your current contract has no remaining term, so you can switch now."
    if facts.switchRationale == SwitchRationale.BREAKEVEN_WITHIN_TERM:
        return (
            f"Savings cover your current termination fee in about "
            f"{facts.monthsToBreakeven:.1f} months, within the "
            f"{facts.remainingContractMonths} months left on your contract."
        )
    switch_date = facts.recommendedSwitchDate.isoformat() if facts.recommendedSwitchDate else "the end of your contract"
    return (
        f"Your termination fee outweighs the savings over the "
        f"{facts.remainingContractMonths} months left; consider switching on {switch_date}."
    )


def build_template_explanation(explanation_input: ExplanationInput) -> str:
    """
    Build deterministic explanation text from the structured facts only.

    Args:
        explanation_input: Facts for one recommendation.

    Returns:
        str: Explanation made of short sentences.
    """
    facts = explanation_input
    sentences = [_describe_plan(facts), _describe_savings(facts)]

    if facts.rateUncertain:
        if facts.contractType == ContractType.INDEXED and facts.indexName:
            sentences.append(f"The rate follows {facts.indexName}, so actual costs may differ.")
        else:
            sentences.append("The rate is not fixed, so actual costs may differ.")

    sentences.extend(_describe_preferences(facts))

    switch_sentence = _describe_switch(facts)
    if switch_sentence:
        sentences.append(switch_sentence)

    if facts.riskFlags:
        labels = [RISK_FLAG_LABELS.get(flag, flag.value) for flag in facts.riskFlags]
        sentences.append(f"Keep in mind: {', '.join(labels)}.")

    return " ".join(sentences)


# =============================================================================
# Generated Explanations
# =============================================================================


async def _explain_one(generator: ExplanationGenerator, explanation_input: ExplanationInput) -> str:
    return await generator.explain(explanation_input)


async def _generate_all(
    recommendations: Sequence[Recommendation],
    generator: ExplanationGenerator,
    timeout_seconds: float,
) -> list:
    """
    Run one generator call per recommendation under a shared budget.

    Returns:
        Per-recommendation results in input order; failed calls appear as
        exception instances.

    Raises:
        ExplanationDegraded: If the budget is exceeded. Outstanding calls are
            cancelled before this is raised.
    """
    calls = [_explain_one(generator, rec.explanationInput) for rec in recommendations]
    try:
        return await asyncio.wait_for(
            asyncio.gather(*calls, return_exceptions=True),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        raise ExplanationDegraded(
            f"Explanation generator timed out after {timeout_seconds:.1f}s"
        )


async def apply_explanations(
    recommendations: Sequence[Recommendation],
    generator: Optional[ExplanationGenerator],
    timeout_seconds: float = DEFAULT_EXPLANATION_TIMEOUT_SECONDS,
) -> Tuple[List[Recommendation], bool, Optional[str]]:
    """
    Replace template explanations with generated text where possible.

    Args:
        recommendations: Ranked recommendations carrying template text.
        generator: Explanation collaborator, or None to keep templates.
        timeout_seconds: Budget for all generator calls together.

    Returns:
        Tuple of (recommendations in the same order, degraded flag, reason).
    """
    recommendations = list(recommendations)
    if generator is None or not recommendations:
        return recommendations, False, None

    try:
        results = await _generate_all(recommendations, generator, timeout_seconds)
    except ExplanationDegraded as e:
        logger.warning(f"Using template explanations: {e.message}")
        return recommendations, True, e.message

    explained: List[Recommendation] = []
    failures = 0
    for rec, result in zip(recommendations, results):
        if isinstance(result, BaseException) or not isinstance(result, str) or not result.strip():
            failures += 1
            logger.warning(
                f"Explanation generator failed for plan {rec.planId}: {result!r}"
            )
            explained.append(rec)
            continue
        explained.append(rec.model_copy(update={
            "explanation": result.strip(),
            "explanationSource": ExplanationSource.GENERATED,
        }))

    if failures:
        reason = f"Explanation generator failed for {failures} of {len(recommendations)} recommendations"
        return explained, True, reason

    return explained, False, None
