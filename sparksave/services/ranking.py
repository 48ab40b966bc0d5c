"""
Recommendation Ranking Service

Orchestrates the recommendation pipeline over a candidate plan set:

    validated -> profile_built -> filtered -> scored -> ranked -> annotated -> completed

1. Validate the request (preferences, candidates, top_n, unique plan ids)
2. Build the usage profile once
3. Project every candidate and apply the hard filters
4. Score the remaining candidates
5. Sort with the deterministic tie-break and keep the top N
6. Annotate each survivor with risk flags, switching analysis and a template
   explanation

The pipeline is linear and synchronous; any fatal error aborts the request.
RecommendationEngine wraps it with the asynchronous explanation step.

Current annual cost used for savings and the cost sub-score:
- the projected cost of the current plan when one is given
- otherwise the annualized billed cost observed in the usage points
- otherwise 0 (unknown; savings are not meaningful and cost does not score)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as SchemaValidationError

from sparksave.core.errors import (
    InsufficientDataError,
    InvalidPlanError,
    NoEligiblePlansError,
    ValidationError,
)
from sparksave.models.enums import ContractType, ExclusionReason, ExplanationSource, PipelineStage
from sparksave.models.schemas import (
    CostProjection,
    CurrentPlan,
    EnergyPlanBase,
    ExplanationInput,
    PlanScore,
    RankingConfig,
    Recommendation,
    RecommendationResult,
    SwitchingAnalysis,
    UsagePoint,
    UsageProfile,
    UserPreferences,
    parse_energy_plan,
)
from sparksave.services.cost_projection import project_cost, project_current_plan_cost
from sparksave.services.explanation import (
    ExplanationGenerator,
    apply_explanations,
    build_template_explanation,
)
from sparksave.services.preference_scoring import (
    ScoredPlan,
    apply_hard_filters,
    rank_scored_plans,
    score_plan,
)
from sparksave.services.risk_assessment import assess_risks, calculate_risk_score
from sparksave.services.switching import analyze_switch
from sparksave.services.usage_profile import build_usage_profile


logger = logging.getLogger(__name__)

PlanRecord = Union[EnergyPlanBase, Dict[str, Any]]


# =============================================================================
# Stages
# =============================================================================


def _record_plan_id(record: PlanRecord, position: int) -> str:
    if isinstance(record, EnergyPlanBase):
        return record.planId
    plan_id = record.get("planId")
    if isinstance(plan_id, str) and plan_id:
        return plan_id
    return f"candidate-{position}"


def _validate_request(
    preferences: Optional[UserPreferences],
    candidate_plans: Sequence[PlanRecord],
    top_n: int,
) -> None:
    if preferences is None:
        raise ValidationError("preferences are required")
    if not candidate_plans:
        raise ValidationError("at least one candidate plan is required")
    if top_n < 1:
        raise ValidationError(f"top_n must be at least 1, got {top_n}")

    seen = set()
    duplicates = []
    for position, record in enumerate(candidate_plans):
        plan_id = _record_plan_id(record, position)
        if plan_id in seen:
            duplicates.append(plan_id)
        seen.add(plan_id)
    if duplicates:
        raise ValidationError(f"duplicate planId values: {sorted(set(duplicates))}")


def _parse_plan(record: PlanRecord, plan_id: str) -> EnergyPlanBase:
    """
    Validate one catalog record into its plan variant.

    Raises:
        InvalidPlanError: If the record does not match any plan variant.
    """
    if isinstance(record, EnergyPlanBase):
        return record
    try:
        return parse_energy_plan(record)
    except SchemaValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise InvalidPlanError(plan_id, problems) from e


def _parse_candidates(
    candidate_plans: Sequence[PlanRecord],
) -> Tuple[List[EnergyPlanBase], Dict[str, str]]:
    plans: List[EnergyPlanBase] = []
    exclusions: Dict[str, str] = {}

    for position, record in enumerate(candidate_plans):
        plan_id = _record_plan_id(record, position)
        try:
            plans.append(_parse_plan(record, plan_id))
        except InvalidPlanError as e:
            logger.warning(f"Excluding malformed plan record: {e.message}")
            exclusions[plan_id] = ExclusionReason.INVALID_PLAN.value

    return plans, exclusions


def _resolve_current_annual_cost(
    current_projection: Optional[CostProjection],
    profile: UsageProfile,
) -> float:
    if current_projection is not None:
        return current_projection.annualCost
    if profile.observedAnnualCost is not None:
        return profile.observedAnnualCost
    return 0.0


def _filter_candidates(
    candidate_plans: Sequence[EnergyPlanBase],
    profile: UsageProfile,
    preferences: UserPreferences,
    config: RankingConfig,
    exclusions: Optional[Dict[str, str]] = None,
) -> Dict[str, CostProjection]:
    """
    Project every candidate and drop the ones that fail a hard filter.

    Args:
        exclusions: Plans already excluded upstream, keyed by planId.

    Returns:
        Mapping of planId to projection for eligible plans, in candidate order.

    Raises:
        NoEligiblePlansError: If no candidate survives.
    """
    eligible: Dict[str, CostProjection] = {}
    exclusions = dict(exclusions or {})

    for plan in candidate_plans:
        try:
            projection = project_cost(plan, profile, config.max_promo_months)
        except InvalidPlanError as e:
            logger.warning(f"Excluding invalid plan: {e.message}")
            exclusions[plan.planId] = ExclusionReason.INVALID_PLAN.value
            continue

        reason = apply_hard_filters(plan, preferences, projection)
        if reason is not None:
            logger.debug(f"Plan {plan.planId} excluded: {reason.value}")
            exclusions[plan.planId] = reason.value
            continue

        eligible[plan.planId] = projection

    if not eligible:
        logger.warning(f"All {len(exclusions)} candidate plans excluded: {exclusions}")
        raise NoEligiblePlansError(exclusions)

    return eligible


def _score_candidates(
    plans: List[EnergyPlanBase],
    projections: Dict[str, CostProjection],
    profile: UsageProfile,
    preferences: UserPreferences,
    current_annual_cost: float,
    config: RankingConfig,
) -> List[ScoredPlan]:
    def _score(plan: EnergyPlanBase) -> ScoredPlan:
        return plan, score_plan(
            plan,
            profile,
            preferences,
            projections[plan.planId],
            current_annual_cost,
            config.weights,
        )

    if config.scoring_workers > 1 and len(plans) > 1:
        with ThreadPoolExecutor(max_workers=config.scoring_workers) as executor:
            return list(executor.map(_score, plans))
    return [_score(plan) for plan in plans]


def _build_explanation_input(
    rank: int,
    plan: EnergyPlanBase,
    plan_score: PlanScore,
    projection: CostProjection,
    profile: UsageProfile,
    preferences: UserPreferences,
    current_annual_cost: float,
    risk_flags: list,
    risk_score: int,
    switching: Optional[SwitchingAnalysis],
) -> ExplanationInput:
    contract_type = ContractType(plan.contractType)
    return ExplanationInput(
        planId=plan.planId,
        rank=rank,
        supplierName=plan.supplierName,
        planName=plan.planName,
        contractType=contract_type,
        ratePerKwh=plan.ratePerKwh,
        contractLengthMonths=plan.contractLengthMonths,
        earlyTerminationFee=plan.earlyTerminationFee,
        renewablePercentage=plan.renewablePercentage,
        supplierRating=plan.supplierRating,
        promotionalRate=plan.promotionalRate,
        indexName=getattr(plan, "indexName", None),
        annualCost=projection.annualCost,
        monthlyCost=projection.monthlyCost,
        currentAnnualCost=current_annual_cost,
        savingsKnown=current_annual_cost > 0,
        projectedAnnualSavings=plan_score.projectedAnnualSavings,
        projectedMonthlySavings=plan_score.projectedMonthlySavings,
        percentageSavings=plan_score.percentageSavings,
        rateUncertain=projection.rateUncertain,
        score=plan_score.score,
        riskFlags=[flag.type for flag in risk_flags],
        riskScore=risk_score,
        averageMonthlyKwh=profile.averageMonthlyKwh,
        annualKwh=profile.annualKwh,
        peakMonth=profile.peakMonth,
        usageTrend=profile.usageTrend,
        dataQuality=profile.dataQuality,
        costSavingsPriority=preferences.costSavingsPriority,
        renewableEnergyPreference=preferences.renewableEnergyPreference,
        contractTypeMatched=(
            preferences.contractTypePreference is not None
            and contract_type == preferences.contractTypePreference
        ),
        switchRationale=switching.rationale if switching else None,
        recommendSwitch=switching.recommendSwitch if switching else None,
        monthsToBreakeven=switching.monthsToBreakeven if switching else None,
        remainingContractMonths=switching.remainingContractMonths if switching else None,
        recommendedSwitchDate=switching.recommendedSwitchDate if switching else None,
    )


# =============================================================================
# Pipeline
# =============================================================================


def _run_pipeline(
    usage_points: Sequence[UsagePoint],
    preferences: Optional[UserPreferences],
    candidate_plans: Sequence[PlanRecord],
    as_of_date: date,
    current_plan: Optional[CurrentPlan],
    top_n: Optional[int],
    config: Optional[RankingConfig],
) -> RecommendationResult:
    config = config or RankingConfig()
    top_n = config.top_n if top_n is None else top_n

    _validate_request(preferences, candidate_plans, top_n)
    logger.debug(f"Stage {PipelineStage.VALIDATED.value}: {len(candidate_plans)} candidates")

    profile = build_usage_profile(usage_points, as_of_date, config.trend_dead_zone)
    if profile.monthsObserved == 0 or profile.annualKwh <= 0:
        raise InsufficientDataError(
            f"No usable consumption on or before {as_of_date}: "
            f"{profile.monthsObserved} months observed"
        )
    logger.debug(
        f"Stage {PipelineStage.PROFILE_BUILT.value}: {profile.monthsObserved} months, "
        f"quality={profile.dataQuality.value}"
    )

    current_projection = (
        project_current_plan_cost(current_plan, profile) if current_plan is not None else None
    )
    current_annual_cost = _resolve_current_annual_cost(current_projection, profile)

    plans, exclusions = _parse_candidates(candidate_plans)
    projections = _filter_candidates(plans, profile, preferences, config, exclusions)
    eligible_plans = [plan for plan in plans if plan.planId in projections]
    logger.debug(f"Stage {PipelineStage.FILTERED.value}: {len(eligible_plans)} eligible")

    scored = _score_candidates(
        eligible_plans, projections, profile, preferences, current_annual_cost, config
    )
    logger.debug(f"Stage {PipelineStage.SCORED.value}: {len(scored)} scored")

    ranked = rank_scored_plans(scored, config.score_tie_tolerance)[:top_n]
    logger.debug(f"Stage {PipelineStage.RANKED.value}: keeping {len(ranked)}")

    recommendations: List[Recommendation] = []
    for rank, (plan, plan_score) in enumerate(ranked, start=1):
        projection = projections[plan.planId]
        risk_flags = assess_risks(plan, profile, preferences, config)
        risk_score = calculate_risk_score(risk_flags)

        switching = None
        if current_plan is not None:
            switching = analyze_switch(projection, current_projection, current_plan, as_of_date)

        explanation_input = _build_explanation_input(
            rank,
            plan,
            plan_score,
            projection,
            profile,
            preferences,
            current_annual_cost,
            risk_flags,
            risk_score,
            switching,
        )

        recommendations.append(Recommendation(
            planId=plan.planId,
            rank=rank,
            score=plan_score.score,
            projectedAnnualSavings=plan_score.projectedAnnualSavings,
            projectedMonthlySavings=plan_score.projectedMonthlySavings,
            percentageSavings=plan_score.percentageSavings,
            costProjection=projection,
            riskFlags=risk_flags,
            riskScore=risk_score,
            switchingAnalysis=switching,
            explanationInput=explanation_input,
            explanation=build_template_explanation(explanation_input),
            explanationSource=ExplanationSource.TEMPLATE,
        ))
    logger.debug(f"Stage {PipelineStage.ANNOTATED.value}")

    logger.info(
        f"Generated {len(recommendations)} recommendations from "
        f"{len(candidate_plans)} candidates ({len(eligible_plans)} eligible)"
    )
    return RecommendationResult(
        recommendations=recommendations,
        usageProfile=profile,
        currentAnnualCost=current_annual_cost,
    )


def generate_recommendations(
    usage_points: Sequence[UsagePoint],
    preferences: Optional[UserPreferences],
    candidate_plans: Sequence[PlanRecord],
    as_of_date: date,
    current_plan: Optional[CurrentPlan] = None,
    top_n: Optional[int] = None,
    config: Optional[RankingConfig] = None,
) -> List[Recommendation]:
    """
    Rank candidate plans for a customer.

    Args:
        usage_points: Historical usage points, any order.
        preferences: Customer preferences (required).
        candidate_plans: Plans to evaluate (at least one, unique planIds), as
            plan models or raw catalog records. Malformed records are excluded
            individually as invalid plans.
        as_of_date: Evaluation date.
        current_plan: Customer's current plan; enables switching analysis.
        top_n: Maximum recommendations returned; defaults to config.top_n.
        config: Engine configuration; the default baseline when omitted.

    Returns:
        List[Recommendation]: At most top_n recommendations, best first, each
        with a template explanation.

    Raises:
        ValidationError: If the request is malformed.
        InsufficientDataError: If there is no usage to project against.
        NoEligiblePlansError: If every candidate was excluded.
    """
    result = _run_pipeline(
        usage_points, preferences, candidate_plans, as_of_date, current_plan, top_n, config
    )
    return result.recommendations


# =============================================================================
# Engine
# =============================================================================


class RecommendationEngine:
    """
    Asynchronous entry point combining the ranking pipeline with explanations.

    Collaborators are passed in; the engine never reads the environment.

    Example:
        engine = RecommendationEngine(settings.ranking_config(), generator)
        result = await engine.recommend(points, preferences, plans, date.today())
    """

    def __init__(
        self,
        config: Optional[RankingConfig] = None,
        explanation_generator: Optional[ExplanationGenerator] = None,
    ):
        self.config = config or RankingConfig()
        self.explanation_generator = explanation_generator

    async def recommend(
        self,
        usage_points: Sequence[UsagePoint],
        preferences: Optional[UserPreferences],
        candidate_plans: Sequence[PlanRecord],
        as_of_date: date,
        current_plan: Optional[CurrentPlan] = None,
        top_n: Optional[int] = None,
    ) -> RecommendationResult:
        """
        Run the full pipeline and attach explanations.

        Raises the same fatal errors as generate_recommendations. Explanation
        failures are reported through explanationDegraded instead.
        """
        result = _run_pipeline(
            usage_points,
            preferences,
            candidate_plans,
            as_of_date,
            current_plan,
            top_n,
            self.config,
        )

        recommendations, degraded, reason = await apply_explanations(
            result.recommendations,
            self.explanation_generator,
            self.config.explanation_timeout_seconds,
        )
        logger.debug(f"Stage {PipelineStage.COMPLETED.value}: degraded={degraded}")

        return result.model_copy(update={
            "recommendations": recommendations,
            "explanationDegraded": degraded,
            "degradationReason": reason,
        })
