"""
Recommendation Ranking Test Module

Tests for sparksave/services/ranking.py covering:
- Request validation and insufficient data
- Hard filtering, invalid plan exclusion and the no-matching-plans error
- Ranking properties (top N, ordering, determinism, rating floor)
- Current annual cost resolution and switching annotation
- Acceptance scenarios A, C, D and E
- The asynchronous RecommendationEngine
"""

import random
from datetime import date

import pytest

from sparksave.core.errors import (
    InsufficientDataError,
    NoEligiblePlansError,
    ValidationError,
)
from sparksave.models import (
    BudgetConstraints,
    CurrentPlan,
    DataQuality,
    ExplanationSource,
    RankingConfig,
    RiskFlagType,
    SwitchRationale,
)
from sparksave.services.ranking import RecommendationEngine, generate_recommendations


class TestRequestValidation:

    def test_missing_preferences(self, flat_usage_points, candidate_plans, as_of_date):
        with pytest.raises(ValidationError):
            generate_recommendations(flat_usage_points, None, candidate_plans, as_of_date)

    def test_empty_candidates(self, flat_usage_points, preferences, as_of_date):
        with pytest.raises(ValidationError):
            generate_recommendations(flat_usage_points, preferences, [], as_of_date)

    @pytest.mark.parametrize("top_n", [0, -1])
    def test_bad_top_n(self, flat_usage_points, preferences, candidate_plans, as_of_date, top_n):
        with pytest.raises(ValidationError):
            generate_recommendations(
                flat_usage_points, preferences, candidate_plans, as_of_date, top_n=top_n
            )

    def test_duplicate_plan_ids(self, flat_usage_points, preferences, make_plan, as_of_date):
        plans = [make_plan(planId="dup"), make_plan(planId="dup", ratePerKwh=0.10)]

        with pytest.raises(ValidationError) as exc_info:
            generate_recommendations(flat_usage_points, preferences, plans, as_of_date)

        assert "dup" in exc_info.value.message


class TestInsufficientData:

    def test_no_usage(self, preferences, candidate_plans, as_of_date):
        with pytest.raises(InsufficientDataError):
            generate_recommendations([], preferences, candidate_plans, as_of_date)

    def test_all_usage_after_as_of_date(self, flat_usage_points, preferences, candidate_plans):
        with pytest.raises(InsufficientDataError):
            generate_recommendations(flat_usage_points, preferences, candidate_plans, date(2024, 12, 31))

    def test_zero_usage(self, make_usage_points, preferences, candidate_plans, as_of_date):
        with pytest.raises(InsufficientDataError):
            generate_recommendations(
                make_usage_points([0.0] * 12), preferences, candidate_plans, as_of_date
            )


class TestFiltering:

    def test_invalid_plan_excluded_others_kept(self, flat_usage_points, preferences, make_plan, as_of_date):
        plans = [make_plan(planId="broken", ratePerKwh=0.0), make_plan(planId="ok")]

        recs = generate_recommendations(flat_usage_points, preferences, plans, as_of_date)

        assert [rec.planId for rec in recs] == ["ok"]

    def test_all_invalid_raises_no_matching_plans(self, flat_usage_points, preferences, make_plan, as_of_date):
        plans = [make_plan(planId="a", ratePerKwh=-1.0), make_plan(planId="b", ratePerKwh=0.0)]

        with pytest.raises(NoEligiblePlansError) as exc_info:
            generate_recommendations(flat_usage_points, preferences, plans, as_of_date)

        assert exc_info.value.exclusions == {"a": "invalid_plan", "b": "invalid_plan"}

    def test_malformed_records_excluded_individually(self, flat_usage_points, preferences, as_of_date):
        good = {
            "planId": "good",
            "supplierName": "Lone Star Power",
            "contractType": "fixed",
            "ratePerKwh": 0.12,
            "contractLengthMonths": 12,
            "renewablePercentage": 50,
            "supplierRating": 4.0,
        }
        records = [
            good,
            {**good, "planId": "rating-out-of-range", "supplierRating": 7.0},
            {**good, "planId": "negative-fee", "monthlyFee": -5.0},
            {**good, "planId": "unknown-type", "contractType": "prepaid"},
        ]

        recs = generate_recommendations(flat_usage_points, preferences, records, as_of_date)

        assert [rec.planId for rec in recs] == ["good"]

    def test_all_malformed_records_raise_no_matching_plans(
        self, flat_usage_points, preferences, as_of_date
    ):
        records = [
            {"planId": "no-rate", "supplierName": "Flex Energy", "contractType": "variable"},
            {"supplierName": "Nameless Power", "contractType": "fixed", "ratePerKwh": 0.1},
        ]

        with pytest.raises(NoEligiblePlansError) as exc_info:
            generate_recommendations(flat_usage_points, preferences, records, as_of_date)

        assert exc_info.value.exclusions == {
            "no-rate": "invalid_plan",
            "candidate-1": "invalid_plan",
        }

    def test_duplicate_ids_in_raw_records(self, flat_usage_points, preferences, as_of_date):
        record = {"planId": "dup", "supplierName": "Lone Star Power", "contractType": "fixed",
                  "ratePerKwh": 0.12, "supplierRating": 4.0}

        with pytest.raises(ValidationError):
            generate_recommendations(flat_usage_points, preferences, [record, dict(record)], as_of_date)

    def test_budget_excludes_expensive_plans(self, flat_usage_points, preferences, candidate_plans, as_of_date):
        prefs = preferences.model_copy(
            update={"budgetConstraints": BudgetConstraints(maxMonthlyCost=65.0)}
        )

        recs = generate_recommendations(flat_usage_points, prefs, candidate_plans, as_of_date)

        # Only the $0.10/kWh and $0.105/kWh plans fit under $65/month at 600 kWh
        assert {rec.planId for rec in recs} == {"indexed-hub", "fixed-cheap"}
        assert all(rec.costProjection.monthlyCost <= 65.0 for rec in recs)


class TestRankingProperties:

    @pytest.mark.parametrize("top_n", [1, 2, 3, 5, 10])
    def test_at_most_top_n(self, flat_usage_points, preferences, candidate_plans, as_of_date, top_n):
        recs = generate_recommendations(
            flat_usage_points, preferences, candidate_plans, as_of_date, top_n=top_n
        )

        assert len(recs) == min(top_n, len(candidate_plans))
        assert [rec.rank for rec in recs] == list(range(1, len(recs) + 1))

    def test_default_top_n_from_config(self, flat_usage_points, preferences, candidate_plans, as_of_date):
        recs = generate_recommendations(
            flat_usage_points, preferences, candidate_plans, as_of_date,
            config=RankingConfig(top_n=2),
        )
        assert len(recs) == 2

        assert len(generate_recommendations(
            flat_usage_points, preferences, candidate_plans, as_of_date
        )) == 3

    def test_scores_non_increasing(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        recs = generate_recommendations(
            billed_usage_points, preferences, candidate_plans, as_of_date, top_n=10
        )

        scores = [rec.score for rec in recs]
        for higher, lower in zip(scores, scores[1:]):
            assert higher >= lower - 1e-6

    def test_expected_order(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        recs = generate_recommendations(billed_usage_points, preferences, candidate_plans, as_of_date)

        assert [rec.planId for rec in recs] == ["indexed-hub", "variable-flex", "fixed-green"]

    def test_deterministic_under_shuffle(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        baseline = generate_recommendations(
            billed_usage_points, preferences, candidate_plans, as_of_date, top_n=10
        )

        for seed in range(5):
            shuffled = list(candidate_plans)
            random.Random(seed).shuffle(shuffled)
            recs = generate_recommendations(
                billed_usage_points, preferences, shuffled, as_of_date, top_n=10
            )
            assert recs == baseline

    def test_tied_plans_break_on_rate(self, flat_usage_points, preferences, make_plan, as_of_date):
        # No current cost: cost does not score, so identical terms tie on score
        plans = [
            make_plan(planId="b", ratePerKwh=0.12),
            make_plan(planId="a", ratePerKwh=0.125),
            make_plan(planId="c", ratePerKwh=0.11),
        ]

        recs = generate_recommendations(flat_usage_points, preferences, plans, as_of_date)

        assert [rec.planId for rec in recs] == ["c", "b", "a"]

    @pytest.mark.parametrize("floor", [0.0, 3.3, 3.6, 4.0, 4.4])
    def test_rating_floor_respected(self, flat_usage_points, preferences, candidate_plans, as_of_date, floor):
        prefs = preferences.model_copy(update={"supplierRatingPreference": floor})
        by_id = {plan.planId: plan for plan in candidate_plans}

        recs = generate_recommendations(flat_usage_points, prefs, candidate_plans, as_of_date, top_n=10)

        assert recs
        assert all(by_id[rec.planId].supplierRating >= floor for rec in recs)

    def test_threaded_scoring_matches_sequential(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        sequential = generate_recommendations(
            billed_usage_points, preferences, candidate_plans, as_of_date, top_n=10
        )
        threaded = generate_recommendations(
            billed_usage_points, preferences, candidate_plans, as_of_date, top_n=10,
            config=RankingConfig(scoring_workers=4),
        )
        assert threaded == sequential


class TestAnnotations:

    def test_risk_flags_and_score_attached(self, flat_usage_points, preferences, candidate_plans, as_of_date):
        recs = generate_recommendations(
            flat_usage_points, preferences, candidate_plans, as_of_date, top_n=10
        )
        by_id = {rec.planId: rec for rec in recs}

        variable = by_id["variable-flex"]
        assert RiskFlagType.VARIABLE_RATE_EXPOSURE in [f.type for f in variable.riskFlags]
        assert variable.riskScore == 30

        assert by_id["fixed-green"].riskFlags == []
        assert by_id["fixed-green"].riskScore == 0

    def test_switching_only_with_current_plan(
        self, flat_usage_points, preferences, candidate_plans, as_of_date, current_plan
    ):
        without = generate_recommendations(flat_usage_points, preferences, candidate_plans, as_of_date)
        with_current = generate_recommendations(
            flat_usage_points, preferences, candidate_plans, as_of_date, current_plan=current_plan
        )

        assert all(rec.switchingAnalysis is None for rec in without)
        assert all(rec.switchingAnalysis is not None for rec in with_current)

    def test_no_switch_without_savings(self, flat_usage_points, preferences, make_plan, as_of_date):
        current = CurrentPlan(ratePerKwh=0.09, contractEndDate=date(2026, 12, 31), earlyTerminationFee=50.0)
        plans = [make_plan(planId=f"p{i}", ratePerKwh=0.10 + 0.01 * i) for i in range(4)]

        recs = generate_recommendations(
            flat_usage_points, preferences, plans, as_of_date, current_plan=current, top_n=10
        )

        for rec in recs:
            assert rec.switchingAnalysis.monthlySavings <= 0
            assert rec.switchingAnalysis.recommendSwitch is False
            assert rec.switchingAnalysis.rationale == SwitchRationale.NO_SAVINGS

    def test_explanation_input_facts(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        recs = generate_recommendations(billed_usage_points, preferences, candidate_plans, as_of_date)
        facts = recs[0].explanationInput

        assert facts.planId == "indexed-hub"
        assert facts.rank == 1
        assert facts.indexName == "ERCOT North Hub"
        assert facts.rateUncertain is True
        assert facts.savingsKnown is True
        assert facts.currentAnnualCost == pytest.approx(936.0)
        assert facts.riskFlags == [flag.type for flag in recs[0].riskFlags]
        assert facts.switchRationale is None

    def test_recommendations_are_frozen(self, flat_usage_points, preferences, candidate_plans, as_of_date):
        rec = generate_recommendations(flat_usage_points, preferences, candidate_plans, as_of_date)[0]

        with pytest.raises(Exception):
            rec.score = 0.0


class TestCurrentAnnualCost:

    def test_unknown_current_cost(self, flat_usage_points, preferences, make_plan, as_of_date):
        recs = generate_recommendations(flat_usage_points, preferences, [make_plan()], as_of_date)

        assert recs[0].projectedAnnualSavings == pytest.approx(-864.0)
        assert recs[0].percentageSavings == 0.0
        assert recs[0].explanationInput.savingsKnown is False

    def test_observed_billed_cost_used(self, billed_usage_points, preferences, make_plan, as_of_date):
        recs = generate_recommendations(billed_usage_points, preferences, [make_plan()], as_of_date)

        assert recs[0].projectedAnnualSavings == pytest.approx(72.0)

    def test_current_plan_takes_precedence(self, billed_usage_points, preferences, make_plan, as_of_date):
        current = CurrentPlan(ratePerKwh=0.15)

        recs = generate_recommendations(
            billed_usage_points, preferences, [make_plan()], as_of_date, current_plan=current
        )

        assert recs[0].projectedAnnualSavings == pytest.approx(0.15 * 7200 - 864.0)


@pytest.mark.scenario
class TestAcceptanceScenarios:

    def test_scenario_a_savings(self, flat_usage_points, preferences, make_plan, as_of_date):
        current = CurrentPlan(ratePerKwh=0.13)
        plan = make_plan(planId="fixed-12", ratePerKwh=0.12)

        recs = generate_recommendations(
            flat_usage_points, preferences, [plan], as_of_date, current_plan=current
        )

        assert recs[0].costProjection.annualCost == pytest.approx(864.0)
        assert recs[0].projectedAnnualSavings == pytest.approx(72.0)
        assert recs[0].projectedMonthlySavings == pytest.approx(6.0)

    def test_scenario_c_insufficient_history(self, sparse_usage_points, preferences, candidate_plans, as_of_date):
        engine_recs = generate_recommendations(
            sparse_usage_points, preferences, candidate_plans, as_of_date
        )

        assert engine_recs
        for rec in engine_recs:
            assert rec.explanationInput.dataQuality == DataQuality.INSUFFICIENT
            assert RiskFlagType.INSUFFICIENT_USAGE_DATA in [f.type for f in rec.riskFlags]

    def test_scenario_d_no_matching_plans(self, flat_usage_points, preferences, make_plan, as_of_date):
        prefs = preferences.model_copy(update={"supplierRatingPreference": 3.5})
        plans = [make_plan(planId=f"low-{i}", supplierRating=2.0) for i in range(3)]

        with pytest.raises(NoEligiblePlansError) as exc_info:
            generate_recommendations(flat_usage_points, prefs, plans, as_of_date)

        assert exc_info.value.code == "no_matching_plans"
        assert set(exc_info.value.exclusions.values()) == {"below_supplier_rating"}

    @pytest.mark.asyncio
    async def test_scenario_e_explanation_timeout(
        self, billed_usage_points, preferences, candidate_plans, as_of_date, slow_generator
    ):
        engine = RecommendationEngine(
            RankingConfig(explanation_timeout_seconds=0.05),
            slow_generator,
        )

        result = await engine.recommend(billed_usage_points, preferences, candidate_plans, as_of_date)

        assert len(result.recommendations) == 3
        assert result.explanationDegraded is True
        assert result.degradationReason
        for rec in result.recommendations:
            assert rec.explanation
            assert rec.explanationSource == ExplanationSource.TEMPLATE


class TestRecommendationEngine:

    @pytest.mark.asyncio
    async def test_generated_explanations(
        self, billed_usage_points, preferences, candidate_plans, as_of_date, echo_generator
    ):
        engine = RecommendationEngine(RankingConfig(), echo_generator)

        result = await engine.recommend(billed_usage_points, preferences, candidate_plans, as_of_date)

        assert result.explanationDegraded is False
        assert result.currentAnnualCost == pytest.approx(936.0)
        assert result.usageProfile.dataQuality == DataQuality.COMPLETE
        assert all(rec.explanationSource == ExplanationSource.GENERATED for rec in result.recommendations)

    @pytest.mark.asyncio
    async def test_without_generator(self, billed_usage_points, preferences, candidate_plans, as_of_date):
        result = await RecommendationEngine().recommend(
            billed_usage_points, preferences, candidate_plans, as_of_date
        )

        assert result.explanationDegraded is False
        assert result.degradationReason is None
        assert result.recommendations == generate_recommendations(
            billed_usage_points, preferences, candidate_plans, as_of_date
        )

    @pytest.mark.asyncio
    async def test_fatal_errors_propagate(self, billed_usage_points, preferences, as_of_date):
        with pytest.raises(ValidationError):
            await RecommendationEngine().recommend(billed_usage_points, preferences, [], as_of_date)
