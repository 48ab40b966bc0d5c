"""
SparkSave Services Module

Business logic of the recommendation engine. Each service is stateless and
testable in isolation; the ranking service composes them.

Services:
- usage_profile: Monthly usage normalization, trend and data quality grading
- cost_projection: Annual/monthly cost projection of a plan
- preference_scoring: Hard filters, suitability score and tie-break ordering
- risk_assessment: Rule-based risk flags and risk score
- switching: Termination fee breakeven and switch timing
- ranking: Pipeline orchestration and the asynchronous RecommendationEngine
- explanation: Template explanations and the bounded explanation generator call
"""

# =============================================================================
# Usage Profile Service Exports
# =============================================================================

from sparksave.services.usage_profile import build_usage_profile

# =============================================================================
# Cost Projection Service Exports
# =============================================================================

from sparksave.services.cost_projection import project_cost, project_current_plan_cost

# =============================================================================
# Preference Scoring Service Exports
# =============================================================================

from sparksave.services.preference_scoring import (
    apply_hard_filters,
    score_plan,
    rank_scored_plans,
)

# =============================================================================
# Risk Assessment Service Exports
# =============================================================================

from sparksave.services.risk_assessment import (
    assess_risks,
    calculate_risk_score,
    RISK_SCORE_WEIGHTS,
)

# =============================================================================
# Switching Service Exports
# =============================================================================

from sparksave.services.switching import analyze_switch, remaining_contract_months

# =============================================================================
# Explanation Service Exports
# =============================================================================

from sparksave.services.explanation import (
    ExplanationGenerator,
    apply_explanations,
    build_template_explanation,
)

# =============================================================================
# Ranking Service Exports
# =============================================================================

from sparksave.services.ranking import generate_recommendations, RecommendationEngine


__all__ = [
    # Usage profile
    "build_usage_profile",
    # Cost projection
    "project_cost",
    "project_current_plan_cost",
    # Preference scoring
    "apply_hard_filters",
    "score_plan",
    "rank_scored_plans",
    # Risk assessment
    "assess_risks",
    "calculate_risk_score",
    "RISK_SCORE_WEIGHTS",
    # Switching
    "analyze_switch",
    "remaining_contract_months",
    # Explanation
    "ExplanationGenerator",
    "apply_explanations",
    "build_template_explanation",
    # Ranking
    "generate_recommendations",
    "RecommendationEngine",
]
