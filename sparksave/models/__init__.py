"""
Package initialization file for SparkSave models.

This module exports all Pydantic schemas and enumerations from schemas.py and enums.py,
making them importable from sparksave.models directly.

Usage:
    from sparksave.models import (
        UsagePoint,
        UserPreferences,
        FixedRatePlan,
        Recommendation,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from sparksave.models.enums import (
    ContractType,
    CostSavingsPriority,
    UsageTrend,
    DataQuality,
    RiskFlagType,
    RiskSeverity,
    SwitchRationale,
    ExclusionReason,
    ExplanationSource,
    PipelineStage,
)

# =============================================================================
# Schemas
# =============================================================================

from sparksave.models.schemas import (
    # Usage
    UsagePoint,
    UsageProfile,
    # Plans
    PromotionalRate,
    EnergyPlanBase,
    FixedRatePlan,
    VariableRatePlan,
    IndexedRatePlan,
    HybridRatePlan,
    EnergyPlan,
    parse_energy_plan,
    CurrentPlan,
    # Preferences
    BudgetConstraints,
    UserPreferences,
    # Configuration
    ScoringWeights,
    RankingConfig,
    # Derived values
    CostBreakdown,
    CostProjection,
    RiskFlag,
    SwitchingAnalysis,
    ScoreBreakdown,
    PlanScore,
    ExplanationInput,
    # Output
    Recommendation,
    RecommendationResult,
    # API envelopes
    RecommendationRequest,
    RecommendationResponse,
)

__all__ = [
    # Enums
    "ContractType",
    "CostSavingsPriority",
    "UsageTrend",
    "DataQuality",
    "RiskFlagType",
    "RiskSeverity",
    "SwitchRationale",
    "ExclusionReason",
    "ExplanationSource",
    "PipelineStage",
    # Usage
    "UsagePoint",
    "UsageProfile",
    # Plans
    "PromotionalRate",
    "EnergyPlanBase",
    "FixedRatePlan",
    "VariableRatePlan",
    "IndexedRatePlan",
    "HybridRatePlan",
    "EnergyPlan",
    "parse_energy_plan",
    "CurrentPlan",
    # Preferences
    "BudgetConstraints",
    "UserPreferences",
    # Configuration
    "ScoringWeights",
    "RankingConfig",
    # Derived values
    "CostBreakdown",
    "CostProjection",
    "RiskFlag",
    "SwitchingAnalysis",
    "ScoreBreakdown",
    "PlanScore",
    "ExplanationInput",
    # Output
    "Recommendation",
    "RecommendationResult",
    # API envelopes
    "RecommendationRequest",
    "RecommendationResponse",
]
