"""
Settings and environment management module for the SparkSave recommendation service.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development
- Singleton pattern via @lru_cache for efficient access
- Scoring weights and risk thresholds kept externally configurable

Environment Variables (all optional):
- TOP_N: Number of recommendations returned per request (default: 3)
- EXPLANATION_TIMEOUT_SECONDS: Budget for the explanation generator (default: 2.0)
- COST_WEIGHT_LOW / COST_WEIGHT_MEDIUM / COST_WEIGHT_HIGH: Cost sub-score weight
  per cost-savings priority (defaults: 0.2 / 0.4 / 0.6)
- RENEWABLE_WEIGHT: Renewable match sub-score weight (default: 0.2)
- FLEXIBILITY_WEIGHT: Contract flexibility sub-score weight (default: 0.1)
- CONTRACT_TYPE_BONUS: Bonus for matching the preferred contract type (default: 0.1)
- TERMINATION_FEE_PENALTY: Penalty for fees above tolerance (default: 0.1)
- HIGH_TERMINATION_FEE_MULTIPLIER: Tolerance multiple that raises the
  high_termination_fee flag (default: 1.5)
- LOW_SUPPLIER_RATING_THRESHOLD: Rating below which low_supplier_rating is raised (default: 3.0)
- TREND_DEAD_ZONE: Relative slope below which usage is "stable" (default: 0.02)
- MAX_PROMO_MONTHS: Cap on promotional months inside a projection year (default: 12)
- SCORING_WORKERS: Worker threads used to score candidates (default: 1)

The engine itself never reads these values. The API layer converts them into an
explicit RankingConfig via Settings.ranking_config() and hands that to the engine.

Usage:
    from sparksave.core.config import get_settings

    settings = get_settings()
    config = settings.ranking_config()
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from sparksave.models.schemas import RankingConfig, ScoringWeights


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        top_n: Number of recommendations returned per request.
        explanation_timeout_seconds: Soft budget for the explanation collaborator.
        cost_weight_low: Cost sub-score weight for a low cost-savings priority.
        cost_weight_medium: Cost sub-score weight for a medium cost-savings priority.
        cost_weight_high: Cost sub-score weight for a high cost-savings priority.
        renewable_weight: Weight of the renewable match sub-score.
        flexibility_weight: Weight of the contract flexibility sub-score.
        contract_type_bonus: Flat bonus when the plan matches the preferred contract type.
        termination_fee_penalty: Flat penalty when the termination fee exceeds tolerance.
        high_termination_fee_multiplier: Multiple of the fee tolerance that raises a risk flag.
        low_supplier_rating_threshold: Supplier rating below which a risk flag is raised.
        trend_dead_zone: Slope (as a fraction of average usage) treated as a flat trend.
        max_promo_months: Maximum promotional months counted inside one projected year.
        scoring_workers: Number of worker threads used to score candidate plans.
        score_tie_tolerance: Score difference treated as a tie when ranking.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Request Shape
    # =========================================================================

    top_n: int = 3

    # Soft budget for the whole explanation step, in seconds
    explanation_timeout_seconds: float = 2.0

    # =========================================================================
    # Scoring Weights
    # Reference baseline; the weights behind the priority labels were never
    # pinned down numerically, so every value here is overridable.
    # =========================================================================

    cost_weight_low: float = 0.2
    cost_weight_medium: float = 0.4
    cost_weight_high: float = 0.6
    renewable_weight: float = 0.2
    flexibility_weight: float = 0.1
    contract_type_bonus: float = 0.1
    termination_fee_penalty: float = 0.1

    # =========================================================================
    # Risk Thresholds
    # =========================================================================

    high_termination_fee_multiplier: float = 1.5
    low_supplier_rating_threshold: float = 3.0

    # =========================================================================
    # Profiling / Projection / Ranking
    # =========================================================================

    trend_dead_zone: float = 0.02
    max_promo_months: int = 12
    scoring_workers: int = 1
    score_tie_tolerance: float = 1e-6

    def scoring_weights(self) -> ScoringWeights:
        """Build the scoring weight set from the configured values."""
        return ScoringWeights(
            cost_low=self.cost_weight_low,
            cost_medium=self.cost_weight_medium,
            cost_high=self.cost_weight_high,
            renewable=self.renewable_weight,
            flexibility=self.flexibility_weight,
            contract_type_bonus=self.contract_type_bonus,
            termination_fee_penalty=self.termination_fee_penalty,
        )

    def ranking_config(self) -> RankingConfig:
        """
        Convert settings into the explicit configuration consumed by the engine.

        Returns:
            RankingConfig: Immutable engine configuration.
        """
        return RankingConfig(
            top_n=self.top_n,
            weights=self.scoring_weights(),
            high_termination_fee_multiplier=self.high_termination_fee_multiplier,
            low_supplier_rating_threshold=self.low_supplier_rating_threshold,
            trend_dead_zone=self.trend_dead_zone,
            max_promo_months=self.max_promo_months,
            scoring_workers=self.scoring_workers,
            score_tie_tolerance=self.score_tie_tolerance,
            explanation_timeout_seconds=self.explanation_timeout_seconds,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value
            (e.g., TOP_N=abc).

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
