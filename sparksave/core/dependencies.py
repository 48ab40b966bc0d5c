"""
FastAPI dependency injection module for the SparkSave recommendation service.

Endpoint handlers never read configuration or construct collaborators themselves.
They declare these dependencies instead, which keeps the engine free of ambient
state and lets tests swap any of them through `app.dependency_overrides`.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_ranking_config: Converts Settings into the engine's RankingConfig
- get_explanation_generator: Returns the explanation collaborator (None by default)
- SettingsDep / RankingConfigDep / ExplanationGeneratorDep: Annotated aliases

Usage Examples:
    @router.post("/recommendations")
    async def create_recommendations(
        request: RecommendationRequest,
        config: RankingConfigDep,
        generator: ExplanationGeneratorDep,
    ) -> RecommendationResponse:
        ...

    # In tests
    app.dependency_overrides[get_explanation_generator] = lambda: FakeGenerator()
"""

from typing import Annotated, Optional

from fastapi import Depends

from sparksave.core.config import Settings, get_settings
from sparksave.models.schemas import RankingConfig
from sparksave.services.explanation import ExplanationGenerator


# =============================================================================
# Settings Dependency
# =============================================================================


def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Returns:
        Settings: The cached Settings instance with all configuration values.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# =============================================================================
# Engine Configuration Dependency
# =============================================================================


def get_ranking_config(settings: SettingsDep) -> RankingConfig:
    """Build the explicit engine configuration for one request."""
    return settings.ranking_config()


RankingConfigDep = Annotated[RankingConfig, Depends(get_ranking_config)]


# =============================================================================
# Explanation Generator Dependency
# =============================================================================


def get_explanation_generator() -> Optional[ExplanationGenerator]:
    """
    Return the explanation collaborator used to phrase recommendations.

    No generator is wired by default, so every recommendation carries the
    deterministic template explanation. Deployments that have a language
    model client override this dependency.
    """
    return None


ExplanationGeneratorDep = Annotated[
    Optional[ExplanationGenerator], Depends(get_explanation_generator)
]
