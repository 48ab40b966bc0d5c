"""
FastAPI router module for plan recommendations.

Thin HTTP surface over the recommendation engine. The handler builds a
RecommendationEngine from injected dependencies, runs it, and maps engine
errors onto HTTP status codes.

Key Endpoints:
- POST /recommendations - Rank candidate plans for one customer request

Error mapping (detail = {"code": ..., "message": ...}):
- ValidationError -> 400
- InsufficientDataError -> 422
- NoEligiblePlansError -> 422 (code "no_matching_plans", with per-plan exclusions)
- anything unexpected -> 500

Dependencies:
- sparksave/core/dependencies.py: RankingConfigDep, ExplanationGeneratorDep
- sparksave/services/ranking.py: RecommendationEngine
"""

import logging
from datetime import date

from fastapi import APIRouter, HTTPException

from sparksave.core.dependencies import ExplanationGeneratorDep, RankingConfigDep
from sparksave.core.errors import (
    InsufficientDataError,
    NoEligiblePlansError,
    ValidationError,
)
from sparksave.models.schemas import RecommendationRequest, RecommendationResponse
from sparksave.services.ranking import RecommendationEngine


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


# =============================================================================
# POST /recommendations
# =============================================================================


@router.post("", response_model=RecommendationResponse)
async def create_recommendations(
    request: RecommendationRequest,
    config: RankingConfigDep,
    explanation_generator: ExplanationGeneratorDep,
) -> RecommendationResponse:
    """
    Generate ranked, explained plan recommendations.

    Args:
        request: Usage history, preferences, candidate plans and optional
            current plan. asOfDate defaults to today, topN to the configured value.
        config: Engine configuration built from settings.
        explanation_generator: Optional explanation collaborator.

    Returns:
        RecommendationResponse with the recommendations, the usage profile used,
        the current annual cost and the explanation degradation flag.

    Raises:
        HTTPException 400: If the request is malformed.
        HTTPException 422: If there is no usable usage or no plan matches.
        HTTPException 500: If the engine fails unexpectedly.

    Example Response:
        {
            "success": true,
            "recommendations": [{"planId": "plan-1", "rank": 1, ...}],
            "usageProfile": {"averageMonthlyKwh": 600.0, ...},
            "currentAnnualCost": 936.0,
            "explanationDegraded": false,
            "degradationReason": null
        }
    """
    as_of_date = request.asOfDate or date.today()
    engine = RecommendationEngine(config, explanation_generator)

    try:
        result = await engine.recommend(
            usage_points=request.usagePoints,
            preferences=request.preferences,
            candidate_plans=request.candidatePlans,
            as_of_date=as_of_date,
            current_plan=request.currentPlan,
            top_n=request.topN,
        )
    except ValidationError as e:
        logger.warning(f"POST /recommendations rejected: {e.message}")
        raise HTTPException(status_code=400, detail=e.to_detail())
    except InsufficientDataError as e:
        logger.warning(f"POST /recommendations insufficient data: {e.message}")
        raise HTTPException(status_code=422, detail=e.to_detail())
    except NoEligiblePlansError as e:
        logger.info(f"POST /recommendations found no matching plans: {e.exclusions}")
        detail = e.to_detail()
        detail["exclusions"] = e.exclusions
        raise HTTPException(status_code=422, detail=detail)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating recommendations: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to generate recommendations"
        )

    logger.info(
        f"POST /recommendations: {len(result.recommendations)} recommendations "
        f"from {len(request.candidatePlans)} candidates, degraded={result.explanationDegraded}"
    )
    return RecommendationResponse(**result.model_dump())
