"""
Core infrastructure package for the SparkSave service.

Provides:
- Configuration management via pydantic-settings
- The engine error taxonomy
- FastAPI dependency injection utilities

Configuration and errors are re-exported here. The FastAPI dependencies import
the services layer, so they are imported from sparksave.core.dependencies
directly:

    from sparksave.core import get_settings, ValidationError
    from sparksave.core.dependencies import RankingConfigDep
"""

# =============================================================================
# Re-exports from sparksave.core.config
# =============================================================================
from sparksave.core.config import Settings, get_settings

# =============================================================================
# Re-exports from sparksave.core.errors
# =============================================================================
from sparksave.core.errors import (
    EngineError,
    ValidationError,
    InvalidPlanError,
    NoEligiblePlansError,
    InsufficientDataError,
    ExplanationDegraded,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Error taxonomy (from errors.py)
    'EngineError',
    'ValidationError',
    'InvalidPlanError',
    'NoEligiblePlansError',
    'InsufficientDataError',
    'ExplanationDegraded',
]
