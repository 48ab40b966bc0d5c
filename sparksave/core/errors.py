"""
Error taxonomy for the recommendation engine.

Fatal conditions abort the whole request; nothing here is retried.

- ValidationError: missing/malformed request input. Fatal.
- InvalidPlanError: one malformed plan record. The plan is excluded; fatal only
  when exclusions empty the candidate set (surfaced as NoEligiblePlansError).
- NoEligiblePlansError: every candidate was excluded. Fatal, shown as "no matching plans".
- InsufficientDataError: the ranking layer found no usage it could project against.
- ExplanationDegraded: the explanation collaborator timed out or failed. Never
  escapes the engine; reported as a flag on the result.
"""

from typing import Dict, Optional


class EngineError(Exception):
    """Base class for all recommendation engine errors."""

    code: str = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, str]:
        """Serialize as an API error payload ({code, message})."""
        return {"code": self.code, "message": self.message}


class ValidationError(EngineError):
    code = "validation_error"


class InvalidPlanError(EngineError):
    code = "invalid_plan"

    def __init__(self, plan_id: str, message: str):
        super().__init__(f"Plan {plan_id}: {message}")
        self.plan_id = plan_id


class NoEligiblePlansError(EngineError):
    """
    Raised when hard filters (or invalid records) remove every candidate plan.

    Attributes:
        exclusions: Mapping of planId to the reason it was excluded.
    """

    code = "no_matching_plans"

    def __init__(self, exclusions: Optional[Dict[str, str]] = None):
        self.exclusions = dict(exclusions or {})
        super().__init__(
            f"No matching plans: all {len(self.exclusions)} candidate plans were excluded"
        )


class InsufficientDataError(EngineError):
    code = "insufficient_data"


class ExplanationDegraded(EngineError):
    """Explanation collaborator timed out or failed; template text substituted."""

    code = "explanation_degraded"
