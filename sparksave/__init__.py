"""
SparkSave Recommendation Engine Package.

Service layer for the SparkSave energy plan recommender. Turns a customer's
usage history, stated preferences and a catalog of candidate plans into a
ranked, explained, risk-annotated list of the best-fitting supply plans.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, error taxonomy, and dependencies
    - models: Pydantic schemas and enums
    - services: Profiling, projection, scoring, risk, switching, ranking, explanations
"""

__version__ = "1.0.0"
