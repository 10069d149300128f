"""
Mithaq — FastAPI dependency providers.

Services are built once per process on first use.  Tests swap them out
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from app.catalog import get_catalog
from app.config import get_settings
from app.repositories.compatibility_repository import SqlCompatibilityRepository
from app.schemas.catalog import QuestionCatalog
from app.services.analytics_service import LogAnalytics, NullAnalytics
from app.services.compatibility_service import CompatibilityService
from app.services.scoring_service import ScoringService


def catalog_dependency() -> QuestionCatalog:
    return get_catalog()


@lru_cache(maxsize=1)
def get_compatibility_service() -> CompatibilityService:
    settings = get_settings()
    analytics = LogAnalytics() if settings.ANALYTICS_ENABLED else NullAnalytics()
    return CompatibilityService(
        repository=SqlCompatibilityRepository(),
        scoring_service=ScoringService(get_catalog()),
        analytics=analytics,
    )
