from app.repositories.compatibility_repository import (
    CompatibilityRepository,
    SqlCompatibilityRepository,
)

__all__ = ["CompatibilityRepository", "SqlCompatibilityRepository"]
