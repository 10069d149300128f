"""
Mithaq — Question catalog loader.

The catalog is read from JSON once per process (``CATALOG_PATH`` or the
bundled ``app/data/catalog.json``) and cached by ``get_catalog()``.
Category weights are expected to sum to 1.0; a mismatch is logged but not
corrected, so ``overall_score`` may then leave the [0, 100] range.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

import structlog

from app.config import get_settings
from app.schemas.catalog import QuestionCatalog

logger = structlog.get_logger("mithaq.catalog")

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "catalog.json"


def load_catalog(path: str | Path | None = None) -> QuestionCatalog:
    """Parse and validate a catalog document.

    Raises ``pydantic.ValidationError`` for structural problems (duplicate
    ids, empty categories, negative weights).
    """
    settings = get_settings()
    catalog_path = Path(path or settings.CATALOG_PATH or DEFAULT_CATALOG_PATH)

    with catalog_path.open(encoding="utf-8") as fh:
        catalog = QuestionCatalog.model_validate(json.load(fh))

    weight_sum = catalog.weight_sum
    if abs(weight_sum - 1.0) > settings.CATALOG_WEIGHT_TOLERANCE:
        logger.warning(
            "catalog_weights_not_normalised",
            path=str(catalog_path),
            weight_sum=round(weight_sum, 6),
        )

    logger.info(
        "catalog_loaded",
        path=str(catalog_path),
        version=catalog.version,
        categories=len(catalog.categories),
        questions=catalog.total_questions,
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> QuestionCatalog:
    """Return the process-wide catalog, loading it on first use."""
    return load_catalog()
