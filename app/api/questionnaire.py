"""
Mithaq — Questionnaire API

Endpoints for reading the question catalog and for submitting or reading
back a user's completed compatibility questionnaire.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import catalog_dependency, get_compatibility_service
from app.exceptions import InvalidResponse, ResponsesNotFound
from app.schemas.catalog import QuestionCatalog
from app.schemas.compatibility import answer_from_wire, answer_to_wire
from app.schemas.questionnaire import ResponseStatus, ResponseSubmit
from app.services.compatibility_service import CompatibilityService
from app.services.response_store import ResponseStore

logger = structlog.get_logger("mithaq.api.questionnaire")

router = APIRouter()


def _status_for(user_id: str, store: ResponseStore, completed_at) -> ResponseStatus:
    missing = sorted(store.catalog.question_ids.difference(store.responses))
    return ResponseStatus(
        user_id=user_id,
        completed_at=completed_at,
        responses={
            question_id: answer_to_wire(value)
            for question_id, value in store.responses.items()
        },
        answered=store.answered_count,
        progress=store.progress_fraction(),
        is_complete=store.is_complete(),
        missing_question_ids=missing,
    )


# ──────────────────────────────────────────────────────────────────────────────
# GET /catalog — Categories, weights and questions
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/catalog",
    response_model=QuestionCatalog,
    summary="Get the compatibility question catalog",
)
async def get_catalog(
    catalog: QuestionCatalog = Depends(catalog_dependency),
) -> QuestionCatalog:
    logger.info("get_catalog", version=catalog.version)
    return catalog


# ──────────────────────────────────────────────────────────────────────────────
# PUT /responses/{user_id} — Submit a completed questionnaire
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/responses/{user_id}",
    response_model=ResponseStatus,
    summary="Submit a user's compatibility questionnaire",
)
async def submit_responses(
    user_id: str,
    payload: ResponseSubmit,
    catalog: QuestionCatalog = Depends(catalog_dependency),
    service: CompatibilityService = Depends(get_compatibility_service),
) -> ResponseStatus:
    """Replace the user's completed questionnaire with *payload*.

    Answers are given as an option id, or a list of option ids for
    multiple-choice questions.  With ``require_complete`` every catalog
    question must be answered.
    """
    log = logger.bind(user_id=user_id)
    log.info("submit_responses_start", answers=len(payload.responses))

    store = ResponseStore(catalog)
    for question_id, raw in payload.responses.items():
        store.save_response(question_id, answer_from_wire(raw))

    if payload.require_complete and not store.is_complete():
        missing = sorted(catalog.question_ids.difference(store.responses))
        raise InvalidResponse(f"Unanswered questions: {', '.join(missing)}")

    response = await service.submit_questionnaire(user_id, store)

    log.info("submit_responses_complete", progress=store.progress_fraction())
    return _status_for(user_id, store, response.completed_at)


# ──────────────────────────────────────────────────────────────────────────────
# GET /responses/{user_id} — Completed questionnaire with progress
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/responses/{user_id}",
    response_model=ResponseStatus,
    summary="Get a user's completed questionnaire",
)
async def get_responses(
    user_id: str,
    catalog: QuestionCatalog = Depends(catalog_dependency),
    service: CompatibilityService = Depends(get_compatibility_service),
) -> ResponseStatus:
    store = ResponseStore(catalog)
    response = await service.load_user_response(user_id, store)
    if response is None:
        raise ResponsesNotFound([user_id])
    return _status_for(user_id, store, response.completed_at)
