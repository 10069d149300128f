from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field


class ResponseSubmit(BaseModel):
    # question_id -> option id (single) or list of option ids (multiple choice)
    responses: dict[str, Union[str, list[str]]]
    require_complete: bool = False


class ResponseStatus(BaseModel):
    user_id: str
    completed_at: datetime
    responses: dict[str, Union[str, list[str]]]
    answered: int
    progress: float = Field(ge=0.0, le=1.0)
    is_complete: bool
    missing_question_ids: list[str] = Field(default_factory=list)
