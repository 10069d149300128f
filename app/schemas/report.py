from pydantic import BaseModel, Field, model_validator

from app.schemas.compatibility import FeedbackStatus


class ReportCreate(BaseModel):
    user_id_1: str = Field(min_length=1)
    user_id_2: str = Field(min_length=1)

    @model_validator(mode="after")
    def _distinct_users(self) -> "ReportCreate":
        if self.user_id_1 == self.user_id_2:
            raise ValueError("A report needs two different users")
        return self


class ShareReportRequest(BaseModel):
    target_user_id: str = Field(min_length=1)


class FamilyFeedbackCreate(BaseModel):
    family_member_name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)  # e.g. mother, brother, wali
    feedback: str = Field(min_length=1, max_length=2000)


class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus
