from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

# PostgREST returns whatever the column type is (bigint identity or uuid)
ParticipantId = int | str


class Submission(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    participant_id: ParticipantId
    quest_id: str
    task_id: int
    file_name: str
    file_url: str
    submitted_at: datetime | None = None


class Participant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: ParticipantId
    name: str
    created_at: datetime | None = None
    # joined on fetch via select=*,submissions(*); PostgREST sends null when nothing matches
    submissions: list[Submission] = Field(default_factory=list)

    @field_validator("submissions", mode="before")
    @classmethod
    def null_submissions(cls, v):
        return [] if v is None else v


class ParticipantCreate(BaseModel):
    name: str = Field(max_length=120)

    # the length limit applies to the trimmed name
    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class SubmissionCreate(BaseModel):
    """Row body for the submissions insert; also what submit_task hands back."""
    participant_id: ParticipantId
    quest_id: str
    task_id: int
    file_name: str
    file_url: str


class QuestProgress(BaseModel):
    quest_id: str
    completion: int = Field(ge=0, le=100)
    locked: bool


class ParticipantProgress(BaseModel):
    id: ParticipantId
    name: str
    created_at: datetime | None
    submission_count: int
    quests: list[QuestProgress]
