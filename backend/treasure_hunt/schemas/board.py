from __future__ import annotations
from pydantic import BaseModel
from typing import Literal
from datetime import datetime
from treasure_hunt.schemas.participant import ParticipantId

TaskStatus = Literal["pending", "completed"]


class TaskCard(BaseModel):
    id: int
    name: str
    description: str
    hint: str
    accepted_files: str
    status: TaskStatus
    # populated once completed (first matching submission)
    file_name: str | None = None
    file_url: str | None = None
    submitted_at: datetime | None = None
    can_upload: bool
    upload_path: str | None = None  # POST target for this participant/task


class ParticipantCard(BaseModel):
    id: ParticipantId
    name: str
    joined_at: datetime | None
    quest_id: str
    progress: int
    locked: bool
    locked_message: str | None = None
    tasks: list[TaskCard]  # empty while locked


class QuestTab(BaseModel):
    id: str
    name: str
    active: bool


class Board(BaseModel):
    title: str
    description: str
    active_quest: str
    quests: list[QuestTab]
    loading: bool
    error: str | None = None
    participants: list[ParticipantCard]
