from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1, description="unique across every quest in the catalog")
    name: str = Field(min_length=1)
    description: str = ""
    accepted_files: str = Field(default="", description="HTML accept syntax, e.g. 'image/*' or '.pdf,.doc'")
    hint: str = ""


class Quest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=32)
    name: str
    description: str = ""
    tasks: tuple[Task, ...] = Field(min_length=1)

    @property
    def task_ids(self) -> tuple[int, ...]:
        return tuple(t.id for t in self.tasks)


class QuestPublic(BaseModel):
    id: str
    name: str
    description: str
    tasks: list[Task]
    # True for the quest every other quest waits on
    is_gate: bool
    task_count: int
