from __future__ import annotations
import math
from treasure_hunt.schemas.participant import Participant, Submission, QuestProgress
from treasure_hunt.schemas.board import TaskStatus
from treasure_hunt.services.catalog import Catalog, get_catalog


def matching_submission(participant: Participant, quest_id: str, task_id: int) -> Submission | None:
    """
    First submission of `participant` for the (quest_id, task_id) pair, or None.

    Duplicates are possible (nothing upstream of the unique constraint stops a
    double submit); any one of them completes the task.
    """
    for s in participant.submissions:
        if s.task_id == task_id and s.quest_id == quest_id:
            return s
    return None


def task_status(participant: Participant, quest_id: str, task_id: int) -> TaskStatus:
    return "completed" if matching_submission(participant, quest_id, task_id) else "pending"


def quest_completion(participant: Participant, quest_id: str, catalog: Catalog | None = None) -> int:
    """
    Percentage (0-100) of the quest's tasks with a matching submission.
    Halves round up, so 2 of 3 tasks gives 67.
    """
    quest = (catalog or get_catalog()).quest(quest_id)
    done = {(s.quest_id, s.task_id) for s in participant.submissions}
    completed = sum(1 for t in quest.tasks if (quest.id, t.id) in done)
    return int(math.floor(100 * completed / len(quest.tasks) + 0.5))


def is_quest_locked(participant: Participant, quest_id: str, catalog: Catalog | None = None) -> bool:
    catalog = catalog or get_catalog()
    catalog.quest(quest_id)  # unknown ids raise, even for the gate check below
    gate = catalog.gate_quest
    if quest_id == gate.id:
        return False
    return quest_completion(participant, gate.id, catalog) < 100


def quest_summary(participant: Participant, catalog: Catalog | None = None) -> list[QuestProgress]:
    catalog = catalog or get_catalog()
    return [
        QuestProgress(
            quest_id=q.id,
            completion=quest_completion(participant, q.id, catalog),
            locked=is_quest_locked(participant, q.id, catalog),
        )
        for q in catalog
    ]
