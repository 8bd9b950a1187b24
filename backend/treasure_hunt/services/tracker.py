from __future__ import annotations
import structlog
from treasure_hunt.schemas.board import Board, ParticipantCard, QuestTab, TaskCard
from treasure_hunt.schemas.participant import Participant, ParticipantId
from treasure_hunt.services.catalog import Catalog, get_catalog
from treasure_hunt.services.media import accepts
from treasure_hunt.services.progress import is_quest_locked, matching_submission, quest_completion, task_status
from treasure_hunt.services.supabase import BackendError, SupabaseClient

log = structlog.get_logger()

BOARD_TITLE = "Treasure Hunt Progress Tracker"
BOARD_DESCRIPTION = "Complete tasks, submit evidence, and track your progress!"


class TaskNotActionable(Exception):
    pass

class ParticipantNotFound(TaskNotActionable):
    pass

class UnknownTask(TaskNotActionable):
    pass

class QuestLocked(TaskNotActionable):
    pass

class TaskAlreadyCompleted(TaskNotActionable):
    pass

class FileTypeNotAccepted(TaskNotActionable):
    pass


def upload_path(participant_id: ParticipantId, quest_id: str, task_id: int) -> str:
    return f"/participants/{participant_id}/quests/{quest_id}/tasks/{task_id}/submission"


class HuntTracker:
    """
    State behind one tracker view: the fetched participants, the name draft,
    the selected quest, a loading flag and one error slot.

    Every mutation is followed by a full refetch; nothing is updated locally.
    Backend failures never propagate out of the public actions: they set
    `error` to a generic message and the detail only goes to the log.
    """

    def __init__(self, backend: SupabaseClient, catalog: Catalog | None = None, active_quest: str | None = None):
        self.backend = backend
        self.catalog = catalog or get_catalog()
        self.participants: list[Participant] = []
        self.new_participant_name = ""
        self.active_quest = self.catalog.gate_quest.id
        self.loading = True
        self.error: str | None = None
        if active_quest:
            self.set_active_quest(active_quest)

    def set_active_quest(self, quest_id: str) -> None:
        self.active_quest = self.catalog.quest(quest_id).id

    def _fail(self, action: str, exc: BackendError) -> None:
        self.error = exc.user_message
        log.error(f"{action}_failed", error=str(exc), status=exc.status_code, kind=type(exc).__name__)

    def participant(self, participant_id: ParticipantId) -> Participant | None:
        wanted = str(participant_id)
        return next((p for p in self.participants if str(p.id) == wanted), None)

    async def load_participants(self) -> bool:
        self.loading = True
        try:
            self.participants = await self.backend.fetch_participants()
            self.error = None
            return True
        except BackendError as e:
            self._fail("load_participants", e)
            return False
        finally:
            self.loading = False

    async def add_participant(self, name: str | None = None) -> bool:
        """Register `name` (or the draft). Blank names are ignored without a backend call."""
        name = (self.new_participant_name if name is None else name).strip()
        if not name:
            return False
        try:
            await self.backend.add_participant(name)
        except BackendError as e:
            self._fail("add_participant", e)
            return False
        self.new_participant_name = ""
        await self.load_participants()
        return True

    def ensure_actionable(
        self,
        participant_id: ParticipantId,
        quest_id: str,
        task_id: int,
        file_name: str,
        content_type: str | None = None,
    ) -> Participant:
        participant = self.participant(participant_id)
        if participant is None:
            raise ParticipantNotFound(f"participant {participant_id} not found")
        task = self.catalog.task(quest_id, task_id)
        if task is None:
            raise UnknownTask(f"task {task_id} is not part of {quest_id}")
        if is_quest_locked(participant, quest_id, self.catalog):
            raise QuestLocked(self.locked_message())
        if matching_submission(participant, quest_id, task_id):
            raise TaskAlreadyCompleted(f"task {task_id} already has a submission")
        if not accepts(task.accepted_files, file_name, content_type):
            raise FileTypeNotAccepted(f"{file_name!r} does not match {task.accepted_files!r}")
        return participant

    async def submit_task(
        self,
        participant_id: ParticipantId,
        quest_id: str,
        task_id: int,
        file_name: str,
        data: bytes,
        content_type: str,
    ) -> bool:
        participant = self.participant(participant_id)
        pid = participant.id if participant is not None else participant_id
        try:
            await self.backend.submit_task(file_name, data, content_type, pid, quest_id, task_id)
        except BackendError as e:
            self._fail("submit_task", e)
            return False
        await self.load_participants()
        return True

    def locked_message(self) -> str:
        return f"Complete {self.catalog.gate_quest.name.split(':')[0]} to unlock this quest!"

    def card(self, participant: Participant, quest_id: str | None = None) -> ParticipantCard:
        quest = self.catalog.quest(quest_id or self.active_quest)
        locked = is_quest_locked(participant, quest.id, self.catalog)
        tasks: list[TaskCard] = []
        if not locked:
            for t in quest.tasks:
                s = matching_submission(participant, quest.id, t.id)
                tasks.append(TaskCard(
                    id=t.id,
                    name=t.name,
                    description=t.description,
                    hint=t.hint,
                    accepted_files=t.accepted_files,
                    status=task_status(participant, quest.id, t.id),
                    file_name=s.file_name if s else None,
                    file_url=s.file_url if s else None,
                    submitted_at=s.submitted_at if s else None,
                    can_upload=s is None,
                    upload_path=None if s else upload_path(participant.id, quest.id, t.id),
                ))
        return ParticipantCard(
            id=participant.id,
            name=participant.name,
            joined_at=participant.created_at,
            quest_id=quest.id,
            progress=quest_completion(participant, quest.id, self.catalog),
            locked=locked,
            locked_message=self.locked_message() if locked else None,
            tasks=tasks,
        )

    def board(self, quest_id: str | None = None) -> Board:
        if quest_id:
            self.set_active_quest(quest_id)
        return Board(
            title=BOARD_TITLE,
            description=BOARD_DESCRIPTION,
            active_quest=self.active_quest,
            quests=[QuestTab(id=q.id, name=q.name, active=q.id == self.active_quest) for q in self.catalog],
            loading=self.loading,
            error=self.error,
            # cards are skipped while loading, like the spinner in place of the list
            participants=[] if self.loading else [self.card(p) for p in self.participants],
        )
