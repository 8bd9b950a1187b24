from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile, File
from treasure_hunt.config import settings
from treasure_hunt.deps import get_tracker
from treasure_hunt.schemas.board import Board, ParticipantCard
from treasure_hunt.schemas.participant import ParticipantCreate, ParticipantProgress
from treasure_hunt.services.catalog import UnknownQuest
from treasure_hunt.services.media import resolve_mime, safe_file_name
from treasure_hunt.services.progress import quest_summary
from treasure_hunt.services.tracker import (
    HuntTracker,
    TaskNotActionable,
    ParticipantNotFound,
    UnknownTask,
    QuestLocked,
    TaskAlreadyCompleted,
    FileTypeNotAccepted,
)

router = APIRouter(prefix="/participants", tags=["participants"])

GUARD_STATUS: dict[type[TaskNotActionable], int] = {
    ParticipantNotFound: 404,
    UnknownTask: 404,
    QuestLocked: 403,
    TaskAlreadyCompleted: 409,
    FileTypeNotAccepted: 415,
}


async def _load(tracker: HuntTracker) -> None:
    if not await tracker.load_participants():
        raise HTTPException(status_code=502, detail=tracker.error)


@router.get("", response_model=list[ParticipantProgress])
async def list_participants(tracker: HuntTracker = Depends(get_tracker)):
    await _load(tracker)
    return [
        ParticipantProgress(
            id=p.id,
            name=p.name,
            created_at=p.created_at,
            submission_count=len(p.submissions),
            quests=quest_summary(p, tracker.catalog),
        )
        for p in tracker.participants
    ]


@router.get("/{participant_id}", response_model=ParticipantCard)
async def get_participant(
    participant_id: str,
    quest: str | None = Query(default=None),
    tracker: HuntTracker = Depends(get_tracker),
):
    await _load(tracker)
    participant = tracker.participant(participant_id)
    if not participant:
        raise HTTPException(status_code=404, detail="Participant not found")
    try:
        return tracker.card(participant, quest)
    except UnknownQuest:
        raise HTTPException(status_code=404, detail="Quest not found")


@router.post(
    "",
    response_model=Board,
    status_code=201,
    responses={204: {"description": "Blank name; nothing was created"}},
)
async def register_participant(payload: ParticipantCreate, tracker: HuntTracker = Depends(get_tracker)):
    if not payload.name.strip():
        return Response(status_code=204)
    if not await tracker.add_participant(payload.name):
        raise HTTPException(status_code=502, detail=tracker.error)
    return tracker.board()


@router.post("/{participant_id}/quests/{quest_id}/tasks/{task_id}/submission", response_model=Board, status_code=201)
async def submit_task(
    participant_id: str,
    quest_id: str,
    task_id: int,
    file: UploadFile = File(..., description="evidence for the task"),
    tracker: HuntTracker = Depends(get_tracker),
):
    file_name = safe_file_name(file.filename)
    if not file_name:
        raise HTTPException(status_code=400, detail="File name missing")
    data = await file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="File too large")
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")

    # Guard against the freshest data, the same view the upload button is drawn from
    await _load(tracker)
    try:
        tracker.set_active_quest(quest_id)
        tracker.ensure_actionable(participant_id, quest_id, task_id, file_name, file.content_type)
    except UnknownQuest:
        raise HTTPException(status_code=404, detail="Quest not found")
    except TaskNotActionable as e:
        raise HTTPException(status_code=GUARD_STATUS.get(type(e), 400), detail=str(e))

    content_type = resolve_mime(file_name, file.content_type)
    if not await tracker.submit_task(participant_id, quest_id, task_id, file_name, data, content_type):
        raise HTTPException(status_code=502, detail=tracker.error)
    return tracker.board()
