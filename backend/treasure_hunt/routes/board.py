from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query
from treasure_hunt.deps import get_tracker
from treasure_hunt.schemas.board import Board
from treasure_hunt.services.catalog import UnknownQuest
from treasure_hunt.services.tracker import HuntTracker

router = APIRouter(tags=["board"])

@router.get("/board", response_model=Board)
async def get_board(
    quest: str | None = Query(default=None, description="active quest tab; defaults to the first quest"),
    tracker: HuntTracker = Depends(get_tracker),
):
    try:
        if quest:
            tracker.set_active_quest(quest)
    except UnknownQuest:
        raise HTTPException(status_code=404, detail="Quest not found")
    if not await tracker.load_participants():
        raise HTTPException(status_code=502, detail=tracker.error)
    return tracker.board()
