from __future__ import annotations
from fastapi import APIRouter, HTTPException
from treasure_hunt.schemas.quest import QuestPublic
from treasure_hunt.services.catalog import UnknownQuest, get_catalog

router = APIRouter(prefix="/quests", tags=["quests"])

@router.get("", response_model=list[QuestPublic])
async def list_quests():
    catalog = get_catalog()
    return [catalog.to_public(q) for q in catalog]

@router.get("/{quest_id}", response_model=QuestPublic)
async def get_quest(quest_id: str):
    catalog = get_catalog()
    try:
        return catalog.to_public(catalog.quest(quest_id))
    except UnknownQuest:
        raise HTTPException(status_code=404, detail="Quest not found")
