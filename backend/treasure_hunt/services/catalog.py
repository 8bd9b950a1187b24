from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Iterator
from pydantic import TypeAdapter, ValidationError
from treasure_hunt.config import settings
from treasure_hunt.schemas.quest import Quest, Task, QuestPublic

PACKAGED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "quests.json"


class UnknownQuest(KeyError):
    pass


class CatalogError(ValueError):
    pass


class Catalog:
    """
    The fixed quest/task table. Built once per process and never mutated.

    The first quest is the gate: it is always open, and every other quest
    stays locked until the gate quest is complete.
    """

    def __init__(self, quests: tuple[Quest, ...]):
        if not quests:
            raise CatalogError("catalog must define at least one quest")
        seen_quests: set[str] = set()
        seen_tasks: dict[int, str] = {}
        for q in quests:
            if q.id in seen_quests:
                raise CatalogError(f"duplicate quest id {q.id!r}")
            seen_quests.add(q.id)
            for t in q.tasks:
                if t.id in seen_tasks:
                    raise CatalogError(f"task id {t.id} used by both {seen_tasks[t.id]!r} and {q.id!r}")
                seen_tasks[t.id] = q.id
        self._quests = tuple(quests)
        self._by_id = {q.id: q for q in quests}

    def __iter__(self) -> Iterator[Quest]:
        return iter(self._quests)

    def __len__(self) -> int:
        return len(self._quests)

    def __contains__(self, quest_id: object) -> bool:
        return quest_id in self._by_id

    @property
    def gate_quest(self) -> Quest:
        return self._quests[0]

    def quest(self, quest_id: str) -> Quest:
        try:
            return self._by_id[quest_id]
        except KeyError:
            raise UnknownQuest(quest_id) from None

    def task(self, quest_id: str, task_id: int) -> Task | None:
        for t in self.quest(quest_id).tasks:
            if t.id == task_id:
                return t
        return None

    def to_public(self, quest: Quest) -> QuestPublic:
        return QuestPublic(
            id=quest.id,
            name=quest.name,
            description=quest.description,
            tasks=list(quest.tasks),
            is_gate=quest.id == self.gate_quest.id,
            task_count=len(quest.tasks),
        )


_quest_list = TypeAdapter(tuple[Quest, ...])


def load_catalog(path: str | Path | None = None) -> Catalog:
    source = Path(path or settings.quest_catalog_path or PACKAGED_CATALOG).expanduser()
    try:
        with source.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"cannot read quest catalog {source}: {e}") from e
    try:
        quests = _quest_list.validate_python(payload)
    except ValidationError as e:
        raise CatalogError(f"invalid quest catalog {source}: {e}") from e
    return Catalog(quests)


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    return load_catalog()
