from __future__ import annotations
import json
from datetime import datetime, timezone, timedelta
from urllib.parse import unquote
import httpx
import pytest
from treasure_hunt.deps import get_backend
from treasure_hunt.main import app
from treasure_hunt.services.supabase import SupabaseClient, auth_headers

BASE_URL = "https://hunt.supabase.test"
API_KEY = "anon-test-key"
BUCKET = "treasure-hunt"


class FakeSupabase:
    """In-memory stand-in for the PostgREST + storage endpoints the client talks to."""

    def __init__(self):
        self.participants: list[dict] = []
        self.submissions: list[dict] = []
        self.objects: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        # flip to an HTTP status to make that endpoint fail
        self.fail: dict[str, int] = {}
        self._ids = 0
        self._clock = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def _next_id(self) -> int:
        self._ids += 1
        return self._ids

    def _tick(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.isoformat()

    def add_participant(self, name: str, done: list[tuple[str, int]] = ()) -> dict:
        row = {"id": self._next_id(), "name": name, "created_at": self._tick()}
        self.participants.append(row)
        for quest_id, task_id in done:
            self.add_submission(row["id"], quest_id, task_id)
        return row

    def add_submission(self, participant_id: int, quest_id: str, task_id: int, file_name: str = "proof.png") -> dict:
        row = {
            "id": self._next_id(),
            "participant_id": participant_id,
            "quest_id": quest_id,
            "task_id": task_id,
            "file_name": file_name,
            "file_url": f"{BASE_URL}/storage/v1/object/public/{BUCKET}/{participant_id}/{quest_id}/{task_id}/{file_name}",
            "submitted_at": self._tick(),
        }
        self.submissions.append(row)
        return row

    def submissions_for(self, participant_id) -> list[dict]:
        return [s for s in self.submissions if s["participant_id"] == participant_id]

    def paths(self, prefix: str) -> list[str]:
        return [r.url.path for r in self.requests if r.url.path.startswith(prefix)]

    def _failure(self, key: str) -> httpx.Response | None:
        if key in self.fail:
            return httpx.Response(self.fail[key], json={"message": f"{key} unavailable"})
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)
        storage = f"/storage/v1/object/{BUCKET}/"

        if path == "/rest/v1/participants" and request.method == "GET":
            if (resp := self._failure("fetch")) is not None:
                return resp
            rows = [{**p, "submissions": self.submissions_for(p["id"])} for p in self.participants]
            return httpx.Response(200, json=rows)

        if path == "/rest/v1/participants" and request.method == "POST":
            if (resp := self._failure("create")) is not None:
                return resp
            body = json.loads(request.content)
            self.participants.append({"id": self._next_id(), "name": body["name"], "created_at": self._tick()})
            return httpx.Response(201)

        if path == "/rest/v1/submissions" and request.method == "POST":
            if (resp := self._failure("record")) is not None:
                return resp
            body = json.loads(request.content)
            key = (body["participant_id"], body["quest_id"], body["task_id"])
            if any((s["participant_id"], s["quest_id"], s["task_id"]) == key for s in self.submissions):
                return httpx.Response(409, json={"code": "23505", "message": "duplicate key value violates unique constraint"})
            self.submissions.append({**body, "id": self._next_id(), "submitted_at": self._tick()})
            return httpx.Response(201)

        if path.startswith(storage) and request.method == "POST":
            if (resp := self._failure("upload")) is not None:
                return resp
            key = path[len(storage):]
            self.objects[key] = request.content
            return httpx.Response(200, json={"Key": f"{BUCKET}/{key}"})

        if path.startswith(storage) and request.method == "DELETE":
            if (resp := self._failure("delete")) is not None:
                return resp
            self.objects.pop(path[len(storage):], None)
            return httpx.Response(200, json={"message": "Successfully deleted"})

        return httpx.Response(404, json={"message": f"no route for {request.method} {path}"})


def make_backend(fake: FakeSupabase, cleanup_orphans: bool = True) -> tuple[httpx.AsyncClient, SupabaseClient]:
    http = httpx.AsyncClient(
        base_url=BASE_URL,
        headers=auth_headers(API_KEY),
        transport=httpx.MockTransport(fake.handler),
    )
    return http, SupabaseClient(http, bucket=BUCKET, cleanup_orphans=cleanup_orphans)


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def api(fake: FakeSupabase):
    """Route the app's backend dependency to the fake for the duration of a test."""

    async def _backend():
        http, backend = make_backend(fake)
        async with http:
            yield backend

    app.dependency_overrides[get_backend] = _backend
    yield app
    app.dependency_overrides.pop(get_backend, None)


@pytest.fixture
def backend_factory(fake: FakeSupabase):
    return lambda cleanup_orphans=True: make_backend(fake, cleanup_orphans)
