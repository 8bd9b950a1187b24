from __future__ import annotations
import json
import httpx
import pytest
from treasure_hunt.services.supabase import (
    CreateParticipantFailed,
    FetchFailed,
    RecordSubmissionFailed,
    SubmitTaskFailed,
    SupabaseClient,
    UploadFailed,
    object_path,
)
from conftest import API_KEY, BASE_URL, BUCKET


@pytest.mark.asyncio
async def test_fetch_participants_joins_submissions(fake, backend_factory):
    ash = fake.add_participant("Ash", done=[("quest1", 1), ("quest1", 2)])
    fake.add_participant("Misty")
    http, backend = backend_factory()
    async with http:
        participants = await backend.fetch_participants()

    assert [p.name for p in participants] == ["Ash", "Misty"]
    assert participants[0].id == ash["id"]
    assert [(s.quest_id, s.task_id) for s in participants[0].submissions] == [("quest1", 1), ("quest1", 2)]
    assert participants[1].submissions == []

    req = fake.requests[0]
    assert req.url.params["select"] == "*,submissions(*)"
    assert req.url.params["order"] == "created_at.asc"


@pytest.mark.asyncio
async def test_every_call_carries_both_auth_headers(fake, backend_factory):
    fake.add_participant("Ash")
    http, backend = backend_factory()
    async with http:
        await backend.fetch_participants()
        await backend.add_participant("Brock")
        await backend.submit_task("a.png", b"png", "image/png", 1, "quest1", 1)

    assert len(fake.requests) == 4
    for req in fake.requests:
        assert req.headers["apikey"] == API_KEY
        assert req.headers["authorization"] == f"Bearer {API_KEY}"


@pytest.mark.asyncio
async def test_fetch_failure_raises_fetch_failed(fake, backend_factory):
    fake.fail["fetch"] = 500
    http, backend = backend_factory()
    async with http:
        with pytest.raises(FetchFailed) as info:
            await backend.fetch_participants()
    assert info.value.status_code == 500
    assert "unavailable" in info.value.detail


@pytest.mark.asyncio
async def test_fetch_bad_payload_raises_fetch_failed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"not": "a list"})

    async with httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(FetchFailed):
            await SupabaseClient(http, bucket=BUCKET).fetch_participants()


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(FetchFailed) as info:
            await SupabaseClient(http, bucket=BUCKET).fetch_participants()
    assert info.value.status_code is None


@pytest.mark.asyncio
async def test_add_participant_posts_minimal_insert(fake, backend_factory):
    http, backend = backend_factory()
    async with http:
        assert await backend.add_participant("Brock") is None

    req = fake.requests[0]
    assert req.method == "POST" and req.url.path == "/rest/v1/participants"
    assert req.headers["prefer"] == "return=minimal"
    assert json.loads(req.content) == {"name": "Brock"}
    assert [p["name"] for p in fake.participants] == ["Brock"]


@pytest.mark.asyncio
async def test_add_participant_failure(fake, backend_factory):
    fake.fail["create"] = 401
    http, backend = backend_factory()
    async with http:
        with pytest.raises(CreateParticipantFailed):
            await backend.add_participant("Brock")


def test_object_path_shape():
    assert object_path(12, "quest1", 3, "riddle.pdf") == "12/quest1/3/riddle.pdf"


@pytest.mark.asyncio
async def test_submit_task_uploads_then_records(fake, backend_factory):
    ash = fake.add_participant("Ash")
    http, backend = backend_factory()
    async with http:
        row = await backend.submit_task("team photo.png", b"\x89PNG", "image/png", ash["id"], "quest1", 1)

    upload, record = fake.requests
    assert upload.method == "POST"
    assert upload.url.path == f"/storage/v1/object/{BUCKET}/{ash['id']}/quest1/1/team photo.png"
    assert b"\x89PNG" in upload.content
    assert upload.headers["content-type"].startswith("multipart/form-data")

    assert record.url.path == "/rest/v1/submissions"
    body = json.loads(record.content)
    assert body == {
        "participant_id": ash["id"],
        "quest_id": "quest1",
        "task_id": 1,
        "file_name": "team photo.png",
        "file_url": f"{BASE_URL}/storage/v1/object/public/{BUCKET}/{ash['id']}/quest1/1/team%20photo.png",
    }
    assert row.file_url == body["file_url"]
    assert f"{ash['id']}/quest1/1/team photo.png" in fake.objects
    assert len(fake.submissions_for(ash["id"])) == 1


@pytest.mark.asyncio
async def test_upload_failure_skips_record(fake, backend_factory):
    ash = fake.add_participant("Ash")
    fake.fail["upload"] = 413
    http, backend = backend_factory()
    async with http:
        with pytest.raises(UploadFailed):
            await backend.submit_task("a.png", b"x", "image/png", ash["id"], "quest1", 1)

    assert fake.paths("/rest/v1/submissions") == []
    assert fake.submissions == []


@pytest.mark.asyncio
async def test_record_failure_cleans_up_the_orphan(fake, backend_factory):
    ash = fake.add_participant("Ash")
    fake.fail["record"] = 500
    http, backend = backend_factory()
    async with http:
        with pytest.raises(RecordSubmissionFailed) as info:
            await backend.submit_task("a.png", b"x", "image/png", ash["id"], "quest1", 1)
        after = await backend.fetch_participants()

    assert isinstance(info.value, SubmitTaskFailed)
    assert [r.method for r in fake.requests[:3]] == ["POST", "POST", "DELETE"]
    assert fake.objects == {}
    assert after[0].submissions == []


@pytest.mark.asyncio
async def test_record_failure_without_cleanup_leaves_object(fake, backend_factory):
    ash = fake.add_participant("Ash")
    fake.fail["record"] = 500
    http, backend = backend_factory(cleanup_orphans=False)
    async with http:
        with pytest.raises(RecordSubmissionFailed):
            await backend.submit_task("a.png", b"x", "image/png", ash["id"], "quest1", 1)

    assert [r.method for r in fake.requests] == ["POST", "POST"]
    assert list(fake.objects) == [f"{ash['id']}/quest1/1/a.png"]


@pytest.mark.asyncio
async def test_failed_cleanup_still_reports_record_failure(fake, backend_factory):
    ash = fake.add_participant("Ash")
    fake.fail["record"] = 500
    fake.fail["delete"] = 403
    http, backend = backend_factory()
    async with http:
        with pytest.raises(RecordSubmissionFailed):
            await backend.submit_task("a.png", b"x", "image/png", ash["id"], "quest1", 1)
    assert len(fake.objects) == 1


@pytest.mark.asyncio
async def test_duplicate_submission_is_rejected_by_unique_constraint(fake, backend_factory):
    ash = fake.add_participant("Ash", done=[("quest1", 1)])
    http, backend = backend_factory()
    async with http:
        with pytest.raises(RecordSubmissionFailed) as info:
            await backend.submit_task("again.png", b"x", "image/png", ash["id"], "quest1", 1)
    assert info.value.status_code == 409
    assert len(fake.submissions_for(ash["id"])) == 1
