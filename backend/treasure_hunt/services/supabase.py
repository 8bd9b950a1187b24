from __future__ import annotations
from urllib.parse import quote
import httpx
import structlog
from pydantic import TypeAdapter, ValidationError
from treasure_hunt.schemas.participant import Participant, ParticipantId, SubmissionCreate

log = structlog.get_logger()

REST_PREFIX = "/rest/v1"
STORAGE_PREFIX = "/storage/v1/object"


class BackendError(Exception):
    """A single call to the hosted backend failed. Never retried."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class FetchFailed(BackendError):
    user_message = "Failed to load participants. Please refresh the page."


class CreateParticipantFailed(BackendError):
    user_message = "Failed to add participant. Please try again."


class SubmitTaskFailed(BackendError):
    user_message = "Failed to submit task. Please try again."


class UploadFailed(SubmitTaskFailed):
    pass


class RecordSubmissionFailed(SubmitTaskFailed):
    pass


def auth_headers(api_key: str) -> dict[str, str]:
    # Static project key: sent both as apikey and as the bearer token
    return {"apikey": api_key, "Authorization": f"Bearer {api_key}"}


def object_path(participant_id: ParticipantId, quest_id: str, task_id: int, file_name: str) -> str:
    return f"{participant_id}/{quest_id}/{task_id}/{file_name}"


def _quote_path(path: str) -> str:
    return "/".join(quote(seg, safe="") for seg in path.split("/"))


_participants = TypeAdapter(list[Participant])


class SupabaseClient:
    """
    Thin async wrapper over the PostgREST and storage endpoints.

    The wrapped httpx.AsyncClient must already carry base_url, the auth
    headers and the timeout (see treasure_hunt.deps.get_backend).
    """

    def __init__(self, http: httpx.AsyncClient, *, bucket: str, cleanup_orphans: bool = True):
        self._http = http
        self.bucket = bucket
        self.cleanup_orphans = cleanup_orphans

    @property
    def base_url(self) -> str:
        return str(self._http.base_url).rstrip("/")

    def public_url(self, path: str) -> str:
        return f"{self.base_url}{STORAGE_PREFIX}/public/{quote(self.bucket, safe='')}/{_quote_path(path)}"

    def _object_url(self, path: str) -> str:
        return f"{STORAGE_PREFIX}/{quote(self.bucket, safe='')}/{_quote_path(path)}"

    async def _send(self, exc_type: type[BackendError], what: str, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            r = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            log.error("backend_unreachable", op=what, error=str(e))
            raise exc_type(f"{what}: {e}") from e
        if not r.is_success:
            log.error("backend_rejected", op=what, status=r.status_code, detail=r.text[:500])
            raise exc_type(f"{what}: HTTP {r.status_code}", status_code=r.status_code, detail=r.text)
        return r

    async def fetch_participants(self) -> list[Participant]:
        r = await self._send(
            FetchFailed, "fetch participants", "GET", f"{REST_PREFIX}/participants",
            params={"select": "*,submissions(*)", "order": "created_at.asc"},
        )
        try:
            participants = _participants.validate_python(r.json())
        except (ValueError, ValidationError) as e:
            log.error("participants_unparseable", error=str(e))
            raise FetchFailed(f"fetch participants: bad payload: {e}", status_code=r.status_code) from e
        log.info("participants_fetched", count=len(participants))
        return participants

    async def add_participant(self, name: str) -> None:
        await self._send(
            CreateParticipantFailed, "add participant", "POST", f"{REST_PREFIX}/participants",
            json={"name": name},
            headers={"Prefer": "return=minimal"},
        )
        log.info("participant_created", name=name)

    async def upload_object(self, path: str, data: bytes, content_type: str) -> None:
        file_name = path.rsplit("/", 1)[-1]
        await self._send(
            UploadFailed, "upload evidence", "POST", self._object_url(path),
            files={"file": (file_name, data, content_type)},
        )
        log.info("evidence_uploaded", path=path, bytes=len(data), content_type=content_type)

    async def delete_object(self, path: str) -> bool:
        try:
            r = await self._http.delete(self._object_url(path))
        except httpx.HTTPError as e:
            log.warning("orphan_cleanup_failed", path=path, error=str(e))
            return False
        if not r.is_success:
            log.warning("orphan_cleanup_failed", path=path, status=r.status_code, detail=r.text[:500])
            return False
        log.info("orphan_cleaned_up", path=path)
        return True

    async def record_submission(self, row: SubmissionCreate) -> None:
        await self._send(
            RecordSubmissionFailed, "record submission", "POST", f"{REST_PREFIX}/submissions",
            json=row.model_dump(mode="json"),
            headers={"Prefer": "return=minimal"},
        )
        log.info("submission_recorded", participant_id=row.participant_id, quest_id=row.quest_id, task_id=row.task_id)

    async def submit_task(
        self,
        file_name: str,
        data: bytes,
        content_type: str,
        participant_id: ParticipantId,
        quest_id: str,
        task_id: int,
    ) -> SubmissionCreate:
        """
        Upload the evidence, then insert the submission row pointing at its
        public URL. The two steps are not atomic: if the insert fails the
        stored object is deleted once (best effort) and RecordSubmissionFailed
        is raised regardless of whether the delete worked.
        """
        path = object_path(participant_id, quest_id, task_id, file_name)
        await self.upload_object(path, data, content_type)

        row = SubmissionCreate(
            participant_id=participant_id,
            quest_id=quest_id,
            task_id=task_id,
            file_name=file_name,
            file_url=self.public_url(path),
        )
        try:
            await self.record_submission(row)
        except RecordSubmissionFailed:
            if self.cleanup_orphans:
                await self.delete_object(path)
            else:
                log.warning("orphan_left_in_storage", path=path)
            raise
        return row
