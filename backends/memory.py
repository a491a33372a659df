"""
In-memory collaborator — an in-process stand-in for the remote backend with
live push notifications. Used by the test-suite and for offline demos of
remote mode (`run.py --backend memory`).
"""

import asyncio
import copy
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from backends.base import (
    AuthError,
    ErrorCallback,
    RecordsCallback,
    RemoteCollaborator,
    RemoteError,
    RemoteUser,
    ServerTimestamp,
    SubscriptionError,
)
from backends.firestore_codec import clean_data
from backends.subscription import Subscription
from models.employer import Employer
from tools.log import get_logger
from tools.timeutil import parse_timestamp

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class InMemoryCollaborator(RemoteCollaborator):
    """
    Document store + auth provider living in the current process.

    Args:
        live: When False, listen_* raise SubscriptionError (forces polling).
        autoflush: When False, change notifications are queued until flush().
    """

    def __init__(self, live: bool = True, autoflush: bool = True) -> None:
        self.live = live
        self.autoflush = autoflush
        self._accounts: dict[str, tuple[str, str]] = {}  # email -> (uid, password)
        self._employers: dict[str, Employer] = {}
        self._jobs: dict[str, dict] = {}
        self._feedback: dict[str, dict] = {}
        self._order: dict[str, int] = {}
        self._seq = 0
        self._user: Optional[RemoteUser] = None
        self._auth_listeners: list[Callable[[Optional[RemoteUser]], None]] = []
        self._job_listeners: list[tuple[RecordsCallback, ErrorCallback]] = []
        self._feedback_listeners: list[tuple[RecordsCallback, ErrorCallback]] = []
        self._pending: list[Callable[[], None]] = []
        self._failing: dict[str, Exception] = {}

    # --- Test controls ---
    def fail(self, operation: str, error: Exception = None) -> None:
        """Make every call to `operation` (e.g. "add_job") raise until recover()."""
        self._failing[operation] = error or RemoteError(f"{operation} unavailable")

    def recover(self, operation: str = None) -> None:
        if operation is None:
            self._failing.clear()
        else:
            self._failing.pop(operation, None)

    def flush(self) -> int:
        """Deliver queued notifications; returns how many were delivered."""
        pending, self._pending = self._pending, []
        for deliver in pending:
            deliver()
        return len(pending)

    def break_listeners(self, error: Exception = None) -> None:
        """Simulate the live stream dropping: every job/feedback listener gets on_error."""
        error = error or SubscriptionError("listener connection lost")
        for _, on_error in self._job_listeners + self._feedback_listeners:
            on_error(error)

    @property
    def job_listener_count(self) -> int:
        return len(self._job_listeners)

    @property
    def auth_listener_count(self) -> int:
        return len(self._auth_listeners)

    def seed_job(self, record: dict) -> str:
        """Insert a raw job document directly, without notifying."""
        job_id = record.get("id") or f"job-{uuid.uuid4().hex}"
        self._jobs[job_id] = {**copy.deepcopy(record), "id": job_id}
        self._stamp(job_id)
        return job_id

    # --- Internals ---
    async def _round_trip(self, operation: str) -> None:
        await asyncio.sleep(0)
        if operation in self._failing:
            raise self._failing[operation]

    def _stamp(self, doc_id: str) -> None:
        self._seq += 1
        self._order[doc_id] = self._seq

    def _sorted(self, docs: dict[str, dict], field: str) -> list[dict]:
        def key(record: dict):
            value = record.get(field)
            if isinstance(value, ServerTimestamp):
                value = value.to_datetime()
            elif isinstance(value, str):
                value = parse_timestamp(value)
            if not isinstance(value, datetime):
                value = _EPOCH
            return (value, self._order.get(record["id"], 0))

        return [copy.deepcopy(r) for r in sorted(docs.values(), key=key, reverse=True)]

    def _emit(self, listeners: list[tuple[RecordsCallback, ErrorCallback]], snapshot: list[dict]) -> None:
        for callback, _ in list(listeners):
            def deliver(cb=callback, records=snapshot):
                cb(copy.deepcopy(records))

            if self.autoflush:
                deliver()
            else:
                self._pending.append(deliver)

    def _emit_jobs(self) -> None:
        self._emit(self._job_listeners, self._sorted(self._jobs, "createdAt"))

    def _emit_feedback(self) -> None:
        self._emit(self._feedback_listeners, self._sorted(self._feedback, "date"))

    def _notify_auth(self) -> None:
        for listener in list(self._auth_listeners):
            listener(self._user)

    def _listen(
        self,
        listeners: list[tuple[RecordsCallback, ErrorCallback]],
        callback: RecordsCallback,
        on_error: ErrorCallback,
        snapshot: list[dict],
        name: str,
    ) -> Subscription:
        if not self.live:
            raise SubscriptionError(f"{name}: live listeners are disabled")
        entry = (callback, on_error)
        listeners.append(entry)
        self._emit([entry], snapshot)

        def remove() -> None:
            if entry in listeners:
                listeners.remove(entry)

        return Subscription(cancel=remove, name=name)

    # --- Credentials ---
    async def sign_up(self, company_name: str, email: str, password: str) -> Employer:
        await self._round_trip("sign_up")
        if email in self._accounts:
            raise AuthError("EMAIL_EXISTS")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError("WEAK_PASSWORD")
        uid = f"uid-{uuid.uuid4().hex[:12]}"
        self._accounts[email] = (uid, password)
        employer = Employer(id=uid, company_name=company_name, email=email)
        self._employers[uid] = employer
        self._user = RemoteUser(uid=uid, email=email)
        self._notify_auth()
        return employer

    async def sign_in(self, email: str, password: str) -> RemoteUser:
        await self._round_trip("sign_in")
        account = self._accounts.get(email)
        if account is None or account[1] != password:
            raise AuthError("INVALID_LOGIN_CREDENTIALS")
        self._user = RemoteUser(uid=account[0], email=email)
        self._notify_auth()
        return self._user

    async def sign_out(self) -> None:
        await self._round_trip("sign_out")
        self._user = None
        self._notify_auth()

    def on_auth_changed(self, callback: Callable[[Optional[RemoteUser]], None]) -> Subscription:
        self._auth_listeners.append(callback)
        callback(self._user)

        def remove() -> None:
            if callback in self._auth_listeners:
                self._auth_listeners.remove(callback)

        return Subscription(cancel=remove, name="memory-auth")

    async def get_employer(self, uid: str) -> Optional[Employer]:
        await self._round_trip("get_employer")
        return self._employers.get(uid)

    # --- Jobs ---
    async def listen_jobs(self, callback: RecordsCallback, on_error: ErrorCallback) -> Subscription:
        await self._round_trip("listen_jobs")
        return self._listen(
            self._job_listeners, callback, on_error, self._sorted(self._jobs, "createdAt"), "memory-jobs"
        )

    async def fetch_jobs(self) -> list[dict]:
        await self._round_trip("fetch_jobs")
        return self._sorted(self._jobs, "createdAt")

    async def add_job(self, job: dict, employer_id: str) -> str:
        await self._round_trip("add_job")
        job_id = job.get("id") or f"job-{uuid.uuid4().hex}"
        if job_id in self._jobs:
            raise RemoteError(f"job {job_id} already exists")
        record = clean_data({**job, "id": job_id, "employerId": employer_id}) or {}
        record["createdAt"] = ServerTimestamp.now()
        self._jobs[job_id] = record
        self._stamp(job_id)
        self._emit_jobs()
        return job_id

    async def update_job(self, job_id: str, data: dict) -> None:
        await self._round_trip("update_job")
        if job_id not in self._jobs:
            raise RemoteError(f"job {job_id} not found")
        record = self._jobs[job_id]
        for key in data:
            record.pop(key, None)
        record.update(clean_data(data) or {})
        record["updatedAt"] = ServerTimestamp.now()
        self._emit_jobs()

    async def delete_job(self, job_id: str) -> None:
        await self._round_trip("delete_job")
        if self._jobs.pop(job_id, None) is not None:
            self._emit_jobs()

    async def add_application(self, job_id: str, application: dict) -> None:
        await self._round_trip("add_application")
        if job_id not in self._jobs:
            raise RemoteError(f"job {job_id} not found")
        record = self._jobs[job_id]
        record["applications"] = [*record.get("applications", []), clean_data(application) or {}]
        self._emit_jobs()

    # --- Feedback board ---
    async def add_feedback(self, feedback: dict) -> None:
        await self._round_trip("add_feedback")
        feedback_id = feedback.get("id") or f"fb-{uuid.uuid4().hex}"
        self._feedback[feedback_id] = clean_data({**feedback, "id": feedback_id}) or {}
        self._stamp(feedback_id)
        self._emit_feedback()

    async def fetch_feedback(self) -> list[dict]:
        await self._round_trip("fetch_feedback")
        return self._sorted(self._feedback, "date")

    async def listen_feedback(self, callback: RecordsCallback, on_error: ErrorCallback) -> Subscription:
        await self._round_trip("listen_feedback")
        return self._listen(
            self._feedback_listeners, callback, on_error, self._sorted(self._feedback, "date"), "memory-feedback"
        )
