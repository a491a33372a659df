"""
Storage strategies — the one place where local mode and remote mode differ.

LocalStrategy mutates CoreState directly and persists snapshots to the
LocalStore. RemoteStrategy delegates every mutation to the remote
collaborator and changes CoreState only when a notification comes back,
never through a local echo of a delegated write.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional

from pydantic import ValidationError

from backends.base import AuthError, RemoteCollaborator, RemoteError, RemoteUser
from backends.subscription import PollingSubscription, Subscription
from core.normalizer import normalize_jobs, sort_newest_first
from models.employer import Employer
from models.feedback import Feedback
from models.job import Application, Job, JobDraft
from models.state import CoreState
from tools import local_store
from tools.file_handler import Content
from tools.local_store import LocalStore
from tools.log import get_logger

log = get_logger(__name__)

ChangeCallback = Callable[[], None]


def parse_feedback(records: list) -> list[Feedback]:
    entries = []
    for raw in records:
        try:
            entries.append(Feedback.model_validate(raw))
        except ValidationError as e:
            log.warning("Skipping malformed feedback record: %s", e.errors()[:1])
    return sorted(entries, key=lambda f: f.date, reverse=True)


class StorageStrategy(ABC):
    """
    Backend-specific half of every core operation.

    Mutation methods return True when the change was applied (local) or
    accepted by the backend (remote), False otherwise. They never raise.
    """

    remote = False

    def __init__(self) -> None:
        self.state: Optional[CoreState] = None
        self._on_change: ChangeCallback = lambda: None

    def bind(self, state: CoreState, on_change: ChangeCallback) -> None:
        self.state = state
        self._on_change = on_change

    @abstractmethod
    async def start(self) -> None:
        """Load the initial collections and open subscriptions."""
        ...

    async def stop(self) -> None:
        """Cancel subscriptions and background work. Safe to call repeatedly."""

    async def close(self) -> None:
        """Stop and release whatever the backend holds open."""
        await self.stop()

    # --- Session ---
    @abstractmethod
    async def login(self, email: str, password: str) -> Optional[Employer]:
        ...

    @abstractmethod
    async def register(self, company_name: str, email: str, password: str) -> Optional[Employer]:
        ...

    @abstractmethod
    async def logout(self) -> None:
        ...

    def save_session(self) -> None:
        """Persist the current session, where this backend keeps one locally."""

    # --- Jobs ---
    @abstractmethod
    async def add_job(self, job: Job) -> bool:
        ...

    @abstractmethod
    async def update_job(self, job: Job, draft: JobDraft) -> bool:
        ...

    @abstractmethod
    async def delete_job(self, job: Job) -> bool:
        ...

    @abstractmethod
    async def add_application(self, job: Job, application: Application) -> bool:
        ...

    # --- Feedback board ---
    @abstractmethod
    async def add_feedback(self, feedback: Feedback) -> bool:
        ...


class LocalStrategy(StorageStrategy):
    """Offline mode: memory is the working copy, the LocalStore the durable one."""

    def __init__(self, store: LocalStore, content: Content) -> None:
        super().__init__()
        self.store = store
        self.content = content

    async def start(self) -> None:
        state = self.state
        state.jobs = normalize_jobs(self.store.load_jobs(self.content.default_jobs))
        state.employers = self._load_employers()
        state.session = self._load_session()
        state.feedback = parse_feedback(self.store.read_list(local_store.FEEDBACK, []))
        log.info("Local mode: %d jobs, %d employers loaded", len(state.jobs), len(state.employers))

    def _load_employers(self) -> list[Employer]:
        records = self.store.load_employers(self.content.default_employers)
        try:
            return [Employer.model_validate(r) for r in records]
        except ValidationError as e:
            log.warning("Stored employers are malformed, using defaults: %s", e.errors()[:1])
            return [Employer.model_validate(r) for r in self.content.default_employers]

    def _load_session(self) -> Optional[Employer]:
        raw = self.store.load_session()
        if raw is None:
            return None
        try:
            return Employer.model_validate(raw)
        except ValidationError:
            log.warning("Stored session is malformed, starting logged out")
            return None

    def _save_jobs(self) -> None:
        self.store.write(local_store.JOBS, [job.to_record() for job in self.state.jobs])

    def _save_employers(self) -> None:
        self.store.write(local_store.EMPLOYERS, [e.to_record() for e in self.state.employers])

    def save_session(self) -> None:
        if self.state.session is None:
            self.store.remove(local_store.SESSION)
        else:
            self.store.write(local_store.SESSION, self.state.session.to_record())

    async def login(self, email: str, password: str) -> Optional[Employer]:
        for employer in self.state.employers:
            if employer.email == email and employer.password == password:
                return employer
        return None

    async def register(self, company_name: str, email: str, password: str) -> Optional[Employer]:
        if self.state.find_employer(email) is not None:
            log.info("Registration rejected: %s is already registered", email)
            return None
        employer = Employer(id=f"emp-{uuid.uuid4().hex}", company_name=company_name, email=email, password=password)
        self.state.employers.append(employer)
        self._save_employers()
        return employer

    async def logout(self) -> None:
        pass

    async def add_job(self, job: Job) -> bool:
        self.state.jobs = sort_newest_first([job, *self.state.jobs])
        self._save_jobs()
        return True

    async def update_job(self, job: Job, draft: JobDraft) -> bool:
        self.state.replace_job(job.with_draft(draft))
        self._save_jobs()
        return True

    async def delete_job(self, job: Job) -> bool:
        self.state.jobs = [j for j in self.state.jobs if j.id != job.id]
        self._save_jobs()
        return True

    async def add_application(self, job: Job, application: Application) -> bool:
        self.state.replace_job(job.with_application(application))
        self._save_jobs()
        return True

    async def add_feedback(self, feedback: Feedback) -> bool:
        self.state.feedback = [feedback, *self.state.feedback]
        self.store.write(local_store.FEEDBACK, [f.to_record() for f in self.state.feedback])
        return True


class RemoteStrategy(StorageStrategy):
    """
    Remote mode: the collaborator is the only authority. Job and feedback
    collections arrive through one live subscription each, degrading to
    polling when no live listener can be kept open.
    """

    remote = True

    def __init__(self, collaborator: RemoteCollaborator, poll_interval: float = 15.0) -> None:
        super().__init__()
        self.collaborator = collaborator
        self.poll_interval = poll_interval
        self._jobs_sub: Optional[Subscription] = None
        self._feedback_sub: Optional[Subscription] = None
        self._auth_sub: Optional[Subscription] = None
        self._tasks: set[asyncio.Task] = set()
        self._auth_uid: Optional[str] = None
        self._running = False

    @property
    def subscriptions(self) -> list[Subscription]:
        return [s for s in (self._jobs_sub, self._feedback_sub, self._auth_sub) if s is not None]

    @property
    def polling(self) -> bool:
        return isinstance(self._jobs_sub, PollingSubscription)

    async def start(self) -> None:
        await self.stop()
        self._running = True
        self.state.jobs = []
        self.state.employers = []
        self.state.session = None
        self.state.feedback = []
        try:
            self._auth_sub = self.collaborator.on_auth_changed(self._on_auth_changed)
            self._jobs_sub = await self._open("jobs", self.collaborator.listen_jobs, self.collaborator.fetch_jobs, self._on_jobs)
            self._feedback_sub = await self._open(
                "feedback", self.collaborator.listen_feedback, self.collaborator.fetch_feedback, self._on_feedback
            )
        except BaseException:
            await self.stop()
            raise
        log.info("Remote mode: subscriptions open (%s)", ", ".join(s.name for s in self.subscriptions))

    async def stop(self) -> None:
        self._running = False
        for sub in self.subscriptions:
            sub.cancel()
        self._jobs_sub = self._feedback_sub = self._auth_sub = None
        self._auth_uid = None
        tasks, self._tasks = self._tasks, set()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        await self.stop()
        await self.collaborator.close()

    # --- Subscriptions ---
    async def _open(self, name: str, listen, fetch, callback) -> Subscription:
        def on_error(error: Exception) -> None:
            self._degrade(name, fetch, callback, error)

        try:
            return await listen(callback, on_error)
        except RemoteError as e:
            log.warning("No live %s listener (%s); polling every %.0fs", name, e, self.poll_interval)
            return PollingSubscription(fetch, callback, self.poll_interval, name=f"{name}-polling")

    def _degrade(self, name: str, fetch, callback, error: Exception) -> None:
        """A live listener broke: replace it with polling."""
        if not self._running:
            return
        attr = "_jobs_sub" if name == "jobs" else "_feedback_sub"
        current = getattr(self, attr)
        if isinstance(current, PollingSubscription):
            return
        log.warning("Live %s listener failed (%s); switching to polling", name, error)
        if current is not None:
            current.cancel()
        setattr(self, attr, PollingSubscription(fetch, callback, self.poll_interval, name=f"{name}-polling"))

    def _refresh(self, attr: str) -> None:
        """After a delegated write, have a polling subscription fetch the server state now."""
        current = getattr(self, attr)
        if isinstance(current, PollingSubscription):
            current.poll_now()

    def _on_jobs(self, records: list[dict]) -> None:
        if not self._running:
            return
        self.state.jobs = normalize_jobs(records)
        self._on_change()

    def _on_feedback(self, records: list[dict]) -> None:
        if not self._running:
            return
        self.state.feedback = parse_feedback(records)
        self._on_change()

    def _on_auth_changed(self, user: Optional[RemoteUser]) -> None:
        if not self._running:
            return
        self._auth_uid = user.uid if user else None
        if user is None:
            if self.state.session is not None:
                log.info("Remote auth reports no user; clearing session")
                self.state.session = None
                self._on_change()
            return
        if self.state.session is not None and self.state.session.id == user.uid:
            return
        task = asyncio.get_running_loop().create_task(self._resolve_session(user))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _resolve_session(self, user: RemoteUser) -> None:
        employer = await self._employer_for(user)
        # The identity may have changed while the lookup was in flight
        if not self._running or self._auth_uid != user.uid:
            return
        self._set_session(employer)
        self._on_change()

    async def _employer_for(self, user: RemoteUser) -> Employer:
        try:
            employer = await self.collaborator.get_employer(user.uid)
        except RemoteError as e:
            log.warning("Employer lookup for %s failed: %s", user.uid, e)
            employer = None
        if employer is None:
            employer = Employer(id=user.uid, company_name=user.email.split("@")[0], email=user.email)
        return employer.public()

    def _set_session(self, employer: Employer) -> None:
        self.state.session = employer
        if all(e.id != employer.id for e in self.state.employers):
            self.state.employers.append(employer)

    # --- Session ---
    async def login(self, email: str, password: str) -> Optional[Employer]:
        try:
            user = await self.collaborator.sign_in(email, password)
        except AuthError as e:
            log.info("Sign-in rejected for %s: %s", email, e)
            return None
        except RemoteError as e:
            log.warning("Sign-in for %s failed: %s", email, e)
            return None
        employer = await self._employer_for(user)
        self._set_session(employer)
        return employer

    async def register(self, company_name: str, email: str, password: str) -> Optional[Employer]:
        try:
            employer = (await self.collaborator.sign_up(company_name, email, password)).public()
        except RemoteError as e:
            log.info("Remote registration for %s failed: %s", email, e)
            return None
        self._set_session(employer)
        return employer

    async def logout(self) -> None:
        try:
            await self.collaborator.sign_out()
        except RemoteError as e:
            log.warning("Remote sign-out failed (ignored): %s", e)

    # --- Jobs ---
    async def add_job(self, job: Job) -> bool:
        try:
            await self.collaborator.add_job(job.to_record(), job.employer_id)
        except RemoteError as e:
            log.error("Publishing job %s failed: %s", job.id, e)
            return False
        self._refresh("_jobs_sub")
        return True

    async def update_job(self, job: Job, draft: JobDraft) -> bool:
        data = draft.model_dump(mode="json", by_alias=True, exclude_unset=True)
        try:
            await self.collaborator.update_job(job.id, data)
        except RemoteError as e:
            log.warning("Updating job %s failed: %s", job.id, e)
            return False
        self._refresh("_jobs_sub")
        return True

    async def delete_job(self, job: Job) -> bool:
        try:
            await self.collaborator.delete_job(job.id)
        except RemoteError as e:
            log.warning("Deleting job %s failed: %s", job.id, e)
            return False
        self._refresh("_jobs_sub")
        return True

    async def add_application(self, job: Job, application: Application) -> bool:
        try:
            await self.collaborator.add_application(job.id, application.to_record())
        except RemoteError as e:
            log.warning("Submitting application to job %s failed: %s", job.id, e)
            return False
        self._refresh("_jobs_sub")
        return True

    async def add_feedback(self, feedback: Feedback) -> bool:
        try:
            await self.collaborator.add_feedback(feedback.to_record())
        except RemoteError as e:
            log.warning("Submitting feedback failed: %s", e)
            return False
        self._refresh("_feedback_sub")
        return True
