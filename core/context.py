"""
Application State Core — the single source of truth for jobs, employers,
the logged-in session and applications.

AppContext owns the in-memory collections and exposes every operation the
pages need. Which backend those operations hit is decided once, by the
storage strategy the context was built with (see core.factory).
"""

import uuid
from typing import Callable, Optional, Union

from pydantic import ValidationError

from core.feedback import FeedbackBoard
from core.search import filter_jobs
from core.strategies import StorageStrategy
from core.validation import application_error, registration_error
from models.job import Application, Job, JobDraft, JobType
from models.state import AppState, CoreState, Page
from tools import local_store
from tools.file_handler import Content
from tools.local_store import LocalStore
from tools.log import get_logger
from tools.notifier import JOB_POST_FAILED, LOGIN_REQUIRED, AlertNotifier
from tools.timeutil import utc_now_iso

log = get_logger(__name__)

ChangeListener = Callable[[], None]

INVALID_LOGIN = "E-mail ou senha inválidos."
EMAIL_IN_USE = "Este e-mail já está em uso."
REGISTRATION_FAILED = "Não foi possível criar a conta."


class AppContext:
    """
    Owned application context.

    Usage:
        async with create_context(settings) as ctx:
            await ctx.login("rh@empresa.com", "segredo")
            await ctx.add_job({"title": "Dev", "location": "SP"})

    Mutating operations are coroutines: in local mode they finish without
    suspending, in remote mode they await the backend round-trip. None of
    them raise; failures come back as False/None, with the form message in
    `error` and blocking notices on `alerts`.
    """

    def __init__(
        self,
        strategy: StorageStrategy,
        store: LocalStore,
        content: Content,
        alerts: Optional[AlertNotifier] = None,
    ) -> None:
        self.strategy = strategy
        self.store = store
        self.content = content
        self.alerts = alerts or AlertNotifier()
        self.state = CoreState()
        self.page = Page.HOME
        self.error: Optional[str] = None
        self.feedback_board = FeedbackBoard(self.state, store, strategy, on_change=self._changed)
        self._listeners: list[ChangeListener] = []
        self._started = False
        self._closed = False
        strategy.bind(self.state, self._changed)

    # --- Lifecycle ---
    async def start(self) -> "AppContext":
        """Load state and open subscriptions. Calling it again re-initializes."""
        if self._started:
            await self.strategy.stop()
        self._closed = False
        self.state.favorites = [
            job_id for job_id in self.store.read_list(local_store.FAVORITES, []) if isinstance(job_id, str)
        ]
        self.feedback_board.load()
        await self.strategy.start()
        self._started = True
        log.info("Job board started in %s mode", self.mode)
        return self

    async def close(self) -> None:
        """Cancel every subscription and release the backend. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._started = False
        await self.strategy.close()
        self._listeners.clear()

    async def __aenter__(self) -> "AppContext":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def mode(self) -> str:
        return "remote" if self.strategy.remote else "local"

    # --- Change notification ---
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call `listener` whenever the read model changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        if self._closed:
            return
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                log.error("Change listener %r failed: %s", listener, e)

    # --- Read model ---
    @property
    def jobs(self) -> list[Job]:
        return list(self.state.jobs)

    @property
    def employers(self) -> list:
        return list(self.state.employers)

    @property
    def session(self):
        return self.state.session

    @property
    def favorites(self) -> list[str]:
        return list(self.state.favorites)

    @property
    def news(self):
        return list(self.content.news)

    @property
    def about(self) -> str:
        return self.content.about

    @property
    def guides(self):
        return list(self.content.guides)

    def snapshot(self) -> AppState:
        return AppState(
            page=self.page,
            jobs=tuple(self.state.jobs),
            employers=tuple(e.public() for e in self.state.employers),
            session=self.state.session,
            favorites=tuple(self.state.favorites),
            feedback=tuple(self.state.feedback),
            news=tuple(self.content.news),
            about=self.content.about,
            guides=tuple(self.content.guides),
        )

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.state.find_job(job_id)

    def search(self, term: str = "", location: str = "", job_type: Optional[Union[JobType, str]] = None) -> list[Job]:
        return filter_jobs(self.state.jobs, term, location, job_type)

    def employer_jobs(self, employer_id: Optional[str] = None) -> list[Job]:
        """Jobs posted by the given employer, or by the logged-in one."""
        if employer_id is None:
            if self.state.session is None:
                return []
            employer_id = self.state.session.id
        return [job for job in self.state.jobs if job.employer_id == employer_id]

    # --- Navigation ---
    def set_page(self, page: Union[Page, str]) -> Page:
        try:
            self.page = Page(page)
        except ValueError:
            log.debug("Unknown page %r, showing home", page)
            self.page = Page.HOME
        self._changed()
        return self.page

    # --- Session ---
    async def login(self, email: str, password: str) -> bool:
        employer = await self.strategy.login(email, password)
        if employer is None:
            self.error = INVALID_LOGIN
            return False
        self._start_session(employer)
        return True

    async def register(self, company_name: str, email: str, password: str) -> bool:
        self.error = registration_error(company_name, email, password, remote=self.strategy.remote)
        if self.error:
            return False
        employer = await self.strategy.register(company_name, email, password)
        if employer is None:
            self.error = REGISTRATION_FAILED if self.strategy.remote else EMAIL_IN_USE
            return False
        self._start_session(employer)
        log.info("Registered employer %s", employer.company_name)
        return True

    def _start_session(self, employer) -> None:
        self.error = None
        self.state.session = employer.public()
        self.strategy.save_session()
        self.page = Page.EMPLOYER
        self._changed()

    async def logout(self) -> None:
        self.state.session = None
        self.strategy.save_session()
        await self.strategy.logout()
        self._changed()

    # --- Jobs ---
    async def add_job(self, job_data: Union[JobDraft, dict]) -> Optional[Job]:
        """
        Publish a new job for the logged-in employer.

        In remote mode the returned Job is what was sent; it appears in
        `jobs` only once the backend's notification arrives.
        """
        session = self.state.session
        if session is None:
            self.alerts.alert(LOGIN_REQUIRED)
            return None
        draft = self._draft(job_data)
        if draft is None:
            return None

        job = Job(
            **draft.model_dump(),
            id=f"job-{uuid.uuid4().hex}",
            employer_id=session.id,
            posted_date=utc_now_iso(),
            applications=[],
        )
        if not await self.strategy.add_job(job):
            self.alerts.alert(JOB_POST_FAILED)
            return None
        if not self.strategy.remote:
            self._changed()
        return job

    async def update_job(self, job_id: str, job_data: Union[JobDraft, dict]) -> bool:
        job = self.state.find_job(job_id)
        if job is None:
            log.debug("update_job: no job %s", job_id)
            return False
        draft = self._draft(job_data)
        if draft is None:
            return False
        if not await self.strategy.update_job(job, draft):
            return False
        if not self.strategy.remote:
            self._changed()
        return True

    async def delete_job(self, job_id: str) -> bool:
        job = self.state.find_job(job_id)
        if job is None:
            return False
        if not await self.strategy.delete_job(job):
            return False
        if job_id in self.state.favorites:
            self.toggle_favorite(job_id)
        elif not self.strategy.remote:
            self._changed()
        return True

    async def add_application(self, job_id: str, application_data: dict) -> Optional[Application]:
        job = self.state.find_job(job_id)
        if job is None:
            log.warning("Application for unknown job %s rejected", job_id)
            return None
        self.error = application_error(job, application_data)
        if self.error:
            return None

        data = {k: v for k, v in application_data.items() if k not in ("id", "date")}
        try:
            application = Application.model_validate({**data, "id": f"app-{uuid.uuid4().hex}", "date": utc_now_iso()})
        except ValidationError as e:
            log.warning("Invalid application for job %s: %s", job_id, e.errors()[:1])
            self.error = "Dados da candidatura inválidos."
            return None

        if not await self.strategy.add_application(job, application):
            return None
        if not self.strategy.remote:
            self._changed()
        return application

    def _draft(self, job_data: Union[JobDraft, dict]) -> Optional[JobDraft]:
        if isinstance(job_data, JobDraft):
            return job_data
        try:
            return JobDraft.model_validate(job_data)
        except ValidationError as e:
            log.warning("Invalid job data: %s", e.errors()[:1])
            self.error = "Preencha título e local da vaga."
            return None

    # --- Favorites (device-local in both modes) ---
    def toggle_favorite(self, job_id: str) -> bool:
        """Add or remove a favorite. Returns True if the job is now a favorite."""
        if job_id in self.state.favorites:
            self.state.favorites = [f for f in self.state.favorites if f != job_id]
            favorite = False
        else:
            self.state.favorites = [*self.state.favorites, job_id]
            favorite = True
        self.store.write(local_store.FAVORITES, self.state.favorites)
        self._changed()
        return favorite

    def is_favorite(self, job_id: str) -> bool:
        return job_id in self.state.favorites

    def favorite_jobs(self) -> list[Job]:
        """Favorited jobs that still exist, newest first."""
        wanted = set(self.state.favorites)
        return [job for job in self.state.jobs if job.id in wanted]
