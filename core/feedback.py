"""
Feedback Board — the public comments page.

Its users are a lightweight, device-local identity (name + email) kept in the
feedbackUser slot; they are unrelated to employer accounts. Entries are
stored through the context's storage strategy like any other collection.
"""

import uuid
from typing import Callable, Optional, Union

from core.strategies import StorageStrategy
from core.validation import feedback_login_error, feedback_message_error, feedback_register_error
from models.feedback import Feedback, FeedbackType, FeedbackUser
from models.state import CoreState
from tools import local_store
from tools.local_store import LocalStore
from tools.log import get_logger
from tools.timeutil import utc_now_iso

log = get_logger(__name__)

SUBMIT_FAILED = "Erro ao enviar feedback. Tente novamente."
LOGIN_FIRST = "Entre para enviar um feedback."


class FeedbackBoard:
    """
    Sign-in and submission for the feedback board.

    Every operation clears `error` on success and sets it to the message the
    form should display on failure.
    """

    def __init__(
        self,
        state: CoreState,
        store: LocalStore,
        strategy: StorageStrategy,
        on_change: Callable[[], None] = lambda: None,
    ) -> None:
        self.state = state
        self.store = store
        self.strategy = strategy
        self._on_change = on_change
        self.error: Optional[str] = None

    def load(self) -> None:
        """Restore the signed-in feedback user from the device."""
        raw = self.store.read(local_store.FEEDBACK_USER)
        if isinstance(raw, dict):
            try:
                self.state.feedback_user = FeedbackUser.model_validate(raw)
            except ValueError:
                log.warning("Stored feedback user is malformed, ignoring it")

    @property
    def user(self) -> Optional[FeedbackUser]:
        return self.state.feedback_user

    @property
    def entries(self) -> list[Feedback]:
        return list(self.state.feedback)

    def _sign_in(self, user: FeedbackUser) -> None:
        self.state.feedback_user = user
        self.store.write(local_store.FEEDBACK_USER, user.to_record())
        self.error = None
        self._on_change()

    def login(self, email: str, password: str) -> bool:
        """Simulated sign-in: any non-blank credentials, named after the email's local part."""
        self.error = feedback_login_error(email, password)
        if self.error:
            return False
        self._sign_in(FeedbackUser(name=email.split("@")[0], email=email))
        return True

    def register(self, name: str, email: str, password: str) -> bool:
        self.error = feedback_register_error(name, email, password)
        if self.error:
            return False
        self._sign_in(FeedbackUser(name=name, email=email))
        return True

    def logout(self) -> None:
        self.state.feedback_user = None
        self.store.remove(local_store.FEEDBACK_USER)
        self._on_change()

    async def submit(self, feedback_type: Union[FeedbackType, str], message: str) -> Optional[Feedback]:
        """
        Post an entry signed by the current feedback user.

        In remote mode the entry shows up in `entries` once the feedback
        subscription delivers it.
        """
        user = self.state.feedback_user
        if user is None:
            self.error = LOGIN_FIRST
            return None
        self.error = feedback_message_error(message)
        if self.error:
            return None

        try:
            kind = FeedbackType(feedback_type)
        except ValueError:
            kind = FeedbackType.SUGGESTION
        entry = Feedback(
            id=f"fb-{uuid.uuid4().hex}",
            name=user.name,
            email=user.email,
            type=kind,
            message=message.strip(),
            date=utc_now_iso(),
        )
        if not await self.strategy.add_feedback(entry):
            self.error = SUBMIT_FAILED
            return None
        if not self.strategy.remote:
            self._on_change()
        return entry
