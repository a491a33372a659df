"""
Remote collaborator contract — the narrow interface the core uses to talk to
an optional cloud backend (authentication, live job collection, feedback).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from backends.subscription import Subscription
from models.employer import Employer

RecordsCallback = Callable[[list[dict]], None]
ErrorCallback = Callable[[Exception], None]


class RemoteError(Exception):
    """A remote call failed (network, permission, unexpected response)."""


class AuthError(RemoteError):
    """Credentials were rejected, or the account already exists on sign-up."""


class SubscriptionError(RemoteError):
    """A live listener could not be established or has broken."""


class NotConfiguredError(RemoteError):
    """The remote backend is not configured."""


@dataclass(frozen=True)
class RemoteUser:
    """Identity reported by the remote auth provider."""

    uid: str
    email: str


@dataclass(frozen=True)
class ServerTimestamp:
    """
    Opaque server-assigned timestamp handle, as delivered by the document store
    before the consumer converts it.
    """

    seconds: int
    nanoseconds: int = 0

    @classmethod
    def now(cls) -> "ServerTimestamp":
        ts = datetime.now(timezone.utc).timestamp()
        seconds = int(ts)
        return cls(seconds=seconds, nanoseconds=int((ts - seconds) * 1_000_000_000))

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds + self.nanoseconds / 1_000_000_000, tz=timezone.utc)


class RemoteCollaborator(ABC):
    """
    Interface for the remote backend. Implementations: FirebaseCollaborator
    (REST) and InMemoryCollaborator (in-process, live notifications).

    Job records exchanged here are raw dicts in the wire shape (camelCase keys,
    createdAt possibly a ServerTimestamp or datetime); the core normalizes them.
    """

    def is_enabled(self) -> bool:
        """Return True if the backend is configured and should be used."""
        return True

    # --- Credentials ---
    @abstractmethod
    async def sign_up(self, company_name: str, email: str, password: str) -> Employer:
        """Create an account and its employer profile. Raises AuthError."""
        ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> RemoteUser:
        """Raises AuthError on bad credentials."""
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...

    @abstractmethod
    def on_auth_changed(self, callback: Callable[[Optional[RemoteUser]], None]) -> Subscription:
        """
        Call callback with the current user (or None) right away and again on
        every change of the authenticated identity.
        """
        ...

    @abstractmethod
    async def get_employer(self, uid: str) -> Optional[Employer]:
        ...

    # --- Jobs ---
    @abstractmethod
    async def listen_jobs(self, callback: RecordsCallback, on_error: ErrorCallback) -> Subscription:
        """
        Push the full job collection, newest first by createdAt, on every change.
        Raises SubscriptionError if a live listener cannot be established.
        """
        ...

    @abstractmethod
    async def fetch_jobs(self) -> list[dict]:
        """One-shot read of the job collection, newest first by createdAt."""
        ...

    @abstractmethod
    async def add_job(self, job: dict, employer_id: str) -> str:
        """Create a job document; returns its id."""
        ...

    @abstractmethod
    async def update_job(self, job_id: str, data: dict) -> None:
        ...

    @abstractmethod
    async def delete_job(self, job_id: str) -> None:
        ...

    @abstractmethod
    async def add_application(self, job_id: str, application: dict) -> None:
        """Append one application to the job's embedded application list."""
        ...

    # --- Feedback board ---
    @abstractmethod
    async def add_feedback(self, feedback: dict) -> None:
        ...

    @abstractmethod
    async def fetch_feedback(self) -> list[dict]:
        """One-shot read of feedback entries, newest first."""
        ...

    @abstractmethod
    async def listen_feedback(self, callback: RecordsCallback, on_error: ErrorCallback) -> Subscription:
        ...

    async def close(self) -> None:
        """Release network resources."""
