"""
Read model — what consumers see of the application state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TypedDict

from models.content import Guide, NewsArticle
from models.employer import Employer
from models.feedback import Feedback, FeedbackUser
from models.job import Job


class Page(str, Enum):
    HOME = "home"
    EMPLOYER = "employer"
    NEWS = "news"
    ABOUT = "about"
    FEEDBACK = "feedback"
    EDUCATION = "education"


class AppState(TypedDict):
    """
    Snapshot of the core's collections at one point in time.
    Consumers read this; only the core mutates the underlying state.
    """

    page: Page

    # Newest first by posted date
    jobs: tuple[Job, ...]

    employers: tuple[Employer, ...]

    # Logged-in employer, None when logged out
    session: Optional[Employer]

    # Job ids favorited on this device
    favorites: tuple[str, ...]

    # Feedback board entries, newest first
    feedback: tuple[Feedback, ...]

    news: tuple[NewsArticle, ...]
    about: str
    guides: tuple[Guide, ...]


@dataclass
class CoreState:
    """
    The mutable collections behind AppState. Owned by AppContext and changed
    only by the core (the context and its storage strategy).
    """

    jobs: list[Job] = field(default_factory=list)
    employers: list[Employer] = field(default_factory=list)
    session: Optional[Employer] = None
    feedback: list[Feedback] = field(default_factory=list)
    favorites: list[str] = field(default_factory=list)
    feedback_user: Optional[FeedbackUser] = None

    def find_job(self, job_id: str) -> Optional[Job]:
        return next((job for job in self.jobs if job.id == job_id), None)

    def replace_job(self, job: Job) -> bool:
        for i, existing in enumerate(self.jobs):
            if existing.id == job.id:
                self.jobs[i] = job
                return True
        return False

    def find_employer(self, email: str) -> Optional[Employer]:
        return next((e for e in self.employers if e.email == email), None)
