"""
Employer data model — an organization account that posts jobs.
"""

from typing import Optional
from pydantic import Field

from models.job import Record


class Employer(Record):
    """A registered employer. The session is simply the logged-in Employer (or None)."""

    id: str = Field(description="Employer id (remote uid in remote mode)")
    company_name: str = Field(description="Company display name")
    email: str = Field(description="Login email, unique across employers")
    password: Optional[str] = Field(
        default=None, description="Local-mode credential; absent when the remote backend manages auth"
    )

    def public(self) -> "Employer":
        """Copy without the credential."""
        return self.model_copy(update={"password": None})
