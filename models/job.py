"""
Job data model — a posted opportunity and the applications it receives.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class JobType(str, Enum):
    """Job category (stored values are the ones the product has always used)."""
    EMPLOYMENT = "emprego"
    INTERNSHIP = "estagio"
    APPRENTICESHIP = "jovem-aprendiz"
    COURSE = "curso"


class ResumePreference(str, Enum):
    """Which resume form an applicant must provide."""
    FILE = "file"
    TEXT = "text"
    BOTH = "both"  # either one is enough
    NONE = "none"


class Record(BaseModel):
    """Base for models persisted as camelCase JSON records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        """Serialize to the stored JSON shape. Unset optional fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Requirements(Record):
    education: Optional[str] = Field(default=None, description="Required schooling")
    experience: Optional[str] = Field(default=None, description="Required experience")
    profile: Optional[str] = Field(default=None, description="Desired candidate profile")


class ResumeFile(Record):
    """An uploaded resume, carried inline as base64."""

    name: str = Field(description="Original filename")
    type: str = Field(default="application/octet-stream", description="Media type")
    content: str = Field(description="Base64-encoded file content")


class Application(Record):
    """A candidate's submission against a job. Never edited once created."""

    id: str = Field(description="Unique application id")
    full_name: str = Field(description="Applicant full name")
    email: str = Field(description="Applicant email")
    phone: str = Field(description="Applicant phone")
    resume_file: Optional[ResumeFile] = Field(default=None, description="Uploaded resume")
    resume_text: Optional[str] = Field(default=None, description="Pasted resume")
    date: str = Field(description="Submission time, ISO-8601")


class JobDraft(Record):
    """
    The employer-editable part of a job, as filled in the post/edit form.
    Everything a Job has except id, owner, creation time and applications.
    """

    job_type: JobType = Field(default=JobType.EMPLOYMENT, description="Job category")
    title: str = Field(description="Job title")
    company_name: Optional[str] = Field(default=None, description="Company name")
    area: Optional[str] = Field(default=None, description="Sector / area")
    location: str = Field(description="City, state or region")
    duration: Optional[str] = Field(default=None, description="Contract or course duration")
    salary: Optional[str] = None
    benefits: Optional[str] = None
    work_hours: Optional[str] = None
    work_schedule: Optional[str] = None
    work_scale: Optional[str] = Field(default=None, description="On-site, hybrid, remote, shift scale")
    requirements: Requirements = Field(default_factory=Requirements)
    description: Optional[str] = None
    course_contact: Optional[str] = Field(default=None, description="Link, phone or email for courses")
    resume_preference: ResumePreference = Field(default=ResumePreference.FILE)

    @field_validator("title", "location")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class Job(Record):
    """Represents a single job posting on the board."""

    id: str = Field(description="Unique job id, assigned at creation")
    employer_id: str = Field(description="Owning employer id")
    job_type: JobType = Field(default=JobType.EMPLOYMENT)
    title: str = Field(description="Job title")
    company_name: Optional[str] = None
    area: Optional[str] = None
    location: str = Field(default="", description="City, state or region")
    duration: Optional[str] = None
    salary: Optional[str] = None
    benefits: Optional[str] = None
    work_hours: Optional[str] = None
    work_schedule: Optional[str] = None
    work_scale: Optional[str] = None
    requirements: Requirements = Field(default_factory=Requirements)
    description: Optional[str] = None
    course_contact: Optional[str] = None
    posted_date: str = Field(description="Creation time, ISO-8601")
    applications: list[Application] = Field(default_factory=list)
    resume_preference: ResumePreference = Field(default=ResumePreference.FILE)

    def with_draft(self, draft: JobDraft) -> "Job":
        """Apply the fields set on the draft; identity, owner, date and applications are kept."""
        data = self.model_dump()
        data.update(draft.model_dump(exclude_unset=True))
        data.update(
            id=self.id,
            employer_id=self.employer_id,
            posted_date=self.posted_date,
            applications=self.applications,
        )
        return Job.model_validate(data)

    def with_application(self, application: Application) -> "Job":
        return self.model_copy(update={"applications": [*self.applications, application]})


# Names of the fields an edit may replace
MUTABLE_FIELDS = frozenset(JobDraft.model_fields)
