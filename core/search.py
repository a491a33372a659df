"""
Search — the home page's job filter.
"""

from typing import Iterable, Optional, Union

from models.job import Job, JobType


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle in (haystack or "").lower()


def filter_jobs(
    jobs: Iterable[Job],
    term: str = "",
    location: str = "",
    job_type: Optional[Union[JobType, str]] = None,
) -> list[Job]:
    """
    Filter jobs, keeping their order.

    Args:
        jobs: Jobs to filter (already newest first).
        term: Case-insensitive substring of the title or company name.
        location: Case-insensitive substring of the location.
        job_type: Only keep this category. None or "" keeps all.

    Returns:
        The matching jobs.
    """
    term = (term or "").strip().lower()
    location = (location or "").strip().lower()
    wanted = JobType(job_type) if job_type else None

    matches = []
    for job in jobs:
        if term and not (_contains(job.title, term) or _contains(job.company_name, term)):
            continue
        if location and not _contains(job.location, location):
            continue
        if wanted is not None and job.job_type != wanted:
            continue
        matches.append(job)
    return matches
