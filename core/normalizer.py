"""
Normalizer — maps raw job records (remote documents, stored snapshots,
the default dataset) onto the canonical Job model.

Validation happens against the pydantic models; everything here only
reconciles the shapes that reach the models.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from models.job import Job
from tools.log import get_logger
from tools.timeutil import parse_timestamp, utc_now

log = get_logger(__name__)

# Remote-only bookkeeping fields that have no place on the canonical Job
_REMOTE_ONLY = ("createdAt", "updatedAt")


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Resolve any timestamp encoding the backends produce:
    ISO string, datetime, a server-timestamp handle (anything with
    to_datetime()), or a {"seconds", "nanoseconds"} mapping.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return (value if value.tzinfo else value.replace(tzinfo=timezone.utc)).astimezone(timezone.utc)
    if isinstance(value, str):
        return parse_timestamp(value)
    if hasattr(value, "to_datetime"):
        return to_datetime(value.to_datetime())
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if isinstance(seconds, (int, float)):
            return datetime.fromtimestamp(seconds + nanos / 1_000_000_000, tz=timezone.utc)
    return None


def to_iso(value: Any) -> Optional[str]:
    moment = to_datetime(value)
    return moment.isoformat() if moment else None


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value if v is not None]
    return value


def normalize_job(raw: dict) -> Job:
    """
    Map one raw job record to a Job.

    - createdAt wins over postedDate; both are reduced to one ISO-8601
      string, and a record with neither gets the current time
    - null values are dropped so optional fields stay absent
    - applications default to [], resumePreference to "file"

    Normalizing the output's record again yields an equal Job.

    Raises:
        pydantic.ValidationError: If the record lacks required fields (id,
            employerId, title) or carries invalid enum values.
    """
    record = _drop_nulls(dict(raw))

    posted = to_iso(record.get("createdAt")) or to_iso(record.get("postedDate"))
    if posted is None:
        # Keep an unparseable but present string rather than inventing a date
        original = record.get("postedDate")
        posted = original if isinstance(original, str) and original.strip() else utc_now().isoformat()
    record["postedDate"] = posted

    for key in _REMOTE_ONLY:
        record.pop(key, None)

    if not isinstance(record.get("applications"), list):
        record["applications"] = []
    if not isinstance(record.get("requirements"), dict):
        record["requirements"] = {}
    if not record.get("resumePreference"):
        record["resumePreference"] = "file"
    if not record.get("jobType"):
        record["jobType"] = "emprego"

    return Job.model_validate(record)


def posted_at(job: Job) -> datetime:
    """Sort key: the job's creation time (unparseable dates sort last)."""
    return parse_timestamp(job.posted_date) or datetime.min.replace(tzinfo=timezone.utc)


def sort_newest_first(jobs: Iterable[Job]) -> list[Job]:
    """Stable sort by creation time, newest first."""
    return sorted(jobs, key=posted_at, reverse=True)


def normalize_jobs(records: Iterable[dict]) -> list[Job]:
    """
    Normalize a whole collection. Records that cannot be mapped are skipped
    with a warning; the result is newest first.
    """
    jobs = []
    for raw in records:
        if not isinstance(raw, dict):
            log.warning("Skipping job record of type %s", type(raw).__name__)
            continue
        try:
            jobs.append(normalize_job(raw))
        except ValidationError as e:
            log.warning("Skipping malformed job record %r: %s", raw.get("id"), e.errors()[:1])
    return sort_newest_first(jobs)
