"""
File Handler Tool — loads the static content file and reads resume uploads.
"""

import base64
import mimetypes
import os
from dataclasses import dataclass, field

import yaml
from pydantic import ValidationError

from models.content import Guide, NewsArticle
from models.job import ResumeFile
from tools.log import get_logger

log = get_logger(__name__)

# Uploads larger than this are refused before encoding
MAX_RESUME_BYTES = 5 * 1024 * 1024


@dataclass
class Content:
    """Static configuration data: default dataset plus the fixed content blocks."""

    default_jobs: list[dict] = field(default_factory=list)
    default_employers: list[dict] = field(default_factory=list)
    news: list[NewsArticle] = field(default_factory=list)
    about: str = ""
    guides: list[Guide] = field(default_factory=list)


def load_content(yaml_path: str) -> Content:
    """
    Load static content and the default dataset from a YAML file.

    Args:
        yaml_path: Path to content.yaml.

    Returns:
        Content; sections that are missing or malformed come back empty.
    """
    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        log.warning("Could not load content from %s: %s", yaml_path, e)
        return Content()

    if not isinstance(data, dict):
        log.warning("Content file %s is not a mapping, ignoring it", yaml_path)
        return Content()

    news = _parse_entries(data.get("news"), NewsArticle, "news")
    guides = _parse_entries(data.get("guides"), Guide, "guide")

    return Content(
        default_jobs=[j for j in _as_list(data.get("default_jobs")) if isinstance(j, dict)],
        default_employers=[e for e in _as_list(data.get("default_employers")) if isinstance(e, dict)],
        news=news,
        about=str(data.get("about") or ""),
        guides=guides,
    )


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _parse_entries(entries, model, label: str) -> list:
    """Validate titled mappings against model; malformed entries are skipped with a warning."""
    parsed = []
    for entry in _as_list(entries):
        if not (isinstance(entry, dict) and entry.get("title")):
            continue
        try:
            item = model.model_validate(entry)
        except ValidationError as e:
            log.warning("Skipping malformed %s entry %r: %s", label, entry.get("title"), e)
            continue
        parsed.append(item)
    return parsed


def read_resume_file(path: str) -> ResumeFile:
    """
    Read a resume from disk and encode it for an application.

    Args:
        path: File to upload.

    Returns:
        ResumeFile with the base name, guessed media type and base64 content.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is empty or larger than MAX_RESUME_BYTES.
    """
    size = os.path.getsize(path)
    if size == 0:
        raise ValueError(f"{path} is empty")
    if size > MAX_RESUME_BYTES:
        raise ValueError(f"{path} is larger than {MAX_RESUME_BYTES // (1024 * 1024)} MB")

    with open(path, "rb") as f:
        content = base64.b64encode(f.read()).decode("ascii")

    media_type, _ = mimetypes.guess_type(path)
    return ResumeFile(
        name=os.path.basename(path),
        type=media_type or "application/octet-stream",
        content=content,
    )
