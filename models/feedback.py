"""
Feedback data model — comments left on the public feedback board.
"""

from enum import Enum
from pydantic import Field

from models.job import Record


class FeedbackType(str, Enum):
    PRAISE = "elogio"
    CRITICISM = "critica"
    QUESTION = "duvida"
    SUGGESTION = "sugestao"


class FeedbackUser(Record):
    """Lightweight identity used only to sign feedback entries."""

    name: str
    email: str


class Feedback(Record):
    id: str = Field(description="Unique feedback id")
    name: str = Field(description="Author display name")
    email: str = Field(description="Author email")
    type: FeedbackType = Field(default=FeedbackType.SUGGESTION)
    message: str
    date: str = Field(description="Submission time, ISO-8601")
