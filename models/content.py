"""
Static content models — news articles and education guides.
"""

from pydantic import BaseModel, Field


class NewsArticle(BaseModel):
    title: str
    description: str = ""
    link: str = ""
    source: str = ""


class GuideSection(BaseModel):
    heading: str
    tips: list[str] = Field(default_factory=list)


class Guide(BaseModel):
    """An educational guide shown on the education page."""

    title: str
    sections: list[GuideSection] = Field(default_factory=list)
