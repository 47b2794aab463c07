"""Newsgroup listing models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NewsgroupStatus(str, Enum):
    """Posting status flag reported by NEWGROUPS and LIST ACTIVE."""

    POSTING_PERMITTED = "y"
    POSTING_PROHIBITED = "n"
    MODERATED = "m"


class NewsgroupOverview(BaseModel):
    """A newsgroup as listed by NEWGROUPS."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Newsgroup name")
    low: int = Field(ge=0, description="Lowest reported article number")
    high: int = Field(ge=0, description="Highest reported article number")
    status: NewsgroupStatus = Field(description="Posting status")


class NewsgroupDetail(BaseModel):
    """A newsgroup as selected by GROUP."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Newsgroup name")
    low: int = Field(ge=0, description="Lowest reported article number")
    high: int = Field(ge=0, description="Highest reported article number")
    number: int = Field(ge=0, description="Estimated number of articles in the group")
