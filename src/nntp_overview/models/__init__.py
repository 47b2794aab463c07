"""Data models for the NNTP overview client.

This module contains Pydantic models for decoded overview headers and
newsgroup listings.
"""

from nntp_overview.models.header import Header
from nntp_overview.models.newsgroup import NewsgroupDetail, NewsgroupOverview, NewsgroupStatus

__all__ = ["Header", "NewsgroupDetail", "NewsgroupOverview", "NewsgroupStatus"]
