"""Overview header model.

One record per decoded overview line. Extension fields keep the distinction
between a column the server sent empty (key present, value ``""``) and a
column it omitted entirely (key absent).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class Header(BaseModel):
    """Metadata for a single article as reported by XOVER."""

    model_config = ConfigDict(frozen=True)

    message_number: int = Field(ge=0, description="Article number within the group")
    subject: str = Field(default="", description="Subject header")
    author: str = Field(default="", description="From header")
    date: datetime | None = Field(default=None, description="Parsed Date header")
    message_id: str = Field(default="", description="Message-ID header")
    references: str = Field(default="", description="Raw References header")
    byte_count: int = Field(default=0, ge=0, description="Article size in octets")
    line_count: int = Field(default=0, ge=0, description="Article body line count")

    extensions: Mapping[str, str] = Field(
        default_factory=dict,
        validate_default=True,
        description="Additional overview fields keyed by name without trailing colon",
    )

    @field_validator("extensions")
    @classmethod
    def _freeze_extensions(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @field_serializer("extensions")
    def _serialize_extensions(self, v: Mapping[str, str]) -> dict[str, str]:
        return dict(v)
