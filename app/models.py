from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HandoffType(str, Enum):
    """Kind of handoff; selects the notification label and the CRM tag."""

    PROGRESSIVE_PROFILE = "progressive_profile"
    HUMAN_HANDOFF = "human_handoff"

    @property
    def label(self) -> str:
        if self is HandoffType.PROGRESSIVE_PROFILE:
            return "🟣 Progressive Profile"
        return "🟢 Human Handoff"

    @property
    def tag(self) -> str:
        if self is HandoffType.PROGRESSIVE_PROFILE:
            return "tsor-progressive-profile"
        return "tsor-human-handoff"


class HandoffPayload(BaseModel):
    """Lead submission forwarded to the notification webhook and the CRM.

    Only ``name`` and ``email`` are required, and that check is left to the
    route so the caller gets the fixed 400 message instead of a schema error.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: HandoffType = HandoffType.HUMAN_HANDOFF
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    message: str | None = None
    transcript: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> HandoffType:
        if value == HandoffType.PROGRESSIVE_PROFILE.value:
            return HandoffType.PROGRESSIVE_PROFILE
        return HandoffType.HUMAN_HANDOFF

    @property
    def has_required_fields(self) -> bool:
        return bool(self.name and self.email)


class HandoffResponse(BaseModel):
    """Acknowledgement returned once both dispatches were attempted."""

    ok: bool = Field(default=True)


class ErrorResponse(BaseModel):
    """Error response envelope to keep errors consistent."""

    error: str
