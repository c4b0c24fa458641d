"""Pydantic schema for the upstream username validation response.

GET https://auth.roblox.com/v1/usernames/validate?username=...&birthday=...
returns ``{"code": 0, "message": "Username is valid"}`` on success.
"""

from pydantic import BaseModel, ConfigDict, Field

UPSTREAM_CODE_AVAILABLE = 0
UPSTREAM_CODE_TAKEN = 1
UPSTREAM_CODE_FILTERED = 2


class UpstreamPayload(BaseModel):
    """Validation endpoint body."""

    model_config = ConfigDict(extra="ignore")

    code: int = Field(description="Validation result code (0 valid, 1 taken, 2 filtered)")
    message: str = Field(default="", description="Human-readable validation message")
