"""Slash request schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from anon_reviews.schemas.common import normalize_x_handle


class SlashSubmitRequest(BaseModel):
    """Body of a slash request."""

    profile_id: int = Field(..., ge=1, alias="profileId")
    profile_username: str = Field(..., min_length=1, alias="profileUsername")
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    csrf_token: str = Field(..., min_length=1, alias="csrfToken")
    request_nonce: str = Field(..., min_length=1, alias="requestNonce")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("profile_username")
    @classmethod
    def validate_profile_username(cls, v: str) -> str:
        """Store the handle without a leading "@"."""
        return normalize_x_handle(v)


class SlashSubmitResponse(BaseModel):
    """Acknowledgement of a slash request."""

    success: bool = True
    message: str = (
        "Slash request submitted successfully! We will review and process your request manually."
    )
    profile_username: str
