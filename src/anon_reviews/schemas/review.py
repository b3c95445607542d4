"""Review submission schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from anon_reviews.schemas.common import normalize_x_handle


class ReviewSubmitRequest(BaseModel):
    """Body of a review submission.

    Sentiment is kept as a plain string so an unknown value can be reported
    separately from missing fields.
    """

    profile_id: int | None = Field(None, alias="profileId", description="Ethos profile id of the target")
    profile_username: str = Field(..., min_length=1, alias="profileUsername", description="X handle of the target")
    title: str = Field(..., min_length=1, description="Short review title, stored as the on-chain comment")
    description: str = Field(..., min_length=1, description="Long-form review text")
    sentiment: str = Field(..., min_length=1, description="negative, neutral or positive")
    csrf_token: str = Field(..., min_length=1, alias="csrfToken")
    request_nonce: str = Field(..., min_length=1, alias="requestNonce")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("profile_username")
    @classmethod
    def validate_profile_username(cls, v: str) -> str:
        """Store the handle without a leading "@"."""
        return normalize_x_handle(v)


class ReviewSubmitResponse(BaseModel):
    """Result of a confirmed review submission."""

    success: bool = True
    message: str = "Review submitted successfully to blockchain"
    transaction_hash: str
    explorer_url: str
    review_id: int | None = None
    review_url: str | None = None
