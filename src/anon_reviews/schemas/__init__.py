"""
Pydantic schemas for API request/response models.

Request bodies accept the camelCase keys sent by the browser client as well
as snake_case keys.
"""

from .auth import CsrfTokenResponse, MeResponse, ReputationInfo, ReputationResponse
from .review import ReviewSubmitRequest, ReviewSubmitResponse
from .slash import SlashSubmitRequest, SlashSubmitResponse

__all__ = [
    "CsrfTokenResponse", "MeResponse", "ReputationInfo", "ReputationResponse",
    "ReviewSubmitRequest", "ReviewSubmitResponse",
    "SlashSubmitRequest", "SlashSubmitResponse",
]
