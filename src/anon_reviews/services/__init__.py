"""Business logic services for the anonymous review application."""

from .blockchain import ReviewContractClient
from .discord import DiscordNotifier
from .ethos import EthosClient
from .guards import AbuseGuardService
from .submission import ReviewSubmissionService
from .twitter import TwitterOAuthClient

__all__ = [
    "AbuseGuardService",
    "DiscordNotifier",
    "EthosClient",
    "ReviewContractClient",
    "ReviewSubmissionService",
    "TwitterOAuthClient",
]
