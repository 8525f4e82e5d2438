"""
Accounts module.

A signed-in user's view of their account, and the subscription and team
changes they can make themselves.

Public API:
- IAccountsService: Interface for account data and subscription management
- DataSigner: Signs app and billing data as JWTs
- View builders: build_user_app_data, get_max_team_size
- Accounts exceptions: NoTeamSubscriptionError, TeamConflictError, SubscriptionUpdateError
"""

from .interfaces import IAccountsService
from .models import (
    TeamMemberEntry,
    TeamOwnerEntry,
    UpdateTeamRequest,
    UpdateTeamSizeRequest,
    SuccessResponse,
)
from .signing import DataSigner
from .views import build_user_app_data, get_max_team_size, migrate_old_user_data
from .exceptions import (
    NoTeamSubscriptionError,
    TeamConflictError,
    SubscriptionUpdateError,
)

__all__ = [
    # Interface
    "IAccountsService",
    # Models
    "TeamMemberEntry",
    "TeamOwnerEntry",
    "UpdateTeamRequest",
    "UpdateTeamSizeRequest",
    "SuccessResponse",
    # Signing
    "DataSigner",
    # Views
    "build_user_app_data",
    "get_max_team_size",
    "migrate_old_user_data",
    # Exceptions
    "NoTeamSubscriptionError",
    "TeamConflictError",
    "SubscriptionUpdateError",
]
