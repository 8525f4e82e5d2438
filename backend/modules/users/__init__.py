"""
Users module.

Facade over the identity-provider user store and its relational mirror.

Public API:
- IUserService: Interface for user record operations
- User: A user record with its app_metadata
- classify_metadata: Decides which metadata shape a user has
- get_team_owner_id: The team a user belongs to, whatever their shape
- User exceptions: UserNotFoundError, DuplicateUserError
"""

from .interfaces import IUserService
from .models import (
    User,
    MirroredUser,
    MetadataKind,
    BaseMetadata,
    TrialUserMetadata,
    PayingUserMetadata,
    TeamOwnerMetadata,
    TeamMemberMetadata,
    LICENSE_LOCK_DURATION,
    LICENSE_LOCK_DURATION_MS,
    classify_metadata,
    parse_metadata,
    has_own_subscription,
    has_paid_subscription,
    get_team_owner_id,
    is_subscription_active,
    to_epoch_ms,
    now_ms,
    is_lock_active,
)
from .exceptions import (
    UserError,
    UserNotFoundError,
    DuplicateUserError,
)

__all__ = [
    # Interface
    "IUserService",
    # Models
    "User",
    "MirroredUser",
    "MetadataKind",
    "BaseMetadata",
    "TrialUserMetadata",
    "PayingUserMetadata",
    "TeamOwnerMetadata",
    "TeamMemberMetadata",
    "LICENSE_LOCK_DURATION",
    "LICENSE_LOCK_DURATION_MS",
    "classify_metadata",
    "parse_metadata",
    "has_own_subscription",
    "has_paid_subscription",
    "get_team_owner_id",
    "is_subscription_active",
    "to_epoch_ms",
    "now_ms",
    "is_lock_active",
    # Exceptions
    "UserError",
    "UserNotFoundError",
    "DuplicateUserError",
]
