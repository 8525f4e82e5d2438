"""
User module interface.

Other modules should depend on IUserService, not the concrete implementation.
The webhook and accounts modules read and patch user metadata through it
without knowing that two stores sit behind it.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from .models import User


@runtime_checkable
class IUserService(Protocol):
    """
    Interface for user record operations.

    Patches passed to update_user_metadata may use None to delete a field.
    """

    async def get_user(self, user_id: str) -> User:
        """
        Get a user by id.

        Args:
            user_id: Identity provider user id

        Returns:
            The user record

        Raises:
            UserNotFoundError: If no such user exists
            UpstreamProviderError: If the identity provider fails
        """
        ...

    async def get_users_by_email(self, email: str) -> list[User]:
        """
        Find users by email address.

        Args:
            email: Lower-cased email address

        Returns:
            Matching users, normally zero or one
        """
        ...

    async def create_user(self, email: str, app_metadata: Optional[dict[str, Any]] = None) -> User:
        """
        Create a user, mirroring it into the relational store.

        Args:
            email: Lower-cased email address
            app_metadata: Initial metadata

        Returns:
            The created user
        """
        ...

    async def get_or_create_user(self, email: str) -> User:
        """
        Get the single user with this email, creating one if none exists.

        Raises:
            DuplicateUserError: If more than one user has this email
        """
        ...

    async def update_user_metadata(self, user_id: str, patch: dict[str, Any]) -> None:
        """
        Merge a patch into a user's app_metadata in both stores.

        Args:
            user_id: Identity provider user id
            patch: Fields to set; a None value deletes that field

        Raises:
            UpstreamProviderError: If the primary write fails
        """
        ...

    async def get_team_members(self, owner_id: str) -> list[User]:
        """
        Get every user whose subscription_owner_id is the given owner.

        Args:
            owner_id: Team owner's user id

        Returns:
            Member records, in no particular order
        """
        ...

    async def get_user_id_for_token(self, access_token: str) -> str:
        """
        Resolve a bearer access token to a user id.

        Raises:
            AuthenticationError: If the token is not accepted
        """
        ...
