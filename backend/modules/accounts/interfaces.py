"""
Accounts module interface.

Everything a signed-in user can see or do with their own account.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IAccountsService(Protocol):
    """Interface for account data and subscription management."""

    async def get_app_data(self, user_id: str) -> dict[str, Any]:
        """
        Get a user's effective subscription view.

        Team members see their owner's subscription. Team owners see theirs
        under team_subscription.
        """
        ...

    async def get_app_data_token(self, user_id: str) -> str:
        """Get the user's app data as a signed JWT."""
        ...

    async def get_billing_data(self, user_id: str) -> dict[str, Any]:
        """
        Get a user's billing view: their own subscription, transactions,
        and team members or team owner.

        Raises:
            UpstreamProviderError: If transactions can't be loaded
        """
        ...

    async def get_billing_data_token(self, user_id: str) -> str:
        """Get the user's billing data as a signed JWT."""
        ...

    async def cancel_subscription(self, user_id: str) -> None:
        """
        Cancel the user's subscription with their payment provider.

        Raises:
            StatusError: 400 if there's nothing to cancel, or the subscription
                is managed manually
            UpstreamProviderError: If the provider rejects the cancellation
        """
        ...

    async def update_team_size(self, user_id: str, new_team_size: int | None) -> None:
        """
        Change the seat count of the user's team subscription, and wait for
        the provider to confirm it.

        Args:
            user_id: The team owner
            new_team_size: Target seat count

        Raises:
            NoTeamSubscriptionError: 403 without an active team subscription
            StatusError: 400 for invalid sizes or non-Paddle subscriptions
            TeamConflictError: 409 below the number of assigned seats
            SubscriptionUpdateError: 500 if the update fails or isn't confirmed
        """
        ...

    async def update_team(self, user_id: str, ids_to_remove: list[str], emails_to_add: list[str]) -> None:
        """
        Add and remove members of the user's team.

        Raises:
            NoTeamSubscriptionError: 403 without a team subscription, or
                if the new team needs more seats than are available
            StatusError: 400 for duplicate ids or emails
            TeamConflictError: 409 for invalid removals or additions
        """
        ...
