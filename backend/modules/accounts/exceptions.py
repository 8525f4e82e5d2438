"""
Accounts module exceptions.

These exceptions are raised by the accounts module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import StatusError


class NoTeamSubscriptionError(StatusError):
    """Raised when a team operation is attempted without an active team subscription."""

    def __init__(self, message: str = "Your account does not have a Team subscription"):
        super().__init__(403, message, code="NO_TEAM_SUBSCRIPTION")


class TeamConflictError(StatusError):
    """Raised when a team change conflicts with current membership."""

    def __init__(self, message: str):
        super().__init__(409, message, code="TEAM_CONFLICT")


class SubscriptionUpdateError(StatusError):
    """Raised when a subscription change can't be made or confirmed."""

    def __init__(self, message: str):
        super().__init__(500, message, code="SUBSCRIPTION_UPDATE_FAILED")
