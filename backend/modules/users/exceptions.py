"""
User module exceptions.

These exceptions are raised by the user store facade and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import AccountsError, StatusError


class UserError(AccountsError):
    """Base exception for user store errors."""

    pass


class UserNotFoundError(StatusError):
    """Raised when the identity provider has no user with the given id."""

    def __init__(self, user_id: str):
        super().__init__(
            404,
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class DuplicateUserError(UserError):
    """Raised when more than one user shares an email address."""

    def __init__(self, email: str, count: int):
        super().__init__(
            f"More than one user found for {email}",
            code="DUPLICATE_USER",
            details={"email": email, "count": count},
        )
