"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents the caller of an authenticated endpoint.

    Resolved from the bearer token by the auth dependency and made available
    to route handlers via dependency injection.
    """

    id: str = Field(..., description="Identity provider user id")
    email: Optional[str] = Field(None, description="User's email address, when known")

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }
