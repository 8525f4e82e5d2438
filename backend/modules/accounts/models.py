"""
Accounts module data models.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TeamMemberEntry(BaseModel):
    """A team member, as listed in the owner's billing data."""

    id: str
    name: str = Field(..., description="The member's email")
    locked: bool = Field(..., description="Removing this member now would lock their license")
    error: Optional[str] = None


class TeamOwnerEntry(BaseModel):
    """A member's team owner, as shown in the member's billing data."""

    id: str
    name: Optional[str] = Field(None, description="The owner's email, unset if unavailable")
    error: Optional[str] = None


class UpdateTeamSizeRequest(BaseModel):
    """Body of an update-team-size request."""

    model_config = ConfigDict(populate_by_name=True)

    new_team_size: Optional[int] = Field(None, alias="newTeamSize")


class UpdateTeamRequest(BaseModel):
    """Body of an update-team request."""

    model_config = ConfigDict(populate_by_name=True)

    ids_to_remove: list[str] = Field(default_factory=list, alias="idsToRemove")
    emails_to_add: list[EmailStr] = Field(default_factory=list, alias="emailsToAdd")


class SuccessResponse(BaseModel):
    success: bool = True
