"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field, ConfigDict, model_validator

from scoutlete.database.models import ExperienceLevel, InviteType, TeamRole


# ──────────────────────────────────────────────────────────────
# Teams
# ──────────────────────────────────────────────────────────────


class TeamCreate(BaseModel):
    """Request to create a team. The requester becomes its captain."""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    sport_category_id: Optional[int] = None
    max_members: int = Field(default=4, ge=1)
    is_public: bool = True
    required_skills: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None


class TeamUpdate(BaseModel):
    """Editable team details. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    required_skills: Optional[List[str]] = None


class JoinTeamRequest(BaseModel):
    """Join a team directly; private teams need their join code."""

    join_code: Optional[str] = None


class RemoveMemberRequest(BaseModel):
    """Remove a member by team_members row id."""

    member_id: Optional[int] = None


class MessageResponse(BaseModel):
    message: str


# ──────────────────────────────────────────────────────────────
# Team invites
# ──────────────────────────────────────────────────────────────


class TeamInviteCreate(BaseModel):
    """Request to join a team, or a captain's invitation to another user."""

    team_id: Optional[int] = None
    team_code: Optional[str] = None
    type: InviteType = InviteType.JOIN_REQUEST
    message: Optional[str] = Field(default=None, max_length=1000)
    invitee_id: Optional[int] = None
    role: TeamRole = TeamRole.MEMBER

    @model_validator(mode="after")
    def validate_target(self):
        """Invitations must name who is being invited."""
        if self.type == InviteType.INVITATION and not self.invitee_id:
            raise ValueError("invitee_id is required for invitations")
        return self


class TeamInviteRespond(BaseModel):
    """Accept or decline a pending invite."""

    invite_id: int
    status: str
    response_message: Optional[str] = Field(default=None, max_length=1000)


# ──────────────────────────────────────────────────────────────
# Notifications
# ──────────────────────────────────────────────────────────────


class NotificationResponse(BaseModel):
    """Notification response."""

    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: int
    type: str
    title: str
    message: str
    data: Optional[dict] = None
    priority: str
    action_url: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    is_read: bool
    read_at: Optional[str] = None
    created_at: Optional[str] = None


class NotificationListResponse(BaseModel):
    """Paginated notification list response."""

    notifications: List[NotificationResponse]
    total_count: int
    has_more: bool


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    count: int


# ──────────────────────────────────────────────────────────────
# Sports categories
# ──────────────────────────────────────────────────────────────


class SportCategoryResponse(BaseModel):
    id: int
    sport_name: str
    category: str
    description: Optional[str] = None
    measurement_unit: Optional[str] = None


class SportCategoryListResponse(BaseModel):
    data: List[SportCategoryResponse]
    grouped: Dict[str, List[SportCategoryResponse]]
    count: int
