"""
SQLAlchemy ORM models for the Scoutlete team system.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from scoutlete.database.db import Base


class TeamStatus(str, enum.Enum):
    """Team lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISBANDED = "disbanded"
    COMPLETED = "completed"


class TeamRole(str, enum.Enum):
    """Role of a member within a team."""

    CAPTAIN = "captain"
    CO_CAPTAIN = "co_captain"
    MEMBER = "member"


class MemberStatus(str, enum.Enum):
    """Membership status enum."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    REMOVED = "removed"


class ExperienceLevel(str, enum.Enum):
    """Experience level a team is looking for."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class InviteType(str, enum.Enum):
    """
    Kind of team invite.

    A join request is raised by the athlete who wants in and is consumed
    (deleted) once the captain resolves it. An invitation is raised by the
    captain and kept as a record after the invitee answers.
    """

    JOIN_REQUEST = "join_request"
    INVITATION = "invitation"

    @property
    def consumed_on_resolution(self) -> bool:
        return self is InviteType.JOIN_REQUEST


class InviteStatus(str, enum.Enum):
    """Team invite status enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class NotificationType(str, enum.Enum):
    """Notification type enum."""

    TEAM_JOIN_REQUEST = "team_join_request"
    TEAM_INVITATION = "team_invitation"
    TEAM_REQUEST_ACCEPTED = "team_request_accepted"
    TEAM_REQUEST_DECLINED = "team_request_declined"


class NotificationPriority(str, enum.Enum):
    """Notification priority enum."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class User(Base):
    """Application users, provisioned from the identity provider."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String, nullable=True, unique=True)  # Identity provider subject
    email = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    avatar_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("idx_users_email", "email"),)


class SportCategory(Base):
    """Sport and discipline a team competes in (e.g. Basketball / 3x3)."""

    __tablename__ = "sports_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sport_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    measurement_unit = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    teams = relationship("Team", back_populates="sport_category")

    __table_args__ = (
        UniqueConstraint("sport_name", "category", name="uq_sports_categories_sport_category"),
    )


class Team(Base):
    """Teams athletes can join by request, invitation or join code."""

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    sport_category_id = Column(
        Integer, ForeignKey("sports_categories.id", ondelete="SET NULL"), nullable=True
    )
    max_members = Column(Integer, default=4, nullable=False)
    current_members = Column(Integer, default=1, nullable=False)  # Cached count of active members
    is_public = Column(Boolean, default=True, nullable=False)
    join_code = Column(String(8), nullable=False)  # Not unique, see DESIGN.md
    status = Column(String(20), default=TeamStatus.ACTIVE.value, nullable=False)
    required_skills = Column(JSON, nullable=True)  # List of skill names
    requirements = Column(JSON, nullable=True)  # List of free-text requirements
    experience_level = Column(String(20), nullable=True)  # ExperienceLevel enum value
    location_city = Column(String, nullable=True)
    location_state = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    sport_category = relationship("SportCategory", back_populates="teams")
    creator = relationship("User", foreign_keys=[created_by])
    members = relationship("TeamMember", back_populates="team", passive_deletes=True)
    invites = relationship("TeamInvite", back_populates="team", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("max_members >= 1", name="ck_teams_max_members_positive"),
        CheckConstraint("current_members >= 0", name="ck_teams_current_members_non_negative"),
        Index("idx_teams_join_code", "join_code"),
        Index("idx_teams_created_by", "created_by"),
        Index("idx_teams_public_status", "is_public", "status", "created_at"),
    )


class TeamMember(Base):
    """Membership ledger (User ↔ Team)."""

    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), default=TeamRole.MEMBER.value, nullable=False)
    status = Column(String(20), default=MemberStatus.ACTIVE.value, nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    team = relationship("Team", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
        Index("idx_team_members_team_status", "team_id", "status"),
        Index("idx_team_members_user", "user_id"),
    )


class TeamInvite(Base):
    """Pending, accepted or declined join requests and invitations."""

    __tablename__ = "team_invites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    inviter_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    invitee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), default=InviteType.JOIN_REQUEST.value, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String(20), default=InviteStatus.PENDING.value, nullable=False)
    role = Column(String(20), default=TeamRole.MEMBER.value, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    response_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    team = relationship("Team", back_populates="invites")
    inviter = relationship("User", foreign_keys=[inviter_id])
    invitee = relationship("User", foreign_keys=[invitee_id])

    __table_args__ = (
        Index("idx_team_invites_team_status", "team_id", "status"),
        Index("idx_team_invites_inviter", "inviter_id"),
        Index("idx_team_invites_invitee", "invitee_id"),
    )


class Notification(Base):
    """User notifications for in-app messaging."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False)  # NotificationType enum value
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)  # Flexible metadata (team_id, invite_id, etc.)
    priority = Column(String(10), default=NotificationPriority.MEDIUM.value, nullable=False)
    action_url = Column(String(500), nullable=True)  # Navigation target
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", backref="notifications")

    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read", "created_at"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )
