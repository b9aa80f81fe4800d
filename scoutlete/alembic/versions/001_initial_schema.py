"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

Creates the team system schema from the current models:
- users, sports_categories
- teams, team_members, team_invites
- notifications
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from scratch."""
    from scoutlete.database.db import Base
    from scoutlete.database import models  # noqa: F401

    Base.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Drop all tables."""
    from scoutlete.database.db import Base
    from scoutlete.database import models  # noqa: F401

    Base.metadata.drop_all(bind=op.get_bind(), checkfirst=True)
