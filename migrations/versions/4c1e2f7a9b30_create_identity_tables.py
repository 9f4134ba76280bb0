"""create identity tables

Revision ID: 4c1e2f7a9b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c1e2f7a9b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "identity_roles",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=256), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )

    op.create_table(
        "identity_users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("normalized_email", sa.String(length=256), nullable=False, unique=True),
        sa.Column("user_name", sa.String(length=256), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )

    op.create_table(
        "identity_user_roles",
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("identity_users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.BigInteger(), sa.ForeignKey("identity_roles.id", ondelete="CASCADE"), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "role_id", name="pk_identity_user_roles"),
    )
    op.create_index("ix_identity_user_roles_role_id", "identity_user_roles", ["role_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_identity_user_roles_role_id", table_name="identity_user_roles")
    op.drop_table("identity_user_roles")
    op.drop_table("identity_users")
    op.drop_table("identity_roles")
