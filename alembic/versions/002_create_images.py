"""create images table

Revision ID: 002
Revises: 001
Create Date: 2026-10-05

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002_create_images"
down_revision: Union[str, None] = "001_create_instances"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "images",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("original_url", sa.Text(), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=False),
        # Encoded source image (PNG/JPEG/...)
        sa.Column("data", sa.LargeBinary(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("content_hash", name="images_content_hash_unique"),
    )
    op.create_index("images_created_at_idx", "images", ["created_at"])


def downgrade() -> None:
    op.drop_index("images_created_at_idx", table_name="images")
    op.drop_table("images")
