"""Create lectures table

Revision ID: 001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  Creates the `lectures` table and the (user_id, created_at DESC) index
       behind "my lectures, newest first".

If GET /api/lectures answers with an "Index Error" persistence message, this
migration has not been applied: run `alembic upgrade head`.

Rollback: downgrade() drops the table (all lectures are lost; stored page
images are not touched).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "lectures",
        sa.Column("id", sa.Uuid(), nullable=False, comment="Lecture identifier"),
        sa.Column(
            "user_id",
            sa.String(128),
            nullable=False,
            comment="Owning user as reported by the identity provider",
        ),
        sa.Column("title", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("subject", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("summary", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("key_points", sa.JSON(), nullable=False, comment="Ordered key points"),
        sa.Column(
            "quiz",
            sa.JSON(),
            nullable=False,
            comment="Ordered questions: {question, options[4], correctAnswer}",
        ),
        sa.Column("image_url", sa.Text(), nullable=False, comment="URL of the first page image"),
        sa.Column("image_urls", sa.JSON(), nullable=False, comment="URLs of every page image, in order"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When this lecture was created (assigned by the database)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_lectures_user_created_at",
        "lectures",
        ["user_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_lectures_user_created_at", table_name="lectures")
    op.drop_table("lectures")
