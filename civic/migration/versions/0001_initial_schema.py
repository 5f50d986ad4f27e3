"""initial schema: users, problems, solutions, likes, resources

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Must match the expression geography_point() renders so queries can
# use the index
GEOGRAPHY_POINT = (
    "CAST(ST_SetSRID(ST_MakePoint(longitude, latitude), 4326) "
    "AS geography(POINT,4326))"
)


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False
            )
        )
    return columns


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        "users",
        sa.Column("user_id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        *_timestamps(with_updated=False)
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])

    op.create_table(
        "problems",
        sa.Column("problem_id", sa.String(50), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("images", postgresql.JSONB(), nullable=False),
        sa.Column(
            "author_id",
            sa.String(50),
            sa.ForeignKey("users.user_id"),
            nullable=False
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("votes", sa.Integer(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("frequency", sa.Integer(), nullable=False),
        sa.Column("participants", postgresql.JSONB(), nullable=False),
        sa.Column("tags", postgresql.JSONB(), nullable=False),
        sa.Column("connected_resources", postgresql.JSONB(), nullable=False),
        sa.Column("last_analysis", sa.Text(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("selected_solution_id", sa.String(50), nullable=True),
        *_timestamps()
    )
    op.create_index("ix_problems_problem_id", "problems", ["problem_id"])
    op.create_index("ix_problems_category", "problems", ["category"])
    op.create_index("ix_problems_author_id", "problems", ["author_id"])
    op.create_index("ix_problems_status", "problems", ["status"])
    op.execute(
        "CREATE INDEX ix_problems_location_gist ON problems "
        f"USING gist ({GEOGRAPHY_POINT})"
    )

    op.create_table(
        "solutions",
        sa.Column("solution_id", sa.String(50), primary_key=True),
        sa.Column(
            "problem_id",
            sa.String(50),
            sa.ForeignKey("problems.problem_id", ondelete="CASCADE"),
            nullable=False
        ),
        sa.Column(
            "author_id",
            sa.String(50),
            sa.ForeignKey("users.user_id"),
            nullable=False
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("votes", sa.Integer(), nullable=False),
        sa.Column("likes", sa.Integer(), nullable=False),
        sa.Column("ai_generated", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("resources", sa.Text(), nullable=False),
        sa.Column("budget", sa.Integer(), nullable=True),
        sa.Column("timeline", sa.String(255), nullable=False),
        sa.Column("is_selected", sa.Boolean(), nullable=False),
        *_timestamps()
    )
    op.create_index("ix_solutions_solution_id", "solutions", ["solution_id"])
    op.create_index("ix_solutions_problem_id", "solutions", ["problem_id"])
    op.create_index("ix_solutions_author_id", "solutions", ["author_id"])

    op.create_table(
        "likes",
        sa.Column("like_id", sa.String(50), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(50),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False
        ),
        sa.Column(
            "solution_id",
            sa.String(50),
            sa.ForeignKey("solutions.solution_id", ondelete="CASCADE"),
            nullable=False
        ),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint(
            "user_id",
            "solution_id",
            name="uq_likes_user_solution"
        )
    )
    op.create_index("ix_likes_user_id", "likes", ["user_id"])
    op.create_index("ix_likes_solution_id", "likes", ["solution_id"])

    op.create_table(
        "resources",
        sa.Column("resource_id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("category", postgresql.JSONB(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_website", sa.String(255), nullable=True),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("available_support", postgresql.JSONB(), nullable=False),
        sa.Column(
            "owner_id",
            sa.String(50),
            sa.ForeignKey("users.user_id"),
            nullable=False
        ),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        *_timestamps()
    )
    op.create_index("ix_resources_resource_id", "resources", ["resource_id"])
    op.create_index("ix_resources_type", "resources", ["type"])
    op.create_index("ix_resources_owner_id", "resources", ["owner_id"])
    op.execute(
        "CREATE INDEX ix_resources_location_gist ON resources "
        f"USING gist ({GEOGRAPHY_POINT})"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_resources_location_gist")
    op.drop_table("resources")
    op.drop_table("likes")
    op.drop_table("solutions")
    op.execute("DROP INDEX IF EXISTS ix_problems_location_gist")
    op.drop_table("problems")
    op.drop_table("users")
