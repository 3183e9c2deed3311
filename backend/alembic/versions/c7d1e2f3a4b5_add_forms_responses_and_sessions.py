"""add forms, responses, response_items and sessions tables

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c7d1e2f3a4b5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create response_status enum
    response_status = postgresql.ENUM(
        "draft", "submitted", name="response_status", create_type=False
    )
    response_status.create(op.get_bind(), checkfirst=True)

    # Create forms table
    op.create_table(
        "forms",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("schema_json", postgresql.JSONB(), nullable=False),
        sa.Column(
            "is_public", sa.Boolean(), server_default="true", nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_forms_owner_id", "forms", ["owner_id"], unique=False)
    op.create_index(
        "ix_forms_public_created", "forms", ["is_public", "created_at"], unique=False
    )

    # Create responses table
    op.create_table(
        "responses",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("form_id", sa.UUID(), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(
                "draft", "submitted",
                name="response_status",
                create_type=False,
            ),
            server_default="draft",
            nullable=False,
        ),
        sa.Column("abandoned_at", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_responses_form_id", "responses", ["form_id"], unique=False)
    op.create_index(
        "ix_responses_form_status", "responses", ["form_id", "status"], unique=False
    )

    # Create response_items table
    op.create_table(
        "response_items",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("response_id", sa.UUID(), nullable=False),
        sa.Column("field_key", sa.String(length=255), nullable=False),
        sa.Column("value_json", postgresql.JSONB(), nullable=True),
        sa.Column("valid", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["response_id"], ["responses.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_response_items_response_id",
        "response_items",
        ["response_id"],
        unique=False,
    )
    op.create_index(
        "ix_response_items_response_field",
        "response_items",
        ["response_id", "field_key"],
        unique=False,
    )

    # Create sessions table
    op.create_table(
        "sessions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("response_id", sa.UUID(), nullable=False),
        sa.Column("turns_json", postgresql.JSONB(), nullable=False),
        sa.Column(
            "last_active_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["response_id"], ["responses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("response_id"),
    )


def downgrade() -> None:
    op.drop_table("sessions")

    op.drop_index("ix_response_items_response_field", table_name="response_items")
    op.drop_index("ix_response_items_response_id", table_name="response_items")
    op.drop_table("response_items")

    op.drop_index("ix_responses_form_status", table_name="responses")
    op.drop_index("ix_responses_form_id", table_name="responses")
    op.drop_table("responses")

    op.drop_index("ix_forms_public_created", table_name="forms")
    op.drop_index("ix_forms_owner_id", table_name="forms")
    op.drop_table("forms")

    op.execute("DROP TYPE IF EXISTS response_status")
