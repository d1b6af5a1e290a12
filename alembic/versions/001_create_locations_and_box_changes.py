"""create locations and box_changes tables

Revision ID: 001_locations_box_changes
Revises:
Create Date: 2026-10-18

Tags: locations, box_changes, schema
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_locations_box_changes"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)
    tables = inspector.get_table_names()

    if "locations" not in tables:
        op.create_table(
            "locations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("address", sa.String(length=500), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=False),
            sa.Column("longitude", sa.Float(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("contact_person", sa.String(length=255), nullable=True),
            sa.Column("contact_phone", sa.String(length=50), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("last_box_change", sa.DateTime(timezone=True), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name", "address", name="uq_locations_name_address"),
        )
        op.create_index(op.f("ix_locations_id"), "locations", ["id"], unique=False)
        op.create_index(op.f("ix_locations_name"), "locations", ["name"], unique=False)
        op.create_index(op.f("ix_locations_is_active"), "locations", ["is_active"], unique=False)
        op.create_index("idx_locations_last_box_change", "locations", ["last_box_change"], unique=False)

    if "box_changes" not in tables:
        op.create_table(
            "box_changes",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("location_id", sa.String(length=36), nullable=False),
            sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("changed_by", sa.String(length=255), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("box_count", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_box_changes_id"), "box_changes", ["id"], unique=False)
        op.create_index(op.f("ix_box_changes_location_id"), "box_changes", ["location_id"], unique=False)
        op.create_index(
            "idx_box_changes_location_changed_at", "box_changes", ["location_id", "changed_at"], unique=False
        )


def downgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)
    tables = inspector.get_table_names()

    if "box_changes" in tables:
        op.drop_index("idx_box_changes_location_changed_at", table_name="box_changes")
        op.drop_index(op.f("ix_box_changes_location_id"), table_name="box_changes")
        op.drop_index(op.f("ix_box_changes_id"), table_name="box_changes")
        op.drop_table("box_changes")

    if "locations" in tables:
        op.drop_index("idx_locations_last_box_change", table_name="locations")
        op.drop_index(op.f("ix_locations_is_active"), table_name="locations")
        op.drop_index(op.f("ix_locations_name"), table_name="locations")
        op.drop_index(op.f("ix_locations_id"), table_name="locations")
        op.drop_table("locations")
