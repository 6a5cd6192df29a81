"""create seasons, schedule_templates, tee_times and reservations

Revision ID: 8b52d0e4c6a1
Revises: 3f1a9c2e7b10
Create Date: 2026-03-02 00:10:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8b52d0e4c6a1"
down_revision = "3f1a9c2e7b10"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("start_date <= end_date", name="ck_season_date_range"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("seasons", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_seasons_year"), ["year"], unique=True)
        batch_op.create_index(
            "uq_seasons_single_active",
            ["is_active"],
            unique=True,
            postgresql_where=sa.text("is_active"),
            sqlite_where=sa.text("is_active = 1"),
        )

    op.create_table(
        "schedule_templates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("time_slots", sa.JSON(), nullable=False),
        sa.Column("max_slots", sa.Integer(), nullable=False),
        sa.Column("booking_opens_days_before", sa.Integer(), nullable=False),
        sa.Column("booking_opens_time", sa.String(length=8), nullable=False),
        sa.Column("booking_closes_days_before", sa.Integer(), nullable=False),
        sa.Column("booking_closes_time", sa.String(length=8), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_template_day_of_week"),
        sa.CheckConstraint("max_slots >= 1", name="ck_template_max_slots"),
        sa.CheckConstraint(
            "booking_opens_days_before > booking_closes_days_before",
            name="ck_template_window_order",
        ),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("schedule_templates", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_schedule_templates_season_id"), ["season_id"], unique=True)

    op.create_table(
        "tee_times",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("season", sa.Integer(), nullable=True),
        sa.Column("max_slots", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("booking_opens_at", sa.DateTime(), nullable=True),
        sa.Column("booking_closes_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("max_slots >= 0", name="ck_tee_time_max_slots"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("date", "time", name="uq_tee_time_date_time"),
    )
    with op.batch_alter_table("tee_times", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_tee_times_date"), ["date"], unique=False)
        batch_op.create_index(batch_op.f("ix_tee_times_season"), ["season"], unique=False)

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tee_time_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("slots", sa.Integer(), nullable=False),
        sa.Column("player_names", sa.JSON(), nullable=False),
        sa.Column("play_for_money", sa.JSON(), nullable=False),
        sa.Column("idempotency_key", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("slots >= 1", name="ck_reservation_slots_positive"),
        sa.ForeignKeyConstraint(["tee_time_id"], ["tee_times.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_reservation_idempotency"),
    )
    with op.batch_alter_table("reservations", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_reservations_tee_time_id"), ["tee_time_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_reservations_user_id"), ["user_id"], unique=False)


def downgrade():
    with op.batch_alter_table("reservations", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_reservations_user_id"))
        batch_op.drop_index(batch_op.f("ix_reservations_tee_time_id"))
    op.drop_table("reservations")

    with op.batch_alter_table("tee_times", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_tee_times_season"))
        batch_op.drop_index(batch_op.f("ix_tee_times_date"))
    op.drop_table("tee_times")

    with op.batch_alter_table("schedule_templates", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_schedule_templates_season_id"))
    op.drop_table("schedule_templates")

    with op.batch_alter_table("seasons", schema=None) as batch_op:
        batch_op.drop_index("uq_seasons_single_active")
        batch_op.drop_index(batch_op.f("ix_seasons_year"))
    op.drop_table("seasons")
