"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


MEMBER_GENDERS = ("MALE", "FEMALE", "OTHER")
MINISTRY_TYPES = ("WORSHIP", "YOUTH", "CHILDREN", "OUTREACH", "FELLOWSHIP", "SERVICE", "OTHER")
MINISTRY_MEMBER_ROLES = ("MEMBER", "LEADER", "ASSISTANT")
EVENT_TYPES = ("SERVICE", "CONFERENCE", "WORKSHOP", "FELLOWSHIP", "OUTREACH", "MEETING", "OTHER")
ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "LATE")
CONTRIBUTION_TYPES = ("TITHE", "OFFERING", "SPECIAL", "BUILDING_FUND", "MISSION", "OTHER")
PAYMENT_METHODS = ("CASH", "CHEQUE", "BANK_TRANSFER", "CARD", "MOBILE_MONEY", "OTHER")
ANNOUNCEMENT_PRIORITIES = ("low", "normal", "high", "urgent")
ANNOUNCEMENT_AUDIENCES = ("all", "members", "leaders", "youth", "children", "women", "men")

ENUM_NAMES = (
    "member_gender",
    "ministry_type",
    "ministry_member_role",
    "event_type",
    "event_attendance_status",
    "contribution_type",
    "contribution_payment_method",
    "announcement_priority",
    "announcement_audience",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_roles_name", "roles", ["name"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=25), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("emergency_contact", sa.String(length=255), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("password_reset_token_hash", sa.String(length=128), nullable=True),
        sa.Column("password_reset_expires_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_password_reset_token_hash", "users", ["password_reset_token_hash"])

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "cells",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("number", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("meeting_day", sa.String(length=20), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("leader_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_cells_name", "cells", ["name"], unique=True)

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=25), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("gender", sa.Enum(*MEMBER_GENDERS, name="member_gender"), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("occupation", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("join_date", sa.Date(), nullable=True),
        sa.Column("cell_id", sa.Integer(), sa.ForeignKey("cells.id", ondelete="SET NULL"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=True)
    op.create_index("ix_members_cell_id", "members", ["cell_id"])
    op.create_index("ix_members_is_active", "members", ["is_active"])

    op.create_foreign_key(
        "fk_cells_leader_id",
        "cells",
        "members",
        ["leader_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "member_audit",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("field", sa.String(length=100), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_member_audit_member_changed", "member_audit", ["member_id", "changed_at"])

    op.create_table(
        "ministries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=140), nullable=False, unique=True),
        sa.Column("type", sa.Enum(*MINISTRY_TYPES, name="ministry_type"), nullable=False, server_default="OTHER"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("leader_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("meeting_schedule", sa.String(length=200), nullable=True),
        sa.Column("contact_info", sa.String(length=200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "member_ministries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ministry_id", sa.Integer(), sa.ForeignKey("ministries.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "role",
            sa.Enum(*MINISTRY_MEMBER_ROLES, name="ministry_member_role"),
            nullable=False,
            server_default="MEMBER",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("member_id", "ministry_id", name="uq_member_ministry"),
    )
    op.create_index("ix_member_ministries_member_id", "member_ministries", ["member_id"])
    op.create_index("ix_member_ministries_ministry_id", "member_ministries", ["ministry_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.Enum(*EVENT_TYPES, name="event_type"), nullable=False, server_default="OTHER"),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("max_attendees", sa.Integer(), nullable=True),
        sa.Column("registration_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("registration_deadline", sa.DateTime(), nullable=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("ministry_id", sa.Integer(), sa.ForeignKey("ministries.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_events_date", "events", ["date"])
    op.create_index("ix_events_ministry_id", "events", ["ministry_id"])
    op.create_index("ix_events_is_active", "events", ["is_active"])

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "member_id", name="uq_event_registration"),
    )
    op.create_index("ix_event_registrations_event_id", "event_registrations", ["event_id"])
    op.create_index("ix_event_registrations_member_id", "event_registrations", ["member_id"])

    op.create_table(
        "event_attendances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*ATTENDANCE_STATUSES, name="event_attendance_status"),
            nullable=False,
            server_default="PRESENT",
        ),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("recorded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "member_id", name="uq_event_attendance"),
    )
    op.create_index("ix_event_attendances_event_id", "event_attendances", ["event_id"])
    op.create_index("ix_event_attendances_member_id", "event_attendances", ["member_id"])

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("type", sa.Enum(*CONTRIBUTION_TYPES, name="contribution_type"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "payment_method",
            sa.Enum(*PAYMENT_METHODS, name="contribution_payment_method"),
            nullable=False,
            server_default="CASH",
        ),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recorded_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_contributions_date", "contributions", ["date"])
    op.create_index("ix_contributions_member_id", "contributions", ["member_id"])

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "priority",
            sa.Enum(*ANNOUNCEMENT_PRIORITIES, name="announcement_priority"),
            nullable=False,
            server_default="normal",
        ),
        sa.Column(
            "target_audience",
            sa.Enum(*ANNOUNCEMENT_AUDIENCES, name="announcement_audience"),
            nullable=False,
            server_default="all",
        ),
        sa.Column("publish_date", sa.DateTime(), nullable=True),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_announcements_created_at", "announcements", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_announcements_created_at", table_name="announcements")
    op.drop_table("announcements")
    op.drop_index("ix_contributions_member_id", table_name="contributions")
    op.drop_index("ix_contributions_date", table_name="contributions")
    op.drop_table("contributions")
    op.drop_index("ix_event_attendances_member_id", table_name="event_attendances")
    op.drop_index("ix_event_attendances_event_id", table_name="event_attendances")
    op.drop_table("event_attendances")
    op.drop_index("ix_event_registrations_member_id", table_name="event_registrations")
    op.drop_index("ix_event_registrations_event_id", table_name="event_registrations")
    op.drop_table("event_registrations")
    op.drop_index("ix_events_is_active", table_name="events")
    op.drop_index("ix_events_ministry_id", table_name="events")
    op.drop_index("ix_events_date", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_member_ministries_ministry_id", table_name="member_ministries")
    op.drop_index("ix_member_ministries_member_id", table_name="member_ministries")
    op.drop_table("member_ministries")
    op.drop_table("ministries")
    op.drop_index("ix_member_audit_member_changed", table_name="member_audit")
    op.drop_table("member_audit")
    op.drop_constraint("fk_cells_leader_id", "cells", type_="foreignkey")
    op.drop_index("ix_members_is_active", table_name="members")
    op.drop_index("ix_members_cell_id", table_name="members")
    op.drop_index("ix_members_email", table_name="members")
    op.drop_table("members")
    op.drop_index("ix_cells_name", table_name="cells")
    op.drop_table("cells")
    op.drop_table("user_roles")
    op.drop_index("ix_users_password_reset_token_hash", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_roles_name", table_name="roles")
    op.drop_table("roles")

    bind = op.get_bind()
    for name in ENUM_NAMES:
        sa.Enum(name=name).drop(bind, checkfirst=True)
