"""Initial database schema."""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _now():
    return sa.text("CURRENT_TIMESTAMP")


def _owner():
    return sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False, index=True)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, index=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # Profile values are Fernet tokens, hence Text throughout
    op.create_table(
        "user_profile",
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("age", sa.Text),
        sa.Column("gender", sa.Text),
        sa.Column("weight", sa.Text),
        sa.Column("preconditions", sa.Text),
        sa.Column("medications", sa.Text),
        sa.Column("allergies", sa.Text),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )

    op.create_table(
        "symptom_reports",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("symptoms", _json(), nullable=False),
        sa.Column("symptom_details", _json(), nullable=False),
        sa.Column("user_profile", sa.Text),
        sa.Column("follow_up_answers", _json(), nullable=False),
        sa.Column("severity_level", sa.String(length=20), nullable=False, server_default="moderate"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
    )

    op.create_table(
        "diagnosis_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("symptom_report_id", sa.String(length=36),
                  sa.ForeignKey("symptom_reports.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("analysis_result", _json(), nullable=False),
        sa.Column("possible_conditions", _json(), nullable=False),
        sa.Column("recommendations", _json(), nullable=False),
        sa.Column("urgency_level", sa.String(length=32), nullable=False, server_default="low"),
        sa.Column("follow_up_questions", _json(), nullable=False),
        sa.Column("ai_confidence", sa.Float, nullable=False, server_default="0.5"),
        sa.Column("is_refined", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
    )

    op.create_table(
        "prescription_analyses",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("prescription_text", sa.Text, nullable=False),
        sa.Column("analysis_result", _json(), nullable=False),
        sa.Column("user_profile", sa.Text),
        sa.Column("analysis_type", sa.String(length=40), nullable=False, server_default="full"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
    )

    op.create_table(
        "medication_searches",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("medication_name", sa.String(length=255), nullable=False),
        sa.Column("medication_info", _json(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
    )

    # No unique (user_id, date): one entry per day is kept by the application
    op.create_table(
        "mood_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("date", sa.String(length=10), nullable=False, index=True),
        sa.Column("mood", sa.Integer, nullable=False),
        sa.Column("emoji", sa.String(length=16)),
        sa.Column("emotions", _json(), nullable=False),
        sa.Column("activities", _json(), nullable=False),
        sa.Column("tags", _json(), nullable=False),
        sa.Column("notes", sa.Text),
        sa.Column("sleep_hours", sa.Float),
        sa.Column("energy_level", sa.Integer),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False),
    )

    op.create_table(
        "health_reports",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("report_type", sa.String(length=40), nullable=False, server_default="health_summary"),
        sa.Column("report_data", _json(), nullable=False),
        sa.Column("conditions_summary", _json(), nullable=False),
        sa.Column("medications_summary", _json(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=_now(), nullable=False, index=True),
    )


def downgrade():
    for table in (
        "health_reports",
        "mood_entries",
        "medication_searches",
        "prescription_analyses",
        "diagnosis_logs",
        "symptom_reports",
        "user_profile",
        "users",
    ):
        op.drop_table(table)
