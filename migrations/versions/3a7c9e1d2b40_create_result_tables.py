"""create result tables

Revision ID: 3a7c9e1d2b40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3a7c9e1d2b40"
down_revision = None
branch_labels = None
depends_on = None

MODIFICATION_TYPES = (
    "marks_update",
    "publication",
    "unpublication",
    "hash_update",
    "recalculation",
    "initial_hash",
    "revalidation_update",
)


def upgrade():
    op.create_table(
        "subjects",
        sa.Column("subject_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("subject_category", sa.String(length=50), nullable=False),
        sa.Column("subject_code", sa.String(length=20), nullable=True),
        sa.Column("full_marks", sa.Float(), nullable=False, server_default=sa.text("100")),
        sa.Column("pass_marks", sa.Float(), nullable=False, server_default=sa.text("33")),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("subject_name", "subject_category", name="unique_subject_category"),
    )
    op.create_table(
        "students",
        sa.Column("registration_number", sa.String(length=20), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("father_name", sa.String(length=100), nullable=False),
        sa.Column("mother_name", sa.String(length=100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
    )
    op.create_table(
        "institutions",
        sa.Column("institution_id", sa.Integer(), primary_key=True),
        sa.Column("institution_name", sa.String(length=150), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
    )
    op.create_table(
        "boards",
        sa.Column("board_id", sa.Integer(), primary_key=True),
        sa.Column("board_name", sa.String(length=150), nullable=False),
    )
    op.create_table(
        "form_fillups",
        sa.Column("roll_number", sa.String(length=20), primary_key=True),
        sa.Column("registration_number", sa.String(length=20), nullable=False),
        sa.Column("exam_name", sa.String(length=50), nullable=False),
        sa.Column("session", sa.String(length=10), nullable=False),
        sa.Column("group", sa.String(length=30), nullable=False),
        sa.Column("board_id", sa.Integer(), nullable=False),
        sa.Column("institution_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["registration_number"], ["students.registration_number"]),
        sa.ForeignKeyConstraint(["board_id"], ["boards.board_id"]),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.institution_id"]),
    )
    op.create_table(
        "exam_marks",
        sa.Column("detail_id", sa.Integer(), primary_key=True),
        sa.Column("roll_number", sa.String(length=20), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("marks_obtained", sa.Float(), nullable=False),
        sa.Column("grade", sa.String(length=5), nullable=False),
        sa.Column("grade_point", sa.Float(), nullable=False),
        sa.Column("entered_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["roll_number"], ["form_fillups.roll_number"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.subject_id"]),
        sa.UniqueConstraint("roll_number", "subject_id", name="unique_roll_subject"),
    )
    op.create_table(
        "results",
        sa.Column("result_id", sa.String(length=100), primary_key=True),
        sa.Column("roll_number", sa.String(length=20), nullable=False),
        sa.Column("exam_name", sa.String(length=50), nullable=False),
        sa.Column("session", sa.String(length=10), nullable=False),
        sa.Column("total_marks", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("gpa", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("grade", sa.String(length=5), nullable=True),
        sa.Column("status", sa.Enum("Pass", "Fail", name="result_status"), nullable=True),
        sa.Column("fingerprint_id", sa.String(length=128), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("published_by", sa.String(length=64), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["roll_number"], ["form_fillups.roll_number"]),
    )
    op.create_table(
        "result_histories",
        sa.Column("audit_id", sa.Integer(), primary_key=True),
        sa.Column("result_id", sa.String(length=100), nullable=False),
        sa.Column("modified_by", sa.String(length=64), nullable=True),
        sa.Column("modification_type", sa.Enum(*MODIFICATION_TYPES, name="modification_type"), nullable=False),
        sa.Column("previous_data", sa.JSON(), nullable=True),
        sa.Column("new_data", sa.JSON(), nullable=True),
        sa.Column("previous_fingerprint_id", sa.String(length=128), nullable=True),
        sa.Column("new_fingerprint_id", sa.String(length=128), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["result_id"], ["results.result_id"]),
    )
    op.create_index("ix_result_histories_result_id", "result_histories", ["result_id"])
    op.create_table(
        "result_revalidation_requests",
        sa.Column("request_id", sa.Integer(), primary_key=True),
        sa.Column("roll_number", sa.String(length=20), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("original_marks", sa.Float(), nullable=False),
        sa.Column("updated_marks", sa.Float(), nullable=True),
        sa.Column("status", sa.Enum("Pending", "Approved", "Rejected", name="revalidation_status"), nullable=False),
        sa.Column("requested_by", sa.String(length=64), nullable=True),
        sa.Column("reviewed_by", sa.String(length=64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("review_comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["roll_number"], ["form_fillups.roll_number"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.subject_id"]),
    )


def downgrade():
    op.drop_table("result_revalidation_requests")
    op.drop_index("ix_result_histories_result_id", table_name="result_histories")
    op.drop_table("result_histories")
    op.drop_table("results")
    op.drop_table("exam_marks")
    op.drop_table("form_fillups")
    op.drop_table("boards")
    op.drop_table("institutions")
    op.drop_table("students")
    op.drop_table("subjects")
