"""create payroll admin tables"""
from alembic import op
import sqlalchemy as sa

revision = "0001_payroll_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _record_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("cutoff", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("date_posted", sa.Date(), nullable=True),
        sa.Column("is_posted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def _amounts(*names: str) -> list[sa.Column]:
    return [sa.Column(n, sa.Float(), nullable=False, server_default="0") for n in names]


def _org_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
    ]


def _totals_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employee_no", sa.String(), nullable=False, server_default=""),
        sa.Column("employee_name", sa.String(), nullable=False, server_default=""),
        sa.Column("department", sa.String(), nullable=False, server_default=""),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("period_type", sa.String(), nullable=False),
        *_amounts(
            "basic_pay",
            "overtime_pay",
            "allowances",
            "total_benefits",
            "total_deductions",
            "gross_pay",
            "net_pay",
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="employee"),
        sa.Column("department", sa.String(), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False, server_default=""),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("idno", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("middle_name", sa.String(), nullable=False, server_default=""),
        sa.Column("suffix", sa.String(), nullable=False, server_default=""),
        sa.Column("department", sa.String(), nullable=False, server_default=""),
        sa.Column("job_status", sa.String(), nullable=False, server_default="Active"),
        *_timestamps(),
    )
    op.create_index("ix_employees_idno", "employees", ["idno"], unique=True)
    op.create_index("ix_employees_last_name", "employees", ["last_name"])
    op.create_index("ix_emp_status_lastname", "employees", ["job_status", "last_name"])

    op.create_table(
        "deductions",
        *_record_columns(),
        *_amounts("advance", "charge_store", "charge", "meals", "miscellaneous", "other_deductions"),
        *_timestamps(),
    )
    op.create_index("ix_deductions_employee_id", "deductions", ["employee_id"])
    op.create_index(
        "ix_deductions_employee_cutoff_date", "deductions", ["employee_id", "cutoff", "date"]
    )
    op.create_index("ix_deductions_cutoff_date", "deductions", ["cutoff", "date"])

    op.create_table(
        "benefits",
        *_record_columns(),
        *_amounts(
            "allowances",
            "mf_shares",
            "mf_loan",
            "sss_loan",
            "sss_prem",
            "hmdf_loan",
            "hmdf_prem",
            "philhealth",
        ),
        *_timestamps(),
    )
    op.create_index("ix_benefits_employee_id", "benefits", ["employee_id"])
    op.create_index("ix_benefits_employee_cutoff_date", "benefits", ["employee_id", "cutoff", "date"])
    op.create_index("ix_benefits_cutoff_date", "benefits", ["cutoff", "date"])

    op.create_table("departments", *_org_columns(), *_timestamps())
    op.create_index("ix_departments_code", "departments", ["code"], unique=True)

    op.create_table(
        "lines",
        *_org_columns(),
        sa.Column("department_id", sa.Integer(), sa.ForeignKey("departments.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_lines_code", "lines", ["code"], unique=True)
    op.create_index("ix_lines_department_id", "lines", ["department_id"])

    op.create_table(
        "sections",
        *_org_columns(),
        sa.Column("line_id", sa.Integer(), sa.ForeignKey("lines.id"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_sections_code", "sections", ["code"], unique=True)
    op.create_index("ix_sections_line_id", "sections", ["line_id"])

    op.create_table(
        "overtimes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("rate", sa.Float(), nullable=False, server_default="1.25"),
        sa.Column("reason", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("dept_approved_by", sa.Integer(), nullable=True),
        sa.Column("dept_approved_at", sa.DateTime(), nullable=True),
        sa.Column("dept_remarks", sa.Text(), nullable=True),
        sa.Column("hrd_approved_by", sa.Integer(), nullable=True),
        sa.Column("hrd_approved_at", sa.DateTime(), nullable=True),
        sa.Column("hrd_remarks", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_overtimes_employee_id", "overtimes", ["employee_id"])
    op.create_index("ix_overtimes_status", "overtimes", ["status"])

    op.create_table(
        "payroll_summaries",
        *_totals_columns(),
        *_timestamps(),
        sa.UniqueConstraint(
            "employee_id", "year", "month", "period_type", name="uq_summary_period"
        ),
    )
    op.create_index("ix_payroll_summaries_employee_id", "payroll_summaries", ["employee_id"])
    op.create_index("ix_payroll_summaries_department", "payroll_summaries", ["department"])
    op.create_index("ix_payroll_summaries_status", "payroll_summaries", ["status"])
    op.create_index("ix_summary_period", "payroll_summaries", ["year", "month", "period_type"])

    op.create_table(
        "final_payrolls",
        *_totals_columns(),
        sa.Column(
            "payroll_summary_id",
            sa.Integer(),
            sa.ForeignKey("payroll_summaries.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("approval_status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("approval_remarks", sa.Text(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_final_payrolls_employee_id", "final_payrolls", ["employee_id"])
    op.create_index("ix_final_payrolls_department", "final_payrolls", ["department"])
    op.create_index("ix_final_payrolls_status", "final_payrolls", ["status"])
    op.create_index("ix_final_period", "final_payrolls", ["year", "month", "period_type"])


def downgrade() -> None:
    for table in (
        "final_payrolls",
        "payroll_summaries",
        "overtimes",
        "sections",
        "lines",
        "departments",
        "benefits",
        "deductions",
        "employees",
        "users",
    ):
        op.drop_table(table)
