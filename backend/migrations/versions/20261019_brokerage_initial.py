"""Initial brokerage schema: vendors, jobs, pricing rows, profit splits, audit events

Revision ID: 20261019_brokerage_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_brokerage_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("vendor_code", sa.String(64), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_partner", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vendor_code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_number", sa.String(32), nullable=True),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("vendor_id", sa.Integer(), nullable=True),
        sa.Column("routing_type", sa.String(32), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sell_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("size_name", sa.String(64), nullable=True),
        sa.Column("use_cpm_pricing", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("intermediary_cut", sa.Numeric(12, 2), nullable=True),
        sa.Column("auto_intermediary_cut", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(32), nullable=False, server_default="NEW"),
        sa.Column("status_override", sa.String(32), nullable=True),
        sa.Column("status_override_by", sa.String(128), nullable=True),
        sa.Column("status_override_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invoice_sent_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("invoice_sent_note", sa.String(255), nullable=True),
        sa.Column("customer_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("customer_paid_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("customer_paid_note", sa.String(255), nullable=True),
        sa.Column("intermediary_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("intermediary_paid_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("intermediary_paid_note", sa.String(255), nullable=True),
        sa.Column("final_vendor_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_vendor_paid_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("final_vendor_paid_note", sa.String(255), nullable=True),
        sa.Column("downstream_invoice_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("downstream_invoice_sent_to", sa.String(255), nullable=True),
        sa.Column("qc_artwork", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("qc_data_files", sa.String(16), nullable=False, server_default="NOT_APPLICABLE"),
        sa.Column("qc_mailing", sa.String(16), nullable=False, server_default="NOT_APPLICABLE"),
        sa.Column("qc_supplied_materials", sa.String(16), nullable=False, server_default="NOT_APPLICABLE"),
        sa.Column("qc_versions", sa.String(16), nullable=False, server_default="NOT_APPLICABLE"),
        sa.Column("mail_date", sa.Date(), nullable=True),
        sa.Column("po_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_number", name="uq_jobs_job_number"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("jobs", schema=None) as batch_op:
        batch_op.create_index("ix_jobs_vendor_id", ["vendor_id"], unique=False)
        batch_op.create_index("ix_jobs_routing_type", ["routing_type"], unique=False)
        batch_op.create_index("ix_jobs_status_deleted", ["status", "deleted_at"], unique=False)

    op.create_table(
        "line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("unit_cost", sa.Numeric(12, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("markup_percent", sa.Numeric(9, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("unit_price", sa.Numeric(12, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "job_components",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("supplier", sa.String(255), nullable=True),
        sa.Column("artwork_status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("material_status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("tracking_info", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("po_number", sa.String(64), nullable=True),
        sa.Column("origin_party", sa.String(32), nullable=False),
        sa.Column("target_party", sa.String(32), nullable=False),
        sa.Column("target_vendor_id", sa.Integer(), nullable=True),
        sa.Column("buy_cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("paper_cpm", sa.Numeric(12, 4), nullable=True),
        sa.Column("print_cpm", sa.Numeric(12, 4), nullable=True),
        sa.Column("paper_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("paper_markup", sa.Numeric(12, 2), nullable=True),
        sa.Column("mfg_cost", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.ForeignKeyConstraint(["target_vendor_id"], ["vendors.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "profit_splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("routing_type", sa.String(32), nullable=False),
        sa.Column("costing_basis", sa.String(32), nullable=False),
        sa.Column("sell_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("spread", sa.Numeric(12, 2), nullable=False),
        sa.Column("paper_cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("paper_markup", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("mfg_cost", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("revenue", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("gross_profit", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("intermediary_cut", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("final_profit", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("partner_share", sa.Numeric(12, 2), nullable=False),
        sa.Column("brokerage_share", sa.Numeric(12, 2), nullable=False),
        sa.Column("margin_percent", sa.Numeric(7, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("is_negative", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_stale", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "payment_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("milestone", sa.String(32), nullable=False),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("previous_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actor", sa.String(128), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "job_status_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("job_id", sa.Integer(), nullable=False),
        sa.Column("from_status", sa.String(32), nullable=True),
        sa.Column("to_status", sa.String(32), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("actor", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    for table in ("line_items", "job_components", "purchase_orders", "profit_splits",
                  "payment_events", "job_status_events"):
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.create_index(f"ix_{table}_job_id", ["job_id"], unique=False)

    with op.batch_alter_table("payment_events", schema=None) as batch_op:
        batch_op.create_index("ix_payment_events_occurred_at", ["occurred_at"], unique=False)
    with op.batch_alter_table("job_status_events", schema=None) as batch_op:
        batch_op.create_index("ix_job_status_events_occurred_at", ["occurred_at"], unique=False)


def downgrade():
    op.drop_table("job_status_events")
    op.drop_table("payment_events")
    op.drop_table("profit_splits")
    op.drop_table("purchase_orders")
    op.drop_table("job_components")
    op.drop_table("line_items")
    op.drop_table("jobs")
    op.drop_table("vendors")
