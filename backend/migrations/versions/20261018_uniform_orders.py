"""Uniform orders, lines, counters, undo ledger, events, catalog and employees

Revision ID: 20261018_uniform_orders
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_uniform_orders"
down_revision = None
branch_labels = None
depends_on = None


ORDER_STATUSES = ("Pending", "PendingCash", "StorePaid", "Active", "Completed", "Cancelled")
ITEM_STATUSES = ("Pending", "Received", "Cancelled")


def upgrade():
    op.create_table(
        "uniform_orders",
        sa.Column("order_id", sa.String(32), nullable=False),
        sa.Column("employee_id", sa.String(64), nullable=False),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(120), nullable=False),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_plan", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("amount_per_installment_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("first_deduction_date", sa.Date(), nullable=True),
        sa.Column("installments_paid", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_paid_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_remaining_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "status",
            sa.Enum(*ORDER_STATUSES, name="orderstatus", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(120), nullable=True),
        sa.Column("created_date", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("received_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("parent_order_id", sa.String(32), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("order_id"),
    )

    with op.batch_alter_table("uniform_orders", schema=None) as batch_op:
        batch_op.create_index("ix_uniform_orders_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_uniform_orders_location", ["location"], unique=False)
        batch_op.create_index("ix_uniform_orders_parent_order_id", ["parent_order_id"], unique=False)
        batch_op.create_index("ix_uniform_orders_employee_date", ["employee_id", "order_date"], unique=False)
        batch_op.create_index("ix_uniform_orders_status_deduction", ["status", "first_deduction_date"], unique=False)

    op.create_table(
        "uniform_order_lines",
        sa.Column("line_id", sa.String(32), nullable=False),
        sa.Column("order_id", sa.String(32), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("size", sa.String(32), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("line_total_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_replacement", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("received_flag", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("received_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("received_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by", sa.String(120), nullable=True),
        sa.Column(
            "item_status",
            sa.Enum(*ITEM_STATUSES, name="itemstatus", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column("parent_line_id", sa.String(32), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("line_id"),
    )

    with op.batch_alter_table("uniform_order_lines", schema=None) as batch_op:
        batch_op.create_index("ix_uniform_order_lines_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_uniform_order_lines_parent_line_id", ["parent_line_id"], unique=False)

    op.create_table(
        "id_counters",
        sa.Column("counter_name", sa.String(32), nullable=False),
        sa.Column("current_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("counter_name"),
    )

    op.create_table(
        "undo_actions",
        sa.Column("action_id", sa.String(40), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor", sa.String(120), nullable=True),
        sa.Column("action_type", sa.String(64), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("affected_ids_json", sa.Text(), nullable=False),
        sa.Column("before_state_json", sa.Text(), nullable=False),
        sa.Column("after_state_json", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("undone", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("undone_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("undone_by", sa.String(120), nullable=True),
        sa.PrimaryKeyConstraint("action_id"),
    )

    with op.batch_alter_table("undo_actions", schema=None) as batch_op:
        batch_op.create_index("ix_undo_actions_timestamp", ["timestamp"], unique=False)

    op.create_table(
        "order_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(32), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("actor", sa.String(120), nullable=True),
        sa.Column("action_id", sa.String(40), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("order_events", schema=None) as batch_op:
        batch_op.create_index("ix_order_events_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_order_events_action_id", ["action_id"], unique=False)
        batch_op.create_index("ix_order_events_order_occurred", ["order_id", "occurred_at"], unique=False)

    op.create_table(
        "catalog_items",
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("item_id"),
        sa.UniqueConstraint("item_name", name="uq_catalog_items_item_name"),
    )

    op.create_table(
        "employees",
        sa.Column("employee_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(120), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("employee_id"),
    )


def downgrade():
    op.drop_table("employees")
    op.drop_table("catalog_items")
    op.drop_table("order_events")
    op.drop_table("undo_actions")
    op.drop_table("id_counters")
    op.drop_table("uniform_order_lines")
    op.drop_table("uniform_orders")
