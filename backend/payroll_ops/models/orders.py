from __future__ import annotations

import enum

from ..extensions import db
from payroll_ops.time_utils import to_utc_z, to_iso_date


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PENDING_CASH = "PendingCash"
    STORE_PAID = "StorePaid"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class ItemStatus(str, enum.Enum):
    PENDING = "Pending"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Order(db.Model):
    """
    One uniform benefit request.

    Money is stored in integer cents. payment_plan is the number of payroll
    installments (1-3); 0 means the order is paid in cash with no deduction.

    Split orders point back at the order they were carved out of through
    parent_order_id. Orders are never deleted.
    """
    __tablename__ = "uniform_orders"
    __table_args__ = (
        db.Index("ix_uniform_orders_employee_date", "employee_id", "order_date"),
        db.Index("ix_uniform_orders_status_deduction", "status", "first_deduction_date"),
    )

    order_id = db.Column(db.String(32), primary_key=True)

    employee_id = db.Column(db.String(64), nullable=False, index=True)
    employee_name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(120), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_plan = db.Column(db.Integer, nullable=False, default=1)
    amount_per_installment_cents = db.Column(db.Integer, nullable=False, default=0)
    first_deduction_date = db.Column(db.Date, nullable=True)
    installments_paid = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_remaining_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(
        db.Enum(OrderStatus, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(120), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Lineage: set on orders created by splitting an unreceived remainder
    parent_order_id = db.Column(db.String(32), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_cash_order(self) -> bool:
        return self.payment_plan == 0

    def __repr__(self) -> str:
        return f"<Order {self.order_id} employee={self.employee_id!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "location": self.location,
            "order_date": to_utc_z(self.order_date),
            "total_cents": self.total_cents,
            "payment_plan": self.payment_plan,
            "amount_per_installment_cents": self.amount_per_installment_cents,
            "first_deduction_date": to_iso_date(self.first_deduction_date),
            "installments_paid": self.installments_paid,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_remaining_cents": self.amount_remaining_cents,
            "status": self.status.value,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_date": to_utc_z(self.created_date),
            "received_date": to_utc_z(self.received_date),
            "parent_order_id": self.parent_order_id,
        }


class LineItem(db.Model):
    """
    One catalog item within an order.

    order_id is a plain reference, not a foreign key: lines are reassigned
    between orders when an order is split, and the conflict scan reports
    lines whose order no longer resolves.
    """
    __tablename__ = "uniform_order_lines"

    line_id = db.Column(db.String(32), primary_key=True)
    order_id = db.Column(db.String(32), nullable=False, index=True)

    item_id = db.Column(db.String(64), nullable=False)
    item_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(32), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)
    is_replacement = db.Column(db.Boolean, nullable=False, default=False)

    received_flag = db.Column(db.Boolean, nullable=False, default=False)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_by = db.Column(db.String(120), nullable=True)

    item_status = db.Column(
        db.Enum(ItemStatus, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=ItemStatus.PENDING,
    )

    # Lineage: set on the remainder row created when a line is split
    parent_line_id = db.Column(db.String(32), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<LineItem {self.line_id} order={self.order_id} item={self.item_name!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "line_id": self.line_id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "size": self.size,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "is_replacement": self.is_replacement,
            "received_flag": self.received_flag,
            "received_quantity": self.received_quantity,
            "received_date": to_utc_z(self.received_date),
            "received_by": self.received_by,
            "item_status": self.item_status.value,
            "parent_line_id": self.parent_line_id,
        }


class OrderEvent(db.Model):
    """
    Append-only log of lifecycle events per order.

    Written in the same transaction as the change it records; never updated.
    """
    __tablename__ = "order_events"
    __table_args__ = (
        db.Index("ix_order_events_order_occurred", "order_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), nullable=False, index=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    actor = db.Column(db.String(120), nullable=True)
    action_id = db.Column(db.String(40), nullable=True, index=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "event_type": self.event_type,
            "actor": self.actor,
            "action_id": self.action_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
        }
