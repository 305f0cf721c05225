from __future__ import annotations

from ..extensions import db
from payroll_ops.time_utils import to_utc_z


class CatalogItem(db.Model):
    """Uniform catalog entry. Orders copy name and price at intake."""
    __tablename__ = "catalog_items"

    item_id = db.Column(db.String(64), primary_key=True)
    item_name = db.Column(db.String(255), nullable=False, unique=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "updated_at": to_utc_z(self.updated_at),
        }


class Employee(db.Model):
    __tablename__ = "employees"

    employee_id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "name": self.name,
            "location": self.location,
            "email": self.email,
            "is_active": self.is_active,
        }
