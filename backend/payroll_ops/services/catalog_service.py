# Overview: Uniform catalog lookups used at order intake.

from __future__ import annotations

from ..extensions import db
from ..models import CatalogItem
from .errors import ValidationError


def normalize_item_name(value: str) -> str:
    return " ".join(value.split()).strip()


def lookup_item(item_name: str) -> CatalogItem | None:
    """Case-insensitive lookup by display name."""
    if not item_name:
        return None
    normalized = normalize_item_name(item_name)
    return (
        db.session.query(CatalogItem)
        .filter(db.func.lower(CatalogItem.item_name) == normalized.lower())
        .first()
    )


def require_orderable_item(item_name: str) -> CatalogItem:
    item = lookup_item(item_name)
    if item is None:
        raise ValidationError(f"Catalog item '{item_name}' not found")
    if not item.is_active:
        raise ValidationError(f"Catalog item '{item.item_name}' is no longer available")
    return item


def list_active_items() -> list[CatalogItem]:
    return (
        db.session.query(CatalogItem)
        .filter(CatalogItem.is_active == True)  # noqa: E712
        .order_by(CatalogItem.item_name)
        .all()
    )


def upsert_item(*, item_id: str, item_name: str, price_cents: int, is_active: bool = True) -> CatalogItem:
    if price_cents < 0:
        raise ValidationError("Catalog price cannot be negative")

    item = db.session.get(CatalogItem, item_id)
    if item is None:
        item = CatalogItem(item_id=item_id)
        db.session.add(item)

    item.item_name = normalize_item_name(item_name)
    item.price_cents = price_cents
    item.is_active = is_active

    db.session.commit()
    return item
