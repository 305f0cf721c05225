# Overview: Read-only consistency audit over committed order state.

"""
Conflict Detector

Scans orders and lines and reports, never fixes:
- duplicates:  several open orders for one employee on the same calendar day
               (orders created by splitting are not counted)
- zombies:     Completed with a balance left, or Active with nothing left
- overcharges: more collected than the order total
- orphans:     lines pointing at an order that does not exist

Findings are advisory; a person decides what to do with them.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from flask import current_app

from ..models import OrderStatus
from . import order_repository as repo


OPEN_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PENDING_CASH,
    OrderStatus.STORE_PAID,
    OrderStatus.ACTIVE,
)

ISSUE_DUPLICATE = "duplicate"
ISSUE_ZOMBIE = "zombie"
ISSUE_OVERCHARGE = "overcharge"
ISSUE_ORPHAN = "orphan"


@dataclass
class Finding:
    issue_type: str
    description: str
    order_ids: list[str] = field(default_factory=list)
    line_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "issue_type": self.issue_type,
            "description": self.description,
            "order_ids": self.order_ids,
            "line_ids": self.line_ids,
        }


def _money(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def find_duplicates(orders) -> list[Finding]:
    groups = defaultdict(list)
    for order in orders:
        if order.status in OPEN_STATUSES and order.parent_order_id is None:
            groups[(order.employee_id, order.order_date.date())].append(order)

    findings = []
    for (employee_id, day), group in sorted(groups.items(), key=lambda kv: (kv[0][0], kv[0][1])):
        if len(group) < 2:
            continue
        findings.append(Finding(
            issue_type=ISSUE_DUPLICATE,
            description=(
                f"{group[0].employee_name} ({employee_id}) has {len(group)} open orders "
                f"placed on {day.isoformat()}"
            ),
            order_ids=sorted(o.order_id for o in group),
        ))
    return findings


def find_zombies(orders) -> list[Finding]:
    findings = []
    for order in orders:
        if order.status == OrderStatus.COMPLETED and order.amount_remaining_cents > 0:
            findings.append(Finding(
                issue_type=ISSUE_ZOMBIE,
                description=(
                    f"Order {order.order_id} is Completed but still has "
                    f"{_money(order.amount_remaining_cents)} remaining"
                ),
                order_ids=[order.order_id],
            ))
        elif order.status == OrderStatus.ACTIVE and order.amount_remaining_cents <= 0:
            findings.append(Finding(
                issue_type=ISSUE_ZOMBIE,
                description=(
                    f"Order {order.order_id} is Active but has "
                    f"{_money(order.amount_remaining_cents)} remaining"
                ),
                order_ids=[order.order_id],
            ))
    return findings


def find_overcharges(orders, *, epsilon_cents: int = 1) -> list[Finding]:
    findings = []
    for order in orders:
        excess = order.amount_paid_cents - order.total_cents
        if excess > epsilon_cents:
            findings.append(Finding(
                issue_type=ISSUE_OVERCHARGE,
                description=(
                    f"Order {order.order_id} collected {_money(order.amount_paid_cents)} "
                    f"against a total of {_money(order.total_cents)} ({_money(excess)} over)"
                ),
                order_ids=[order.order_id],
            ))
    return findings


def find_orphans(orders, lines) -> list[Finding]:
    known = {order.order_id for order in orders}
    findings = []
    for line in lines:
        if line.order_id not in known:
            findings.append(Finding(
                issue_type=ISSUE_ORPHAN,
                description=f"Line {line.line_id} ({line.item_name}) references missing order {line.order_id}",
                order_ids=[line.order_id],
                line_ids=[line.line_id],
            ))
    return findings


def scan() -> dict:
    """
    Run every check over current state.

    Returns:
        {"duplicates": [...], "zombies": [...], "overcharges": [...], "orphans": [...],
         "issue_count": int, "scanned_orders": int, "scanned_lines": int}
    """
    orders = repo.all_orders()
    lines = repo.all_lines()
    epsilon = current_app.config.get("OVERCHARGE_EPSILON_CENTS", 1)

    report = {
        "duplicates": [f.to_dict() for f in find_duplicates(orders)],
        "zombies": [f.to_dict() for f in find_zombies(orders)],
        "overcharges": [f.to_dict() for f in find_overcharges(orders, epsilon_cents=epsilon)],
        "orphans": [f.to_dict() for f in find_orphans(orders, lines)],
    }
    report["issue_count"] = sum(len(v) for v in report.values())
    report["scanned_orders"] = len(orders)
    report["scanned_lines"] = len(lines)
    return report
