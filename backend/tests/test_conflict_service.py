# Overview: Pytest coverage for the read-only order consistency scan.

from datetime import datetime

from payroll_ops.models import Order, LineItem, OrderStatus, ItemStatus
from payroll_ops.services import conflict_service


def _order(db_session, order_id, *, status=OrderStatus.PENDING, total=2000, paid=0, remaining=None,
           employee_id="E100", order_date=datetime(2025, 2, 3, 9, 0), parent_order_id=None):
    order = Order(
        order_id=order_id,
        employee_id=employee_id,
        employee_name="Dana Reyes",
        location="North",
        order_date=order_date,
        total_cents=total,
        payment_plan=2,
        amount_per_installment_cents=total // 2,
        amount_paid_cents=paid,
        amount_remaining_cents=total - paid if remaining is None else remaining,
        status=status,
        parent_order_id=parent_order_id,
    )
    db_session.add(order)
    db_session.commit()
    return order


class TestConflictScan:
    def test_clean_state(self, db_session):
        _order(db_session, "ORD-2025-0001")
        report = conflict_service.scan()
        assert report["issue_count"] == 0
        assert report["scanned_orders"] == 1

    def test_completed_with_balance_is_zombie(self, db_session):
        _order(db_session, "ORD-2025-0001", status=OrderStatus.COMPLETED, total=2000, paid=1500, remaining=500)

        report = conflict_service.scan()

        assert len(report["zombies"]) == 1
        finding = report["zombies"][0]
        assert finding["issue_type"] == "zombie"
        assert finding["order_ids"] == ["ORD-2025-0001"]
        assert "$5.00" in finding["description"]

    def test_active_without_balance_is_zombie(self, db_session):
        _order(db_session, "ORD-2025-0001", status=OrderStatus.ACTIVE, total=2000, paid=2000)
        assert [f["order_ids"] for f in conflict_service.scan()["zombies"]] == [["ORD-2025-0001"]]

    def test_same_day_open_orders_are_duplicates(self, db_session):
        _order(db_session, "ORD-2025-0001")
        _order(db_session, "ORD-2025-0002", order_date=datetime(2025, 2, 3, 15, 30))
        _order(db_session, "ORD-2025-0003", status=OrderStatus.CANCELLED)
        _order(db_session, "ORD-2025-0004", parent_order_id="ORD-2025-0001")
        _order(db_session, "ORD-2025-0005", employee_id="E200")
        _order(db_session, "ORD-2025-0006", order_date=datetime(2025, 2, 4, 9, 0))

        duplicates = conflict_service.scan()["duplicates"]

        assert len(duplicates) == 1
        assert duplicates[0]["order_ids"] == ["ORD-2025-0001", "ORD-2025-0002"]

    def test_overcharge_beyond_epsilon(self, db_session):
        _order(db_session, "ORD-2025-0001", status=OrderStatus.COMPLETED, total=1500, paid=2000, remaining=0)
        _order(db_session, "ORD-2025-0002", status=OrderStatus.COMPLETED, total=1500, paid=1501, remaining=0)

        overcharges = conflict_service.scan()["overcharges"]
        assert [f["order_ids"] for f in overcharges] == [["ORD-2025-0001"]]

    def test_line_without_order_is_orphan(self, db_session):
        _order(db_session, "ORD-2025-0001")
        db_session.add(LineItem(
            line_id="LINE-000009",
            order_id="ORD-2025-0404",
            item_id="CAP",
            item_name="Cap",
            quantity=1,
            unit_price_cents=1200,
            line_total_cents=1200,
            item_status=ItemStatus.PENDING,
        ))
        db_session.commit()

        orphans = conflict_service.scan()["orphans"]
        assert len(orphans) == 1
        assert orphans[0]["line_ids"] == ["LINE-000009"]
        assert orphans[0]["order_ids"] == ["ORD-2025-0404"]

    def test_scan_is_read_only(self, db_session):
        order = _order(db_session, "ORD-2025-0001", status=OrderStatus.COMPLETED, remaining=500)
        conflict_service.scan()
        db_session.expire_all()
        assert db_session.get(Order, order.order_id).amount_remaining_cents == 500
