# Overview: Pytest coverage for the payroll deduction schedule reader.

from datetime import date, datetime

from payroll_ops.services import deduction_service, order_service, employee_service


RECEIVED_AT = datetime(2025, 1, 5, 10, 0)


def _received(make_order, items, payment_plan, **kwargs):
    order = make_order(items, payment_plan=payment_plan, **kwargs)
    return order_service.mark_received(order.order_id, received_at=RECEIVED_AT)


class TestDueOn:
    def test_installments_follow_cadence(self, make_order):
        order = _received(make_order, [{"item_name": "Apron"}], 3)
        assert order.first_deduction_date == date(2025, 1, 24)

        amounts = []
        for payday in (date(2025, 1, 24), date(2025, 2, 7), date(2025, 2, 21)):
            result = deduction_service.due_on(payday)
            (row,) = result["orders"]
            amounts.append(row["amount_cents"])
            assert row["order_id"] == order.order_id
            assert row["employee_name"] == "Dana Reyes"

        assert amounts == [333, 333, 334]
        assert deduction_service.due_on(date(2025, 2, 21))["orders"][0]["is_final_installment"] is True
        assert deduction_service.due_on(date(2025, 3, 7))["orders"] == []
        assert deduction_service.due_on(date(2025, 1, 10))["orders"] == []

    def test_totals_and_employee_count(self, make_order):
        employee_service.upsert_employee(employee_id="E200", name="Lee Park", location="South")
        _received(make_order, [{"item_name": "Polo Shirt"}], 1)
        _received(make_order, [{"item_name": "Work Pants"}], 1)
        _received(make_order, [{"item_name": "Cap"}], 2, employee="E200")

        result = deduction_service.due_on("2025-01-24")

        assert result["payday"] == "2025-01-24"
        assert result["total_amount_cents"] == 2000 + 1500 + 600
        assert result["employee_count"] == 2
        assert len(result["orders"]) == 3

    def test_unreceived_and_cash_orders_excluded(self, make_order):
        make_order([{"item_name": "Polo Shirt"}], payment_plan=1)
        cash = make_order([{"item_name": "Cap"}], pay_cash=True)
        order_service.convert_to_cash_payment(cash.order_id, received_at=RECEIVED_AT)

        assert deduction_service.due_on(date(2025, 1, 24))["orders"] == []

    def test_completed_orders_still_reported(self, make_order):
        order = _received(make_order, [{"item_name": "Polo Shirt"}], 1)
        order_service.record_installment_payment(order.order_id)

        (row,) = deduction_service.due_on(date(2025, 1, 24))["orders"]
        assert row["amount_cents"] == 2000


def test_calendar(make_order):
    _received(make_order, [{"item_name": "Work Pants"}], 1)

    calendar = deduction_service.deduction_calendar(2, 1, today=date(2025, 1, 24))

    assert [row["payday"] for row in calendar] == ["2025-01-10", "2025-01-24", "2025-02-07"]
    assert [row["total_amount_cents"] for row in calendar] == [0, 1500, 0]
    assert calendar[1]["order_count"] == 1
