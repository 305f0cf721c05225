# Overview: Pytest coverage for the bounded-time undo ledger.

from datetime import datetime, timedelta

import pytest
from payroll_ops.models import OrderStatus, ItemStatus, UndoAction
from payroll_ops.services import order_service, undo_service
from payroll_ops.services import order_repository as repo
from payroll_ops.services.errors import NotUndoableError, NothingReceivedError


RECEIVED_AT = datetime(2025, 1, 5, 10, 0)


def _partial_receive(order_id, quantities):
    return undo_service.perform(
        "RECEIVE_PARTIAL",
        f"Partially received order {order_id}",
        [order_id],
        lambda: order_service.receive_with_partial_items(
            order_id, quantities, actor="mgr", received_at=RECEIVED_AT
        ),
        actor="mgr",
    )


class TestUndo:
    def test_undo_restores_every_field(self, make_order):
        order = make_order([{"item_name": "Polo Shirt", "quantity": 3}, {"item_name": "Cap"}])
        polo, cap = repo.lines_for_order(order.order_id)
        before = undo_service.snapshot([order.order_id], include_children=False)

        new_order_id, entry = _partial_receive(order.order_id, {polo.line_id: 1})
        assert new_order_id is not None
        assert entry.affected_ids == sorted([order.order_id, new_order_id])

        undo_service.undo(entry.action_id, actor="mgr2")

        assert undo_service.snapshot([order.order_id], include_children=False) == before
        restored = repo.get_order(order.order_id)
        assert restored.status == OrderStatus.PENDING
        assert restored.first_deduction_date is None
        assert [line.line_id for line in repo.lines_for_order(order.order_id)] == [polo.line_id, cap.line_id]

    def test_undo_retires_split_order(self, make_order):
        order = make_order([{"item_name": "Polo Shirt", "quantity": 3}])
        (polo,) = repo.lines_for_order(order.order_id)

        new_order_id, entry = _partial_receive(order.order_id, {polo.line_id: 1})
        undo_service.undo(entry.action_id)

        split = repo.get_order(new_order_id)
        assert split.status == OrderStatus.CANCELLED
        assert split.total_cents == 0
        assert split.amount_remaining_cents == 0
        assert all(line.item_status == ItemStatus.CANCELLED for line in repo.lines_for_order(new_order_id))

    def test_undo_moves_reassigned_lines_back(self, make_order):
        order = make_order([{"item_name": "Polo Shirt"}, {"item_name": "Work Pants"}])
        polo, pants = repo.lines_for_order(order.order_id)

        new_order_id, entry = _partial_receive(order.order_id, {polo.line_id: 1})
        assert repo.get_line(pants.line_id).order_id == new_order_id

        undo_service.undo(entry.action_id)
        assert repo.get_line(pants.line_id).order_id == order.order_id
        assert repo.get_order(order.order_id).total_cents == 3500

    def test_second_undo_fails(self, make_order):
        order = make_order()
        _, entry = undo_service.perform(
            "RECEIVE", "Received", [order.order_id],
            lambda: order_service.mark_received(order.order_id, received_at=RECEIVED_AT),
        )

        undone = undo_service.undo(entry.action_id, actor="mgr")
        assert undone.undone is True
        assert undone.undone_by == "mgr"
        assert not undo_service.can_undo(entry.action_id)

        with pytest.raises(NotUndoableError):
            undo_service.undo(entry.action_id)

    def test_expired_entry_cannot_be_undone(self, make_order):
        order = make_order()
        _, entry = undo_service.perform(
            "CANCEL", "Cancelled", [order.order_id],
            lambda: order_service.cancel_order(order.order_id),
        )
        later = entry.expires_at + timedelta(seconds=1)

        assert undo_service.can_undo(entry.action_id)
        assert not undo_service.can_undo(entry.action_id, now=later)
        with pytest.raises(NotUndoableError):
            undo_service.undo(entry.action_id, now=later)
        assert repo.get_order(order.order_id).status == OrderStatus.CANCELLED

    def test_unknown_action(self, db_session):
        with pytest.raises(NotUndoableError):
            undo_service.undo("ACT-DOESNOTEXIST")

    def test_events_logged(self, make_order):
        order = make_order()
        _, entry = undo_service.perform(
            "RECEIVE", "Received", [order.order_id],
            lambda: order_service.mark_received(order.order_id, received_at=RECEIVED_AT),
        )
        undo_service.undo(entry.action_id)

        events = [ev.event_type for ev in repo.events_for_order(order.order_id)]
        assert events == ["order.created", "order.received", "undo.recorded", "undo.applied"]

    def test_failed_operation_records_nothing(self, make_order, db_session):
        order = make_order()
        with pytest.raises(NothingReceivedError):
            undo_service.perform(
                "RECEIVE_PARTIAL", "Nothing", [order.order_id],
                lambda: order_service.receive_with_partial_items(order.order_id, {}),
            )
        db_session.rollback()
        assert db_session.query(UndoAction).count() == 0


class TestLedger:
    def test_keeps_ten_most_recent(self, db_session):
        base = datetime(2025, 3, 1, 8, 0)
        ids = []
        for i in range(12):
            entry = undo_service.record(
                "NOTE", f"entry {i}", [], [], [], actor="mgr", now=base + timedelta(minutes=i)
            )
            ids.append(entry.action_id)

        kept = [row["action_id"] for row in undo_service.list_actions(now=base)]
        assert len(kept) == 10
        assert kept == list(reversed(ids[2:]))

    def test_window_is_twelve_hours(self, db_session):
        now = datetime(2025, 3, 1, 8, 0)
        entry = undo_service.record("NOTE", "entry", [], [], [], now=now)
        assert entry.expires_at == now + timedelta(hours=12)

        rows = undo_service.list_actions(now=now + timedelta(hours=13))
        assert rows[0]["can_undo"] is False
