# Overview: Pytest coverage for order/line identifier allocation.

import threading
from datetime import datetime

import pytest
from payroll_ops import create_app
from payroll_ops.extensions import db
from payroll_ops.models import Order, LineItem, OrderStatus, ItemStatus, IdCounter
from payroll_ops.services import identifier_service
from payroll_ops.services.errors import LockTimeoutError
from payroll_ops.time_utils import utcnow
from sqlalchemy import create_engine, text


def _seed_order(order_id: str, line_id: str):
    db.session.add(Order(
        order_id=order_id,
        employee_id="E1",
        employee_name="Seed",
        location="North",
        order_date=datetime(2024, 5, 1),
        status=OrderStatus.PENDING,
    ))
    db.session.add(LineItem(
        line_id=line_id,
        order_id=order_id,
        item_id="CAP",
        item_name="Cap",
        quantity=1,
        item_status=ItemStatus.PENDING,
    ))
    db.session.commit()


class TestFormatting:
    def test_order_id_format(self):
        assert identifier_service.format_order_id(2025, 7) == "ORD-2025-0007"
        assert identifier_service.format_order_id(2025, 12345) == "ORD-2025-12345"

    def test_line_id_format(self):
        assert identifier_service.format_line_id(42) == "LINE-000042"


class TestAllocation:
    def test_sequences_start_at_one(self, db_session):
        year = utcnow().year
        assert identifier_service.next_order_id() == f"ORD-{year}-0001"
        assert identifier_service.next_order_id() == f"ORD-{year}-0002"
        assert identifier_service.next_line_id() == "LINE-000001"

    def test_counter_seeded_from_existing_rows(self, db_session):
        _seed_order("ORD-2024-0041", "LINE-000100")

        assert identifier_service.next_order_id().endswith("-0042")
        assert identifier_service.next_line_id() == "LINE-000101"

        counters = {c.counter_name: c.current_value for c in identifier_service.get_counters()}
        assert counters == {"orderSeq": 42, "lineSeq": 101}

    def test_line_ids_are_consecutive(self, db_session):
        first = identifier_service.next_line_id()
        batch = identifier_service.next_line_ids(3)
        assert first == "LINE-000001"
        assert batch == ["LINE-000002", "LINE-000003", "LINE-000004"]
        assert identifier_service.next_line_ids(0) == []

    def test_write_is_durable_before_return(self, db_session):
        identifier_service.next_order_id()
        db_session.rollback()
        assert db_session.get(IdCounter, "orderSeq").current_value == 1

    def test_lock_timeout_raises_retryable_error(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "ID_LOCK_TIMEOUT_SECONDS", 0.05)
        assert identifier_service.ID_LOCK.acquire(timeout=1)
        try:
            with pytest.raises(LockTimeoutError) as excinfo:
                identifier_service.next_order_id()
        finally:
            identifier_service.ID_LOCK.release()

        assert excinfo.value.retryable is True
        assert excinfo.value.status_code == 503
        assert db_session.get(IdCounter, "orderSeq") is None


def test_concurrent_allocation_never_duplicates(tmp_path):
    db_path = tmp_path / "identifiers.db"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
    })
    with app.app_context():
        db.create_all()

    allocated = []
    errors = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                for _ in range(5):
                    order_id = identifier_service.next_order_id()
                    line_ids = identifier_service.next_line_ids(2)
                    with lock:
                        allocated.append(order_id)
                        allocated.extend(line_ids)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(allocated) == 8 * 5 * 3
    assert len(allocated) == len(set(allocated))

    with app.app_context():
        counters = {c.counter_name: c.current_value for c in identifier_service.get_counters()}
        assert counters == {"orderSeq": 40, "lineSeq": 80}
        db.session.remove()
        db.engine.dispose()


def test_allocated_value_ignores_increments_after_commit(tmp_path, monkeypatch):
    # A second engine stands in for another worker process that bypasses ID_LOCK
    db_path = tmp_path / "identifiers.db"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
    })
    other = create_engine(f"sqlite:///{db_path}")

    with app.app_context():
        db.create_all()
        real_commit = db.session.commit

        def commit_then_other_worker_allocates():
            real_commit()
            with other.begin() as conn:
                conn.execute(text(
                    "UPDATE id_counters SET current_value = current_value + 1 "
                    "WHERE counter_name = 'orderSeq'"
                ))

        monkeypatch.setattr(db.session, "commit", commit_then_other_worker_allocates)
        try:
            assert identifier_service.next_order_id().endswith("-0001")
            assert identifier_service.next_order_id().endswith("-0003")
        finally:
            monkeypatch.undo()

        assert db.session.get(IdCounter, "orderSeq").current_value == 4
        db.session.remove()
        db.engine.dispose()
    other.dispose()
