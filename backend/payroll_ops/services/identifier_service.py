# Overview: Service-layer operations for order/line identifiers; encapsulates counter allocation.

"""
Identifier Service

WHY: Order and line identifiers are human-facing (printed on deduction
reports) and must never collide, even when several managers submit or split
orders at the same moment.

DESIGN:
- Two named counters (orderSeq, lineSeq) live in id_counters.
- A counter row is seeded on first use from the highest suffix already in
  use, so existing data imported from elsewhere never gets reissued ids.
- Every allocation runs under a process-wide lock with a bounded wait and
  increments with an atomic UPDATE ... SET current_value = current_value + 1.
- The new value is read back inside the incrementing transaction, so
  allocation stays unique across worker processes, not only threads.
- The increment is committed before the lock is released.

Callers must allocate identifiers BEFORE staging other changes in the
session: allocation commits the session.
"""

from __future__ import annotations

import re
import threading

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import IdCounter, Order, LineItem
from .concurrency import run_with_retry
from .errors import LockTimeoutError
from payroll_ops.time_utils import utcnow


ORDER_SEQ = "orderSeq"
LINE_SEQ = "lineSeq"

ORDER_ID_RE = re.compile(r"^ORD-\d{4}-(\d+)$")
LINE_ID_RE = re.compile(r"^LINE-(\d+)$")

# Single point of serialization for all allocations in this process
ID_LOCK = threading.Lock()


def format_order_id(year: int, seq: int) -> str:
    return f"ORD-{year}-{seq:04d}"


def format_line_id(seq: int) -> str:
    return f"LINE-{seq:06d}"


def _max_suffix(column, pattern: re.Pattern) -> int:
    highest = 0
    for (value,) in db.session.query(column).all():
        match = pattern.match(value or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def _seed_value(counter_name: str) -> int:
    if counter_name == ORDER_SEQ:
        return _max_suffix(Order.order_id, ORDER_ID_RE)
    if counter_name == LINE_SEQ:
        return _max_suffix(LineItem.line_id, LINE_ID_RE)
    return 0


def _increment(counter_name: str, count: int) -> int:
    """Reserve count values; returns the last one. Commits."""
    def _op() -> int:
        stmt = (
            update(IdCounter)
            .where(IdCounter.counter_name == counter_name)
            .values(current_value=IdCounter.current_value + count, last_updated=func.now())
        )

        result = db.session.execute(stmt)
        if not result.rowcount:
            seed = _seed_value(counter_name)
            db.session.add(IdCounter(counter_name=counter_name, current_value=seed + count, last_updated=utcnow()))
            try:
                db.session.flush()
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise

        # Read back while the UPDATE still holds the row lock, then commit
        last = (
            db.session.query(IdCounter.current_value)
            .filter_by(counter_name=counter_name)
            .scalar()
        )
        db.session.commit()
        return last

    return run_with_retry(_op)


def _allocate(counter_name: str, count: int = 1) -> list[int]:
    if count < 1:
        return []

    timeout = current_app.config.get("ID_LOCK_TIMEOUT_SECONDS", 10)
    if not ID_LOCK.acquire(timeout=timeout):
        current_app.logger.warning("Identifier lock not acquired within %ss for %s", timeout, counter_name)
        raise LockTimeoutError(f"Could not allocate {counter_name} identifier: lock busy, retry shortly")
    try:
        last = _increment(counter_name, count)
    finally:
        ID_LOCK.release()

    return list(range(last - count + 1, last + 1))


def next_order_id() -> str:
    """Allocate the next ORD-<year>-<seq:04> identifier."""
    (seq,) = _allocate(ORDER_SEQ)
    return format_order_id(utcnow().year, seq)


def next_line_id() -> str:
    """Allocate the next LINE-<seq:06> identifier."""
    (seq,) = _allocate(LINE_SEQ)
    return format_line_id(seq)


def next_line_ids(count: int) -> list[str]:
    """Allocate count consecutive line identifiers under one lock hold."""
    return [format_line_id(seq) for seq in _allocate(LINE_SEQ, count)]


def get_counters() -> list[IdCounter]:
    return db.session.query(IdCounter).order_by(IdCounter.counter_name).all()
