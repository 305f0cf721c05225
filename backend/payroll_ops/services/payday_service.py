# Overview: Payroll calendar arithmetic (bi-weekly paydays).

"""
Payday Calculator

Paydays fall on a fixed cadence (14 days) anchored to one known historical
payday Friday. The deduction period owned by payday P is the 14 days that end
on the Saturday six days before P:

    P - 19 (Sunday) .. P - 6 (Saturday), inclusive

An order received on date d is deducted on the payday whose period contains
d. A date one day after a period boundary therefore belongs to the next
payday, never the one just closed.

All functions are pure. Anchor and cadence default to app config when an
application context is active.
"""

from __future__ import annotations

from datetime import date, timedelta

from flask import current_app, has_app_context

from payroll_ops.time_utils import parse_iso_date, utcnow


DEFAULT_ANCHOR = date(2025, 1, 10)
DEFAULT_CYCLE_DAYS = 14

# Period ends this many days before its payday
PERIOD_END_OFFSET_DAYS = 6


def _calendar(anchor: date | None, cycle_days: int | None) -> tuple[date, int]:
    if has_app_context():
        anchor = anchor or parse_iso_date(current_app.config.get("PAYDAY_ANCHOR"))
        cycle_days = cycle_days or current_app.config.get("PAYDAY_CYCLE_DAYS")
    return anchor or DEFAULT_ANCHOR, cycle_days or DEFAULT_CYCLE_DAYS


def payday_for(value, *, anchor: date | None = None, cycle_days: int | None = None) -> date:
    """
    Return the payday whose deduction period contains value.

    Accepts a date, datetime or ISO string. Works for any distance from the
    anchor in constant time.
    """
    d = parse_iso_date(value)
    if d is None:
        raise ValueError("payday_for requires a date")
    anchor, cycle_days = _calendar(anchor, cycle_days)

    # First day of the anchor payday's period
    period_start = anchor - timedelta(days=PERIOD_END_OFFSET_DAYS + cycle_days - 1)
    cycles = (d - period_start).days // cycle_days
    return anchor + timedelta(days=cycles * cycle_days)


def period_for(payday: date, *, cycle_days: int | None = None) -> tuple[date, date]:
    """Inclusive (start, end) of the deduction period owned by payday."""
    _, cycle_days = _calendar(None, cycle_days)
    end = payday - timedelta(days=PERIOD_END_OFFSET_DAYS)
    return end - timedelta(days=cycle_days - 1), end


def is_payday(value, *, anchor: date | None = None, cycle_days: int | None = None) -> bool:
    d = parse_iso_date(value)
    anchor, cycle_days = _calendar(anchor, cycle_days)
    return (d - anchor).days % cycle_days == 0


def next_payday_on_or_after(value, *, anchor: date | None = None, cycle_days: int | None = None) -> date:
    d = parse_iso_date(value)
    anchor, cycle_days = _calendar(anchor, cycle_days)
    cycles = -((anchor - d).days // cycle_days)
    return anchor + timedelta(days=cycles * cycle_days)


def installment_paydays(first_deduction_date: date, installments: int, *, cycle_days: int | None = None) -> list[date]:
    """Paydays on which each installment of a plan is collected."""
    _, cycle_days = _calendar(None, cycle_days)
    return [first_deduction_date + timedelta(days=i * cycle_days) for i in range(installments)]


def upcoming_paydays(
    count: int,
    history_count: int = 0,
    *,
    today: date | None = None,
    anchor: date | None = None,
    cycle_days: int | None = None,
) -> list[date]:
    """
    Chronologically sorted paydays around today.

    Returns history_count paydays strictly before today followed by count
    paydays on or after today.
    """
    if count < 0 or history_count < 0:
        raise ValueError("count and history_count must be non-negative")
    today = today or utcnow().date()
    anchor, cycle_days = _calendar(anchor, cycle_days)

    first_future = next_payday_on_or_after(today, anchor=anchor, cycle_days=cycle_days)
    step = timedelta(days=cycle_days)
    past = [first_future - step * i for i in range(history_count, 0, -1)]
    future = [first_future + step * i for i in range(count)]
    return past + future
