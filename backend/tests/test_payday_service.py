# Overview: Pytest coverage for payroll calendar arithmetic.

from datetime import date, datetime, timedelta

import pytest
from payroll_ops.services import payday_service
from payroll_ops.services.payday_service import (
    installment_paydays,
    is_payday,
    next_payday_on_or_after,
    payday_for,
    period_for,
    upcoming_paydays,
)


ANCHOR = date(2025, 1, 10)


class TestPaydayFor:
    def test_period_end_maps_to_its_payday(self):
        # Period for 2025-01-10 runs Sunday 2024-12-22 .. Saturday 2025-01-04
        assert payday_for(date(2024, 12, 22)) == ANCHOR
        assert payday_for(date(2025, 1, 4)) == ANCHOR

    def test_day_after_boundary_maps_to_next_payday(self):
        assert payday_for(date(2025, 1, 5)) == date(2025, 1, 24)
        assert payday_for(date(2024, 12, 21)) == ANCHOR - timedelta(days=14)

    def test_accepts_datetime_and_string(self):
        assert payday_for(datetime(2025, 1, 5, 23, 59)) == date(2025, 1, 24)
        assert payday_for("2025-01-04") == ANCHOR

    def test_payday_itself_belongs_to_following_period(self):
        # Payday 2025-01-10 falls inside the period owned by 2025-01-24
        assert payday_for(ANCHOR) == date(2025, 1, 24)

    @pytest.mark.parametrize("start", [date(1999, 3, 1), date(2024, 6, 1), date(2031, 11, 20)])
    def test_consistent_far_from_anchor(self, start):
        for offset in range(60):
            d = start + timedelta(days=offset)
            p = payday_for(d)
            assert is_payday(p)
            assert payday_for(p - timedelta(days=6)) == p
            period_start, period_end = period_for(p)
            assert period_start <= d <= period_end
            assert (period_end - period_start).days == 13

    def test_requires_a_date(self):
        with pytest.raises(ValueError):
            payday_for(None)

    def test_accepts_full_datetime_string(self):
        assert payday_for("2025-01-04T23:30:00Z") == ANCHOR

    @pytest.mark.parametrize("raw", ["2025-01-10garbage", "2025-01-1", "2025-01-10T99:00"])
    def test_rejects_trailing_or_malformed_text(self, raw):
        with pytest.raises(ValueError):
            payday_for(raw)

    def test_custom_anchor_and_cycle(self):
        weekly_anchor = date(2025, 1, 3)
        # Weekly: period for P is P-12 .. P-6
        assert payday_for(date(2024, 12, 28), anchor=weekly_anchor, cycle_days=7) == weekly_anchor
        assert payday_for(date(2024, 12, 29), anchor=weekly_anchor, cycle_days=7) == date(2025, 1, 10)


class TestPaydaySequence:
    def test_next_payday_on_or_after(self):
        assert next_payday_on_or_after(ANCHOR) == ANCHOR
        assert next_payday_on_or_after(date(2025, 1, 9)) == ANCHOR
        assert next_payday_on_or_after(date(2025, 1, 11)) == date(2025, 1, 24)

    def test_upcoming_paydays_mixes_history_and_future(self):
        result = upcoming_paydays(3, 2, today=date(2025, 1, 11))
        assert result == [
            date(2024, 12, 27),
            date(2025, 1, 10),
            date(2025, 1, 24),
            date(2025, 2, 7),
            date(2025, 2, 21),
        ]
        assert result == sorted(result)

    def test_upcoming_paydays_includes_today_when_payday(self):
        assert upcoming_paydays(1, today=ANCHOR) == [ANCHOR]

    def test_upcoming_paydays_rejects_negative_counts(self):
        with pytest.raises(ValueError):
            upcoming_paydays(-1, today=ANCHOR)

    def test_installment_paydays(self):
        assert installment_paydays(date(2025, 1, 24), 3) == [
            date(2025, 1, 24),
            date(2025, 2, 7),
            date(2025, 2, 21),
        ]


def test_calendar_follows_app_config(app, monkeypatch):
    monkeypatch.setitem(app.config, "PAYDAY_ANCHOR", "2025-01-17")
    with app.app_context():
        assert payday_service.is_payday(date(2025, 1, 17))
        assert payday_for(date(2025, 1, 11)) == date(2025, 1, 17)
