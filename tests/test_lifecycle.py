"""Membership rules: numbering, end dates, role bootstrap, status transitions."""

from datetime import date, datetime, timezone

import pytest

import lifecycle
from errors import InvalidInput, InvalidTransition, Overflow
from models import Duration, MembershipStatus, Role

TODAY = date(2026, 3, 15)


class TestAssignRole:
    def test_first_identity_is_admin(self):
        assert lifecycle.assign_role(0) == Role.admin

    @pytest.mark.parametrize("count", [1, 2, 50, 10_000])
    def test_everyone_after_is_user(self, count):
        assert lifecycle.assign_role(count) == Role.user

    @pytest.mark.parametrize("count", [-1, 1.0, "0", None, True])
    def test_rejects_bad_counts(self, count):
        with pytest.raises(InvalidInput):
            lifecycle.assign_role(count)


class TestMembershipNumber:
    @pytest.mark.parametrize("count,expected", [
        (0, "MEM000001"),
        (41, "MEM000042"),
        (12344, "MEM012345"),
        (999998, "MEM999999"),
    ])
    def test_format(self, count, expected):
        assert lifecycle.next_membership_number(count) == expected

    def test_overflow_past_six_digits(self):
        with pytest.raises(Overflow):
            lifecycle.next_membership_number(999999)

    def test_negative_count(self):
        with pytest.raises(InvalidInput):
            lifecycle.next_membership_number(-1)

    @pytest.mark.parametrize("text,expected", [
        ("mem000042", "MEM000042"),
        ("  MEM000001 ", "MEM000001"),
    ])
    def test_parse_normalises(self, text, expected):
        assert lifecycle.parse_membership_number(text) == expected

    @pytest.mark.parametrize("text", ["", "MEM42", "MEM0000001", "ABC000001", None])
    def test_parse_rejects(self, text):
        with pytest.raises(InvalidInput):
            lifecycle.parse_membership_number(text)


class TestComputeEndDate:
    def test_durations_are_ordered(self):
        d = date(2024, 5, 17)
        six = lifecycle.compute_end_date(d, Duration.six_months)
        one = lifecycle.compute_end_date(d, Duration.one_year)
        two = lifecycle.compute_end_date(d, Duration.two_years)
        assert d < six < one < two
        assert (six, one, two) == (date(2024, 11, 17), date(2025, 5, 17), date(2026, 5, 17))

    def test_accepts_string_tags(self):
        assert lifecycle.compute_end_date(date(2024, 1, 1), "2_years") == date(2026, 1, 1)

    def test_month_end_is_kept_when_valid(self):
        assert lifecycle.compute_end_date(date(2024, 1, 31), Duration.six_months) == date(2024, 7, 31)

    def test_month_end_is_clamped_in_february(self):
        assert lifecycle.compute_end_date(date(2024, 8, 31), Duration.six_months) == date(2025, 2, 28)

    def test_leap_day(self):
        assert lifecycle.compute_end_date(date(2024, 2, 29), Duration.one_year) == date(2025, 2, 28)
        assert lifecycle.compute_end_date(date(2024, 2, 29), Duration.two_years) == date(2026, 2, 28)

    def test_unknown_duration(self):
        with pytest.raises(InvalidInput):
            lifecycle.compute_end_date(date(2024, 1, 1), "3_months")

    def test_rejects_non_date(self):
        with pytest.raises(InvalidInput):
            lifecycle.compute_end_date("2024-01-01", Duration.one_year)


class TestNewMembership:
    def test_starts_active_today(self):
        now = datetime(2026, 3, 15, 9, 30, tzinfo=timezone.utc)
        m = lifecycle.new_membership(
            "mem000007", " Jane Doe ", "jane@fitclub.org", "0123456789", "1 Main Street",
            "6_months", today=TODAY, created_by=3, now=now,
        )
        assert m.membership_number == "MEM000007"
        assert m.member_name == "Jane Doe"
        assert m.status == MembershipStatus.active
        assert m.start_date == TODAY
        assert m.end_date == date(2026, 9, 15)
        assert m.created_at == m.updated_at == now
        assert m.created_by == 3


class TestTransitions:
    def test_extend_active_from_end_date(self, membership_factory):
        m = membership_factory(end_date=date(2025, 1, 1))
        out = lifecycle.extend(m, Duration.one_year, TODAY)
        assert out.end_date == date(2026, 1, 1)
        assert out.status == MembershipStatus.active
        assert out.duration == Duration.one_year
        assert out.start_date == m.start_date

    def test_extend_does_not_mutate_input(self, membership_factory):
        m = membership_factory()
        lifecycle.extend(m, Duration.six_months, TODAY)
        assert m.end_date == date(2025, 1, 1)

    def test_repeated_extensions_compound(self, membership_factory):
        m = membership_factory(end_date=date(2025, 1, 1))
        m = lifecycle.extend(m, Duration.six_months, TODAY)
        m = lifecycle.extend(m, Duration.six_months, TODAY)
        assert m.end_date == date(2026, 1, 1)

    def test_extension_records_latest_duration(self, membership_factory):
        m = membership_factory(duration=Duration.two_years)
        assert lifecycle.extend(m, "6_months", TODAY).duration == Duration.six_months

    def test_cancel_active(self, membership_factory):
        now = datetime(2026, 3, 15, tzinfo=timezone.utc)
        out = lifecycle.cancel(membership_factory(), now=now)
        assert out.status == MembershipStatus.cancelled
        assert out.updated_at == now

    def test_cancelled_cannot_be_extended(self, membership_factory):
        cancelled = lifecycle.cancel(membership_factory())
        with pytest.raises(InvalidTransition):
            lifecycle.extend(cancelled, Duration.one_year, TODAY)

    def test_cancel_is_not_idempotent(self, membership_factory):
        cancelled = lifecycle.cancel(membership_factory())
        with pytest.raises(InvalidTransition):
            lifecycle.cancel(cancelled)

    def test_expired_cannot_be_cancelled(self, membership_factory):
        with pytest.raises(InvalidTransition):
            lifecycle.cancel(membership_factory(status=MembershipStatus.expired))

    def test_renewal_restarts_from_today(self, membership_factory):
        stale = membership_factory(
            start_date=date(2019, 1, 1), end_date=date(2019, 7, 1), status=MembershipStatus.expired,
        )
        out = lifecycle.extend(stale, Duration.six_months, TODAY)
        assert out.status == MembershipStatus.active
        assert out.end_date == date(2026, 9, 15)
        assert out.start_date == date(2019, 1, 1)

    def test_expire_overdue_active(self, membership_factory):
        m = membership_factory(end_date=date(2026, 3, 14))
        assert lifecycle.is_overdue(m, TODAY)
        out = lifecycle.expire(m, TODAY)
        assert out.status == MembershipStatus.expired
        assert out.end_date == m.end_date

    def test_expire_leaves_others_alone(self, membership_factory):
        due_today = membership_factory(end_date=TODAY)
        cancelled = membership_factory(end_date=date(2020, 1, 1), status=MembershipStatus.cancelled)
        assert lifecycle.expire(due_today, TODAY) is due_today
        assert lifecycle.expire(cancelled, TODAY) is cancelled

    def test_end_never_before_start(self, membership_factory):
        scenarios = [
            lifecycle.extend(membership_factory(), Duration.six_months, TODAY),
            lifecycle.cancel(membership_factory()),
            lifecycle.expire(membership_factory(), TODAY),
            lifecycle.extend(membership_factory(status=MembershipStatus.expired), Duration.one_year, TODAY),
        ]
        for m in scenarios:
            assert m.end_date >= m.start_date

    def test_corrupt_record_is_rejected(self, membership_factory):
        broken = membership_factory(start_date=date(2025, 6, 1), end_date=date(2025, 1, 1))
        with pytest.raises(InvalidInput):
            lifecycle.cancel(broken)
