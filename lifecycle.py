"""
lifecycle.py
Membership rules: role bootstrap, numbering, end-date arithmetic and
status transitions.

Everything here is pure: callers pass counts, dates and the current time in,
and get a value or a MembershipError back. Storage lives in memberships.py.
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import date, datetime, timezone

import utils
from errors import InvalidInput, InvalidTransition, Overflow
from models import Duration, Membership, MembershipStatus, Role

NUMBER_PREFIX = "MEM"
NUMBER_WIDTH = 6
MAX_SEQUENCE = 10 ** NUMBER_WIDTH - 1
NUMBER_RE = re.compile(rf"^{NUMBER_PREFIX}\d{{{NUMBER_WIDTH}}}$")


def _check_count(name: str, count) -> int:
    # bool is an int subclass; True is not a count
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidInput(f"{name} must be an integer, got {count!r}")
    if count < 0:
        raise InvalidInput(f"{name} must be >= 0, got {count}")
    return count


def assign_role(existing_identity_count: int) -> Role:
    """The very first identity becomes admin; everyone after is a plain user."""
    _check_count("existing_identity_count", existing_identity_count)
    return Role.admin if existing_identity_count == 0 else Role.user


def next_membership_number(existing_membership_count: int) -> str:
    """
    MEM + (count + 1) zero-padded to 6 digits.
    Raises Overflow once the sequence no longer fits in 6 digits.
    """
    _check_count("existing_membership_count", existing_membership_count)
    seq = existing_membership_count + 1
    if seq > MAX_SEQUENCE:
        raise Overflow(f"Membership number sequence exhausted ({seq} > {MAX_SEQUENCE})")
    return f"{NUMBER_PREFIX}{seq:0{NUMBER_WIDTH}d}"


def parse_membership_number(text: str) -> str:
    number = (text or "").strip().upper()
    if not NUMBER_RE.match(number):
        raise InvalidInput(f"Not a membership number: {text!r} (expected e.g. MEM000042)")
    return number


def compute_end_date(from_date: date, duration) -> date:
    if not isinstance(from_date, date):
        raise InvalidInput(f"from_date must be a date, got {from_date!r}")
    return utils.add_months(from_date, Duration.parse(duration).months)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _checked(m: Membership) -> Membership:
    if m.end_date < m.start_date:
        raise InvalidInput(
            f"{m.membership_number}: end date {m.end_date} is before start date {m.start_date}"
        )
    return m


def new_membership(
    membership_number: str,
    member_name: str,
    email: str,
    phone: str,
    address: str,
    duration,
    today: date,
    created_by: int | None = None,
    now: datetime | None = None,
) -> Membership:
    """A fresh active membership starting today."""
    duration = Duration.parse(duration)
    now = now or _utcnow()
    return _checked(Membership(
        id=None,
        membership_number=parse_membership_number(membership_number),
        member_name=member_name.strip(),
        email=email.strip(),
        phone=phone.strip(),
        address=address.strip(),
        duration=duration,
        status=MembershipStatus.active,
        start_date=today,
        end_date=compute_end_date(today, duration),
        created_by=created_by,
        created_at=now,
        updated_at=now,
    ))


def extend(m: Membership, duration, today: date, now: datetime | None = None) -> Membership:
    """
    active  -> active, end date pushed from the current end date.
    expired -> active, end date restarted from today (renewal).
    cancelled memberships cannot be extended.
    """
    duration = Duration.parse(duration)
    if m.status == MembershipStatus.cancelled:
        raise InvalidTransition(f"{m.membership_number} is cancelled and cannot be extended")
    if m.status == MembershipStatus.active:
        base = m.end_date
    else:
        base = today
    return _checked(replace(
        m,
        duration=duration,
        status=MembershipStatus.active,
        end_date=compute_end_date(base, duration),
        updated_at=now or _utcnow(),
    ))


def cancel(m: Membership, now: datetime | None = None) -> Membership:
    if m.status != MembershipStatus.active:
        raise InvalidTransition(f"{m.membership_number} is {m.status.value}; only active memberships can be cancelled")
    return _checked(replace(m, status=MembershipStatus.cancelled, updated_at=now or _utcnow()))


def is_overdue(m: Membership, today: date) -> bool:
    return m.status == MembershipStatus.active and m.end_date < today


def expire(m: Membership, today: date, now: datetime | None = None) -> Membership:
    """Active and past its end date -> expired. Anything else is returned as is."""
    if not is_overdue(m, today):
        return m
    return _checked(replace(m, status=MembershipStatus.expired, updated_at=now or _utcnow()))
