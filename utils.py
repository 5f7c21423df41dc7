"""
utils.py
Validation, dates, report frames and CSV exports.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, timedelta

import pandas as pd
from email_validator import EmailNotValidError, validate_email

from models import Duration, Membership, MembershipEvent, MembershipStatus

MEMBERSHIP_COLUMNS = [
    "membership_number", "member_name", "email", "phone", "address",
    "duration", "status", "start_date", "end_date", "created_at", "updated_at",
]
EVENT_COLUMNS = [
    "created_at", "membership_number", "member_name", "action",
    "duration", "old_end_date", "new_end_date",
]


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def normalize_email(email: str) -> str:
    """Syntax-only check (no DNS lookup). Raises EmailNotValidError."""
    return validate_email(email.strip(), check_deliverability=False).normalized


def validate_membership_inputs(member_name: str, email: str, phone: str, address: str, duration) -> list[str]:
    errors: list[str] = []
    name = member_name.strip()
    if len(name) < 2:
        errors.append("Name must be at least 2 characters.")
    elif len(name) > 100:
        errors.append("Name must be at most 100 characters.")
    try:
        normalize_email(email)
    except EmailNotValidError:
        errors.append("Invalid email address.")
    digits = phone.strip()
    if len(digits) < 10:
        errors.append("Phone must be at least 10 digits.")
    elif len(digits) > 15:
        errors.append("Phone must be at most 15 digits.")
    addr = address.strip()
    if len(addr) < 5:
        errors.append("Address must be at least 5 characters.")
    elif len(addr) > 200:
        errors.append("Address must be at most 200 characters.")
    if duration not in {d.value for d in Duration}:
        errors.append("Select a membership duration.")
    return errors


def validate_password(new1: str, new2: str) -> list[str]:
    if len(new1) < 6:
        return ["Password must be at least 6 characters."]
    if new1 != new2:
        return ["Passwords do not match."]
    return []


def memberships_frame(memberships: list[Membership]) -> pd.DataFrame:
    if not memberships:
        return pd.DataFrame(columns=MEMBERSHIP_COLUMNS)
    rows = []
    for m in memberships:
        row = asdict(m)
        row["duration"] = m.duration.label
        row["status"] = m.status.value
        rows.append(row)
    return pd.DataFrame(rows)[MEMBERSHIP_COLUMNS]


def events_frame(events: list[MembershipEvent], numbers: dict[int, tuple[str, str]]) -> pd.DataFrame:
    """
    numbers maps membership id -> (membership_number, member_name).
    """
    if not events:
        return pd.DataFrame(columns=EVENT_COLUMNS)
    rows = []
    for e in events:
        number, name = numbers.get(e.membership_id, ("", ""))
        rows.append({
            "created_at": e.created_at,
            "membership_number": number,
            "member_name": name,
            "action": e.action.value,
            "duration": e.duration.label if e.duration else None,
            "old_end_date": e.old_end_date,
            "new_end_date": e.new_end_date,
        })
    return pd.DataFrame(rows)[EVENT_COLUMNS]


def status_summary(counts: dict[MembershipStatus, int]) -> dict[str, int]:
    summary = {"total": sum(counts.values())}
    for status in MembershipStatus:
        summary[status.value] = counts.get(status, 0)
    return summary


def signups_by_month(memberships: list[Membership]) -> pd.DataFrame:
    df = memberships_frame(memberships)
    if df.empty:
        return pd.DataFrame(columns=["month", "memberships"])
    months = pd.to_datetime(df["start_date"]).dt.strftime("%Y-%m")
    out = months.value_counts().sort_index(ascending=False).rename_axis("month").reset_index(name="memberships")
    return out


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")
