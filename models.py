"""
models.py
Domain types: roles, durations, statuses and the records built from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from errors import InvalidInput


class Role(str, Enum):
    admin = "admin"
    user = "user"


class MembershipStatus(str, Enum):
    active = "active"
    cancelled = "cancelled"
    expired = "expired"


class Duration(str, Enum):
    six_months = "6_months"
    one_year = "1_year"
    two_years = "2_years"

    @property
    def months(self) -> int:
        return DURATION_MONTHS[self]

    @property
    def label(self) -> str:
        return DURATION_LABELS[self]

    @classmethod
    def parse(cls, value) -> "Duration":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidInput(f"Unknown membership duration: {value!r}") from None


# Calendar months added for each duration (used for end_date calculation)
DURATION_MONTHS = {
    Duration.six_months: 6,
    Duration.one_year: 12,
    Duration.two_years: 24,
}

DURATION_LABELS = {
    Duration.six_months: "6 Months",
    Duration.one_year: "1 Year",
    Duration.two_years: "2 Years",
}


class EventAction(str, Enum):
    created = "created"
    extended = "extended"
    renewed = "renewed"
    cancelled = "cancelled"
    expired = "expired"


def parse_status(value) -> MembershipStatus:
    if isinstance(value, MembershipStatus):
        return value
    try:
        return MembershipStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown membership status: {value!r}") from None


@dataclass(frozen=True)
class User:
    id: int
    email: str
    full_name: str
    role: Role
    created_at: str


@dataclass(frozen=True)
class Membership:
    id: int | None
    membership_number: str
    member_name: str
    email: str
    phone: str
    address: str
    duration: Duration
    status: MembershipStatus
    start_date: date
    end_date: date
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 1

    @classmethod
    def from_row(cls, row) -> "Membership":
        return cls(
            id=row["id"],
            membership_number=row["membership_number"],
            member_name=row["member_name"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
            duration=Duration.parse(row["duration"]),
            status=parse_status(row["status"]),
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            version=row["version"],
        )


@dataclass(frozen=True)
class MembershipEvent:
    id: int | None
    membership_id: int
    action: EventAction
    duration: Duration | None
    old_end_date: str | None
    new_end_date: str | None
    actor_id: int | None
    created_at: str
