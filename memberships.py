"""
memberships.py
Persisted membership operations: create, look up, extend, cancel, the expiry
sweep, transaction history and sample data.

Each write runs the pure rule from lifecycle.py and stores the result inside
one db.transaction(). Updates are guarded by the row's version column; a stale
version raises ConcurrencyConflict and the caller decides whether to retry.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone

import db
import lifecycle
import utils
from auth import Session
from errors import ConcurrencyConflict, InvalidInput, InvalidTransition
from models import Duration, EventAction, Membership, MembershipEvent, MembershipStatus, parse_status

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _record_event(conn, membership_id: int, action: EventAction, duration: Duration | None,
                  old_end: date | None, new_end: date | None, actor_id: int | None, at: datetime) -> None:
    conn.execute(
        """
        INSERT INTO membership_events(membership_id, action, duration, old_end_date, new_end_date, actor_id, created_at)
        VALUES(?,?,?,?,?,?,?)
        """,
        (
            membership_id,
            action.value,
            duration.value if duration else None,
            old_end.isoformat() if old_end else None,
            new_end.isoformat() if new_end else None,
            actor_id,
            at.isoformat(timespec="seconds"),
        ),
    )


def _next_number(conn) -> str:
    row = conn.execute(
        "SELECT value FROM sequences WHERE name = ?", (db.MEMBERSHIP_SEQUENCE,)
    ).fetchone()
    issued = row["value"] if row else 0
    number = lifecycle.next_membership_number(issued)
    conn.execute(
        """
        INSERT INTO sequences(name, value) VALUES(?, ?)
        ON CONFLICT(name) DO UPDATE SET value=excluded.value
        """,
        (db.MEMBERSHIP_SEQUENCE, issued + 1),
    )
    return number


def create_membership(
    session: Session,
    member_name: str,
    email: str,
    phone: str,
    address: str,
    duration,
    today: date | None = None,
) -> Membership:
    session.require_admin()
    errors = utils.validate_membership_inputs(member_name, email, phone, address, duration)
    if errors:
        raise InvalidInput(" ".join(errors))
    today = today or date.today()
    now = _now()
    try:
        with db.transaction() as conn:
            number = _next_number(conn)
            m = lifecycle.new_membership(
                number, member_name, email, phone, address, duration,
                today=today, created_by=session.user_id, now=now,
            )
            new_id = conn.execute(
                """
                INSERT INTO memberships(membership_number, member_name, email, phone, address, duration,
                    status, start_date, end_date, created_by, created_at, updated_at, version)
                VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    m.membership_number, m.member_name, m.email, m.phone, m.address, m.duration.value,
                    m.status.value, m.start_date.isoformat(), m.end_date.isoformat(), m.created_by,
                    now.isoformat(), now.isoformat(), m.version,
                ),
            ).lastrowid
            _record_event(conn, new_id, EventAction.created, m.duration, None, m.end_date, session.user_id, now)
    except sqlite3.IntegrityError as e:
        # Only a duplicate number can get here; everything else is validated above
        logger.warning("Membership number collision while creating membership: %s", e)
        raise ConcurrencyConflict(f"Membership number already taken, try again ({e})") from e

    logger.info("Created %s for %s (%s, ends %s)", m.membership_number, m.member_name, m.duration.value, m.end_date)
    return get_by_id(new_id)


def get_by_id(membership_id: int) -> Membership | None:
    row = db.fetch_one("SELECT * FROM memberships WHERE id = ?", (membership_id,))
    return Membership.from_row(row) if row else None


def get_by_number(membership_number: str) -> Membership | None:
    number = lifecycle.parse_membership_number(membership_number)
    row = db.fetch_one("SELECT * FROM memberships WHERE membership_number = ?", (number,))
    return Membership.from_row(row) if row else None


def list_memberships(search: str = "", status_filter: str = "All", order_by: str = "created_at") -> list[Membership]:
    sql = "SELECT * FROM memberships WHERE 1=1"
    params = []

    if search.strip():
        sql += " AND (member_name LIKE ? OR email LIKE ? OR phone LIKE ? OR membership_number LIKE ?)"
        like = f"%{search.strip()}%"
        params.extend([like, like, like, like])

    if status_filter != "All":
        sql += " AND status = ?"
        params.append(parse_status(status_filter).value)

    if order_by == "created_at":
        sql += " ORDER BY created_at DESC, id DESC"
    elif order_by == "updated_at":
        sql += " ORDER BY updated_at DESC, id DESC"
    elif order_by == "end_date":
        sql += " ORDER BY end_date ASC, id ASC"
    else:
        raise InvalidInput(f"Cannot order memberships by {order_by!r}")

    return [Membership.from_row(r) for r in db.fetch_all(sql, tuple(params))]


def _save_transition(conn, before: Membership, after: Membership) -> Membership:
    cur = conn.execute(
        """
        UPDATE memberships
        SET duration=?, status=?, end_date=?, updated_at=?, version=version + 1
        WHERE id=? AND version=?
        """,
        (
            after.duration.value, after.status.value, after.end_date.isoformat(),
            after.updated_at.isoformat(), before.id, before.version,
        ),
    )
    if cur.rowcount != 1:
        logger.warning("Stale update on %s (version %s)", before.membership_number, before.version)
        raise ConcurrencyConflict(
            f"{before.membership_number} was changed by someone else; reload and try again"
        )
    return Membership.from_row(conn.execute("SELECT * FROM memberships WHERE id = ?", (before.id,)).fetchone())


def expire_overdue(today: date | None = None) -> int:
    """
    Sweep: every active membership whose end date has passed becomes expired.
    Returns how many rows were moved. Cancelled rows are never touched.
    """
    today = today or date.today()
    now = _now()
    moved = 0
    with db.transaction() as conn:
        rows = conn.execute(
            "SELECT * FROM memberships WHERE status = ? AND end_date < ?",
            (MembershipStatus.active.value, today.isoformat()),
        ).fetchall()
        for row in rows:
            before = Membership.from_row(row)
            after = lifecycle.expire(before, today, now=now)
            _save_transition(conn, before, after)
            _record_event(conn, before.id, EventAction.expired, None, before.end_date, before.end_date, None, now)
            moved += 1
    if moved:
        logger.info("Expired %d overdue membership(s)", moved)
    return moved


def _load_for_update(conn, membership_id: int, expected_version: int | None) -> Membership:
    row = conn.execute("SELECT * FROM memberships WHERE id = ?", (membership_id,)).fetchone()
    if not row:
        raise InvalidInput(f"No membership with id {membership_id}")
    m = Membership.from_row(row)
    if expected_version is not None and m.version != expected_version:
        logger.warning("Stale read of %s (have %s, expected %s)", m.membership_number, m.version, expected_version)
        raise ConcurrencyConflict(
            f"{m.membership_number} was changed by someone else; reload and try again"
        )
    return m


def extend_membership(session: Session, membership_id: int, duration, expected_version: int | None = None,
                      today: date | None = None) -> Membership:
    """
    Extend an active membership from its end date, or renew an expired one
    from today. Branches on the status as stored: an active row past its end
    date still extends from that end date until expire_overdue moves it.
    expected_version is the version the caller last displayed.
    """
    session.require_admin()
    today = today or date.today()
    now = _now()
    with db.transaction() as conn:
        before = _load_for_update(conn, membership_id, expected_version)
        after = lifecycle.extend(before, duration, today, now=now)
        saved = _save_transition(conn, before, after)
        action = EventAction.renewed if before.status == MembershipStatus.expired else EventAction.extended
        _record_event(conn, saved.id, action, saved.duration, before.end_date, saved.end_date, session.user_id, now)

    logger.info("%s %s by %s until %s", action.value.capitalize(), saved.membership_number,
                saved.duration.value, saved.end_date)
    return saved


def cancel_membership(session: Session, membership_id: int, expected_version: int | None = None,
                      today: date | None = None) -> Membership:
    """Cancel an active membership. One already past its end date has nothing left to cancel."""
    session.require_admin()
    today = today or date.today()
    now = _now()
    with db.transaction() as conn:
        before = _load_for_update(conn, membership_id, expected_version)
        if lifecycle.is_overdue(before, today):
            raise InvalidTransition(
                f"{before.membership_number} ended on {before.end_date}; there is nothing to cancel"
            )
        after = lifecycle.cancel(before, now=now)
        saved = _save_transition(conn, before, after)
        _record_event(conn, saved.id, EventAction.cancelled, None, before.end_date, saved.end_date, session.user_id, now)

    logger.info("Cancelled %s", saved.membership_number)
    return saved


def status_counts() -> dict[MembershipStatus, int]:
    rows = db.fetch_all("SELECT status, COUNT(*) AS c FROM memberships GROUP BY status")
    return {MembershipStatus(r["status"]): r["c"] for r in rows}


def expiring_within(days: int, today: date | None = None) -> list[Membership]:
    today = today or date.today()
    rows = db.fetch_all(
        """
        SELECT * FROM memberships
        WHERE status = ? AND end_date BETWEEN ? AND ?
        ORDER BY end_date ASC
        """,
        (MembershipStatus.active.value, today.isoformat(), (today + timedelta(days=days)).isoformat()),
    )
    return [Membership.from_row(r) for r in rows]


def _event_from_row(row) -> MembershipEvent:
    return MembershipEvent(
        id=row["id"],
        membership_id=row["membership_id"],
        action=EventAction(row["action"]),
        duration=Duration(row["duration"]) if row["duration"] else None,
        old_end_date=row["old_end_date"],
        new_end_date=row["new_end_date"],
        actor_id=row["actor_id"],
        created_at=row["created_at"],
    )


def list_events(membership_id: int | None = None, limit: int | None = None) -> list[MembershipEvent]:
    sql = "SELECT * FROM membership_events"
    params: list = []
    if membership_id is not None:
        sql += " WHERE membership_id = ?"
        params.append(membership_id)
    sql += " ORDER BY created_at DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return [_event_from_row(r) for r in db.fetch_all(sql, tuple(params))]


def member_labels() -> dict[int, tuple[str, str]]:
    rows = db.fetch_all("SELECT id, membership_number, member_name FROM memberships")
    return {r["id"]: (r["membership_number"], r["member_name"]) for r in rows}


def insert_sample_data(session: Session, today: date | None = None) -> list[Membership]:
    """
    Insert 3 memberships (one per duration) and cancel one of them.
    Safe to run multiple times: adds new rows each time.
    """
    today = today or date.today()
    samples = [
        ("Ahmed Hassan", "ahmed@fitclub.org", "01000000001", "12 Nile Street, Cairo", Duration.six_months),
        ("Mona Ali", "mona@fitclub.org", "01000000002", "5 Tahrir Square, Cairo", Duration.one_year),
        ("Omar Samy", "omar@fitclub.org", "01000000003", "40 Corniche Road, Alexandria", Duration.two_years),
    ]
    created = [
        create_membership(session, name, email, phone, address, duration, today=today)
        for name, email, phone, address, duration in samples
    ]
    created[-1] = cancel_membership(session, created[-1].id, today=today)
    return created
