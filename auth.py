"""
auth.py
Accounts: bcrypt hashing, sign up (first account becomes admin), login,
change password, and the per-session context passed to every operation.

bcrypt is used directly to avoid passlib's backend auto-detection issues on some
Python 3.13 Windows setups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import bcrypt
from email_validator import EmailNotValidError

import config
import db
import lifecycle
import utils
from errors import InvalidInput, PermissionDenied
from models import Role, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Who is signed in. Lives in st.session_state and is handed to operations."""

    user_id: int
    email: str
    full_name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    def require_admin(self) -> None:
        if not self.is_admin:
            raise PermissionDenied(f"{self.email} is not an admin")

    @classmethod
    def for_user(cls, user: User) -> "Session":
        return cls(user_id=user.id, email=user.email, full_name=user.full_name, role=user.role)


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    We truncate to 72 bytes to avoid ValueError and to make behavior explicit.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str) -> str:
    """
    Returns a bcrypt hash as a UTF-8 string (stored in SQLite).
    """
    secret = _to_bcrypt_secret(password)
    salt = bcrypt.gensalt(rounds=config.get_settings().bcrypt_rounds)
    hashed = bcrypt.hashpw(secret, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = _to_bcrypt_secret(password)
    stored = password_hash.encode("utf-8")
    return bcrypt.checkpw(secret, stored)


_USER_SQL = """
    SELECT u.id, u.email, u.full_name, u.created_at, u.password_hash, r.role
    FROM users u JOIN user_roles r ON r.user_id = u.id
"""


def _user_from_row(row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role=Role(row["role"]),
        created_at=row["created_at"],
    )


def get_user(user_id: int) -> User | None:
    row = db.fetch_one(_USER_SQL + " WHERE u.id = ?", (user_id,))
    return _user_from_row(row) if row else None


def _login_email(email: str) -> str:
    """Same key sign_up stores; unparseable input still gets a plain lookup."""
    try:
        return utils.normalize_email(email).lower()
    except EmailNotValidError:
        return email.strip().lower()


def sign_up(email: str, full_name: str, password: str) -> User:
    """
    Create an account. The role is decided from the number of existing role
    rows inside the same write transaction, so two simultaneous first sign-ups
    cannot both become admin.
    """
    try:
        email = utils.normalize_email(email).lower()
    except EmailNotValidError as e:
        raise InvalidInput(f"Invalid email address: {e}") from None
    if len(password) < 6:
        raise InvalidInput("Password must be at least 6 characters.")
    full_name = full_name.strip() or email
    password_hash = hash_password(password)
    now = datetime.now(timezone.utc).isoformat(timespec="seconds")

    with db.transaction() as conn:
        if conn.execute("SELECT 1 FROM users WHERE email = ?", (email,)).fetchone():
            raise InvalidInput(f"An account for {email} already exists.")
        user_id = conn.execute(
            "INSERT INTO users(email, full_name, password_hash, created_at) VALUES(?,?,?,?)",
            (email, full_name, password_hash, now),
        ).lastrowid
        existing = conn.execute("SELECT COUNT(*) AS c FROM user_roles").fetchone()["c"]
        role = lifecycle.assign_role(existing)
        conn.execute("INSERT INTO user_roles(user_id, role) VALUES(?, ?)", (user_id, role.value))

    logger.info("Signed up %s as %s", email, role.value)
    return User(id=user_id, email=email, full_name=full_name, role=role, created_at=now)


def login(email: str, password: str) -> User | None:
    row = db.fetch_one(_USER_SQL + " WHERE u.email = ?", (_login_email(email),))
    if not row or not verify_password(password, row["password_hash"]):
        logger.info("Failed login for %s", email)
        return None
    return _user_from_row(row)


def change_password(session: Session, new_password: str) -> None:
    if len(new_password) < 6:
        raise InvalidInput("Password must be at least 6 characters.")
    new_hash = hash_password(new_password)
    db.execute(
        "UPDATE users SET password_hash = ? WHERE id = ?",
        (new_hash, session.user_id),
    )
    logger.info("Password changed for %s", session.email)
