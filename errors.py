"""
errors.py
Domain errors raised by the membership rules and the storage layer.

The UI (app.py) turns these into messages; nothing below it catches them.
"""

from __future__ import annotations


class MembershipError(Exception):
    """Base class for every error this app raises on purpose."""


class InvalidInput(MembershipError):
    """Malformed or out-of-range argument (negative count, unknown tag, bad date)."""


class InvalidTransition(MembershipError):
    """Requested status change is not allowed from the current status."""


class Overflow(MembershipError):
    """Membership number sequence no longer fits in its fixed width."""


class ConcurrencyConflict(MembershipError):
    """
    The record changed underneath us (stale version) or a generated number
    was already taken. Reload and try again.
    """


class PermissionDenied(MembershipError):
    """Current session is not allowed to perform the action."""
