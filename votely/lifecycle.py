# votely/lifecycle.py
# Election lifecycle: which state an election is in and what that state allows.
from datetime import datetime
from typing import Optional

from votely.config import ROLE_ADMIN
from votely.errors import ConflictError, ElectionNotOngoingError, ValidationError
from votely.utils import as_utc

UPCOMING = "upcoming"
ONGOING = "ongoing"
ENDED = "ended"
ELECTION_STATES = (UPCOMING, ONGOING, ENDED)

# Transitions anyone allowed to edit the election may perform; admins may set any state
FORWARD_TRANSITIONS = {(UPCOMING, ONGOING), (ONGOING, ENDED)}


def derived_status(election: dict, now: datetime) -> str:
    if now < as_utc(election["start_date"]):
        return UPCOMING
    if now < as_utc(election["end_date"]):
        return ONGOING
    return ENDED


def effective_status(election: dict, now: datetime) -> str:
    """
    The forced status, if any, holds while the window-derived state is still
    the one it was forced from. Once the window crosses into another phase the
    derived state applies again.
    """
    derived = derived_status(election, now)
    forced = election.get("status")
    if forced and election.get("status_basis") == derived:
        return forced
    return derived


def transition(election: dict, requested: str, is_admin: bool, now: datetime) -> dict:
    """Return the fields to store for a status change, or raise ConflictError."""
    current = effective_status(election, now)
    if not is_admin and (current, requested) not in FORWARD_TRANSITIONS:
        raise ConflictError("Invalid status transition")
    return {"status": requested, "status_basis": derived_status(election, now)}


def ensure_ongoing(election: dict, now: datetime) -> None:
    if effective_status(election, now) != ONGOING:
        raise ElectionNotOngoingError()


def ensure_dates_mutable(election: dict, now: datetime) -> None:
    if effective_status(election, now) != UPCOMING:
        raise ConflictError("Cannot change dates for an ongoing or ended election")


def ensure_window(start_date: datetime, end_date: datetime) -> None:
    if as_utc(start_date) >= as_utc(end_date):
        raise ValidationError("End date must be after start date")


def ensure_no_votes(vote_count: int, what: str = "an election") -> None:
    if vote_count > 0:
        raise ConflictError(f"Cannot delete {what} that has votes")


def results_visible(election: dict, now: datetime, role: Optional[str]) -> bool:
    return effective_status(election, now) == ENDED or role == ROLE_ADMIN
