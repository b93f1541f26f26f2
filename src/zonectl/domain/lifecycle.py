"""Deletion workflow states and transitions.

Per (requester, zone) the workflow moves ``none → pending`` on request and
then to exactly one of ``confirmed`` or ``expired``. A fresh request from a
terminal state starts a new cycle.
"""

from __future__ import annotations

from enum import StrEnum


class DeletionState(StrEnum):
    """State of one (requester, zone) deletion cycle."""

    NONE = "none"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


DELETION_TRANSITIONS: dict[str, list[str]] = {
    "none": ["pending"],
    "pending": ["pending", "confirmed", "expired"],  # re-request re-arms
    "confirmed": ["pending"],
    "expired": ["pending"],
}


def is_valid_transition(
    current: str,
    target: str,
    transitions: dict[str, list[str]] = DELETION_TRANSITIONS,
) -> bool:
    """Check if transitioning from *current* to *target* is allowed."""
    return target in transitions.get(current, [])
