"""Progress status history for saved vacancies.

A saved vacancy carries an ordered, append-only list of progress entries. The
first entry is written when the vacancy is saved; every status change appends
one more. Nothing is stored about the "current" status: it is always read off
the last entry.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Sequence


class ProgressStatus(str, Enum):
    """Application stages a user can record. Any stage may follow any other."""

    SAVED = "saved"
    APPLIED = "applied"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    REJECTED = "rejected"
    OFFER_RECEIVED = "offer_received"
    OFFER_ACCEPTED = "offer_accepted"
    WITHDRAWN = "withdrawn"


@dataclass(frozen=True)
class ProgressEntry:
    """A single status change."""

    status: str
    status_set_date: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "status_set_date": self.status_set_date.isoformat(),
        }


def _require_entries(progress: Sequence[ProgressEntry]) -> None:
    if not progress:
        raise ValueError("progress history is empty; a saved vacancy always has at least one entry")


def current_status(progress: Sequence[ProgressEntry]) -> str:
    """Status of the most recently appended entry."""
    _require_entries(progress)
    return progress[-1].status


def saved_date(progress: Sequence[ProgressEntry]) -> datetime:
    """Timestamp of the initial entry, i.e. when the vacancy was saved."""
    _require_entries(progress)
    return progress[0].status_set_date


def append_progress(
    progress: Sequence[ProgressEntry], status: str, at: datetime
) -> List[ProgressEntry]:
    """Return a new history with ``status`` appended; the input is left untouched."""
    return [*progress, ProgressEntry(status=status_value(status), status_set_date=at)]


def status_value(status) -> str:
    """Plain string form of a status given as enum member or string."""
    if isinstance(status, ProgressStatus):
        return status.value
    return str(status)
