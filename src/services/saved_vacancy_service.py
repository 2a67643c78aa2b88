"""Per-user saved vacancies with progress history, notes and checklist."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from src.db.models import utcnow
from src.services.errors import SavedVacancyNotFoundError, UserNotFoundError
from src.services.progress import (
    ProgressEntry,
    ProgressStatus,
    current_status,
    saved_date,
    status_value,
)
from src.services.saved_vacancy_repository import SavedVacancyRepository
from src.services.vacancy_store import Vacancy, VacancyStore

logger = logging.getLogger(__name__)

SORT_FIELDS = ("savedDate", "name")
SORT_ORDERS = ("asc", "desc")


@dataclass(frozen=True)
class ChecklistItem:
    text: str
    checked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "checked": self.checked}


@dataclass
class SavedVacancy:
    """A user's saved vacancy, optionally populated with its snapshot."""

    id: int
    user_id: str
    external_id: str
    vacancy_id: str
    progress: List[ProgressEntry]
    notes: str = ""
    checklist: List[ChecklistItem] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    vacancy: Optional[Vacancy] = None

    @property
    def current_status(self) -> str:
        return current_status(self.progress)

    @property
    def saved_date(self) -> datetime:
        return saved_date(self.progress)

    @property
    def vacancy_name(self) -> str:
        if self.vacancy is None or not self.vacancy.name:
            return ""
        return self.vacancy.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "external_id": self.external_id,
            "vacancy_id": self.vacancy_id,
            "vacancy": self.vacancy.to_dict() if self.vacancy else None,
            "progress": [entry.to_dict() for entry in self.progress],
            "current_status": self.current_status,
            "saved_date": self.saved_date.isoformat(),
            "notes": self.notes,
            "checklist": [item.to_dict() for item in self.checklist],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SavedVacancyQuery:
    """Filter, sort and page options for listing saved vacancies."""

    status: Optional[str] = None
    sort_by: str = "savedDate"
    sort_order: str = "desc"
    page: int = 0
    limit: int = 20


@dataclass
class SavedVacancyPage:
    items: List[SavedVacancy]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
        }


class SavedVacancyService:
    """Operations on a user's saved vacancies.

    Each saved vacancy points at its own permanent snapshot in the
    ``VacancyStore``. Removing the saved vacancy deletes that snapshot first and
    then the entry. Progress is append-only and the current status is always the
    last entry's status.
    """

    def __init__(
        self,
        repository: Optional[SavedVacancyRepository] = None,
        vacancy_store: Optional[VacancyStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository or SavedVacancyRepository()
        self._vacancy_store = vacancy_store or VacancyStore()
        self._clock = clock

    def add(self, user_id: str, external_id: str) -> SavedVacancy:
        """Save a vacancy for the user. Saving an already saved vacancy returns the existing entry."""
        self._require_user(user_id)

        existing = self._repository.find_entry(user_id, external_id)
        if existing is not None:
            logger.debug("Vacancy %s already saved by user %s", external_id, user_id)
            return self._populate(existing)

        snapshot = self._vacancy_store.create_permanent_snapshot(external_id)
        try:
            entry = self._repository.insert_entry(
                user_id,
                external_id=external_id,
                vacancy_id=snapshot.id,
                status=ProgressStatus.SAVED.value,
                at=self._clock(),
            )
        except Exception:
            # A snapshot without an entry would never be deleted.
            logger.warning(
                "Saving vacancy %s for user %s failed; deleting snapshot %s",
                external_id,
                user_id,
                snapshot.id,
            )
            self._vacancy_store.delete(snapshot.id)
            raise
        entry.vacancy = snapshot
        logger.info("User %s saved vacancy %s (snapshot %s)", user_id, external_id, snapshot.id)
        return entry

    def remove(self, user_id: str, external_id: str) -> bool:
        """Remove a saved vacancy and its snapshot. Returns False when nothing was saved."""
        self._require_user(user_id)

        entry = self._repository.find_entry(user_id, external_id)
        if entry is None:
            logger.debug("Vacancy %s not saved by user %s; nothing to remove", external_id, user_id)
            return False

        self._vacancy_store.delete(entry.vacancy_id)
        self._repository.delete_entry(user_id, entry.vacancy_id)
        logger.info("User %s removed vacancy %s", user_id, external_id)
        return True

    def list(self, user_id: str, query: Optional[SavedVacancyQuery] = None) -> SavedVacancyPage:
        """Filter by current status, sort and paginate the user's saved vacancies.

        Current status is derived from progress history, so filtering and sorting
        run over the populated entries rather than in the database.
        """
        self._require_user(user_id)
        query = query or SavedVacancyQuery()

        entries = self._populate_all(self._repository.list_entries(user_id))

        if query.status:
            wanted = status_value(query.status)
            entries = [entry for entry in entries if entry.current_status == wanted]

        entries = _sort_entries(entries, query.sort_by, query.sort_order)

        start = query.page * query.limit
        return SavedVacancyPage(
            items=entries[start:start + query.limit],
            total=len(entries),
            page=query.page,
            limit=query.limit,
        )

    def get_detail(self, user_id: str, external_id: str) -> SavedVacancy:
        return self._populate(self._resolve(user_id, external_id))

    def refresh(self, user_id: str, external_id: str) -> SavedVacancy:
        """Re-fetch the entry's snapshot from hh.ru; other users' snapshots are untouched."""
        entry = self._resolve(user_id, external_id)
        entry.vacancy = self._vacancy_store.refresh(entry.vacancy_id, external_id)
        return entry

    def set_progress(self, user_id: str, external_id: str, status) -> SavedVacancy:
        """Append a status. Transitions are not validated; any status may follow any other."""
        entry = self._resolve(user_id, external_id)
        updated = self._repository.append_progress(
            user_id, entry.vacancy_id, status_value(status), self._clock()
        )
        logger.info(
            "User %s moved vacancy %s to %s", user_id, external_id, updated.current_status
        )
        return self._populate(updated)

    def set_notes(self, user_id: str, external_id: str, notes: str) -> SavedVacancy:
        entry = self._resolve(user_id, external_id)
        updated = self._repository.replace_notes(user_id, entry.vacancy_id, notes, self._clock())
        return self._populate(updated)

    def set_checklist(
        self, user_id: str, external_id: str, items: Sequence[Any]
    ) -> SavedVacancy:
        """Replace the checklist. Items may be ``ChecklistItem`` objects or ``{text, checked}`` dicts."""
        entry = self._resolve(user_id, external_id)
        checklist = [_as_checklist_item(item) for item in items]
        updated = self._repository.replace_checklist(
            user_id, entry.vacancy_id, checklist, self._clock()
        )
        return self._populate(updated)

    def statistics(self, user_id: str) -> Dict[str, int]:
        """Count saved vacancies per current status."""
        self._require_user(user_id)
        counts: Dict[str, int] = {}
        for entry in self._repository.list_entries(user_id):
            counts[entry.current_status] = counts.get(entry.current_status, 0) + 1
        return counts

    def _require_user(self, user_id: str) -> None:
        if not self._repository.user_exists(user_id):
            raise UserNotFoundError(user_id)

    def _resolve(self, user_id: str, external_id: str) -> SavedVacancy:
        self._require_user(user_id)
        entry = self._repository.find_entry(user_id, external_id)
        if entry is None:
            raise SavedVacancyNotFoundError(user_id, external_id)
        return entry

    def _populate(self, entry: SavedVacancy) -> SavedVacancy:
        entry.vacancy = self._vacancy_store.get(entry.vacancy_id)
        return entry

    def _populate_all(self, entries: List[SavedVacancy]) -> List[SavedVacancy]:
        snapshots = self._vacancy_store.get_many(entry.vacancy_id for entry in entries)
        for entry in entries:
            entry.vacancy = snapshots.get(entry.vacancy_id)
        return entries


def _sort_entries(entries: List[SavedVacancy], sort_by: str, sort_order: str) -> List[SavedVacancy]:
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {SORT_FIELDS}, got {sort_by!r}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"sort_order must be one of {SORT_ORDERS}, got {sort_order!r}")

    if sort_by == "name":
        key = lambda entry: entry.vacancy_name.casefold()  # noqa: E731
    else:
        key = lambda entry: entry.saved_date  # noqa: E731
    return sorted(entries, key=key, reverse=sort_order == "desc")


def _as_checklist_item(item: Any) -> ChecklistItem:
    if isinstance(item, ChecklistItem):
        return item
    if isinstance(item, dict):
        return ChecklistItem(text=item["text"], checked=bool(item.get("checked", False)))
    return ChecklistItem(text=item.text, checked=bool(item.checked))
