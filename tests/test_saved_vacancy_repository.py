from datetime import datetime

import pytest

from src.services.errors import SavedVacancyNotFoundError, UserNotFoundError
from src.services.progress import ProgressStatus


def insert_saved(repository, user_id="user-a", external_id="100000001", vacancy_id="snap-1"):
    return repository.insert_entry(
        user_id,
        external_id=external_id,
        vacancy_id=vacancy_id,
        status="saved",
        at=datetime(2025, 1, 10, 12, 0),
    )


def test_insert_entry_starts_history_and_orders_by_insertion(repository):
    first = insert_saved(repository, external_id="100000001", vacancy_id="snap-1")
    insert_saved(repository, external_id="100000002", vacancy_id="snap-2")

    assert first.current_status == "saved"
    assert [entry.external_id for entry in repository.list_entries("user-a")] == [
        "100000001",
        "100000002",
    ]


def test_insert_entry_for_unknown_user_fails(repository):
    with pytest.raises(UserNotFoundError):
        insert_saved(repository, user_id="ghost")


def test_append_progress_normalizes_enum_status(repository):
    insert_saved(repository)
    at = datetime(2025, 1, 11, 9, 0)

    entry = repository.append_progress("user-a", "snap-1", ProgressStatus.APPLIED, at)

    assert [(p.status, p.status_set_date) for p in entry.progress] == [
        ("saved", datetime(2025, 1, 10, 12, 0)),
        ("applied", at),
    ]
    assert repository.find_entry("user-a", "100000001").current_status == "applied"


def test_missing_entry_error_names_snapshot_not_external_id(repository):
    with pytest.raises(SavedVacancyNotFoundError) as excinfo:
        repository.replace_notes("user-a", "snap-missing", "note", datetime(2025, 1, 11))

    assert excinfo.value.vacancy_id == "snap-missing"
    assert excinfo.value.external_id is None
    assert str(excinfo.value) == "Saved vacancy not found"


def test_delete_entry_is_scoped_to_user(repository):
    insert_saved(repository, user_id="user-a", vacancy_id="snap-a")
    insert_saved(repository, user_id="user-b", vacancy_id="snap-b")

    assert repository.delete_entry("user-a", "snap-b") is False
    assert repository.delete_entry("user-a", "snap-a") is True
    assert repository.find_entry("user-a", "100000001") is None
    assert repository.find_entry("user-b", "100000001") is not None
