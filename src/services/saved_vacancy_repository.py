"""Database repository for users and their saved vacancies."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config.settings import DATABASE_URL
from src.db.base import Base, get_engine, get_session_factory
from src.db.models import ProgressEntryModel, SavedVacancyModel, UserModel, utcnow
from src.services.errors import SavedVacancyNotFoundError, UserNotFoundError
from src.services.progress import ProgressEntry, append_progress as append_status

if TYPE_CHECKING:  # pragma: no cover
    from src.services.saved_vacancy_service import ChecklistItem, SavedVacancy

logger = logging.getLogger(__name__)


class SavedVacancyRepository:
    """Encapsulates persistence for users and their saved vacancy entries.

    Entries are addressed by ``(user_id, vacancy_id)`` where ``vacancy_id`` is the
    internal id of the entry's snapshot.
    """

    def __init__(self, database_url: str = DATABASE_URL) -> None:
        self._engine = get_engine(database_url)
        self._session_factory = get_session_factory(database_url)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    @contextmanager
    def session_scope(self) -> Iterable[Session]:
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_user(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> None:
        now = utcnow()
        with self.session_scope() as session:
            session.add(
                UserModel(
                    id=user_id,
                    email=email.strip().lower() if email else None,
                    first_name=first_name,
                    last_name=last_name,
                    created_at=now,
                    updated_at=now,
                )
            )

    def user_exists(self, user_id: str) -> bool:
        with self.session_scope() as session:
            return session.get(UserModel, user_id) is not None

    def find_entry(self, user_id: str, external_id: str) -> Optional["SavedVacancy"]:
        stmt = select(SavedVacancyModel).where(
            SavedVacancyModel.user_id == user_id,
            SavedVacancyModel.external_id == external_id,
        )
        with self.session_scope() as session:
            return self._model_to_entry(session.scalars(stmt).first())

    def list_entries(self, user_id: str) -> List["SavedVacancy"]:
        stmt = (
            select(SavedVacancyModel)
            .where(SavedVacancyModel.user_id == user_id)
            .order_by(SavedVacancyModel.position)
        )
        with self.session_scope() as session:
            models = session.scalars(stmt).all()
            return [entry for entry in map(self._model_to_entry, models) if entry is not None]

    def insert_entry(
        self,
        user_id: str,
        *,
        external_id: str,
        vacancy_id: str,
        status: str,
        at: datetime,
    ) -> "SavedVacancy":
        """Attach a snapshot to the user with a single initial progress entry."""
        with self.session_scope() as session:
            if session.get(UserModel, user_id) is None:
                raise UserNotFoundError(user_id)

            last_position = session.scalar(
                select(func.max(SavedVacancyModel.position)).where(
                    SavedVacancyModel.user_id == user_id
                )
            )
            model = SavedVacancyModel(
                user_id=user_id,
                external_id=external_id,
                vacancy_id=vacancy_id,
                position=(last_position + 1) if last_position is not None else 0,
                notes="",
                checklist_json="[]",
                created_at=at,
                updated_at=at,
            )
            model.progress_entries.append(
                ProgressEntryModel(sequence=0, status=status, status_set_date=at)
            )
            session.add(model)
            session.flush()
            return self._model_to_entry(model)

    def delete_entry(self, user_id: str, vacancy_id: str) -> bool:
        with self.session_scope() as session:
            model = self._get_entry_model(session, user_id, vacancy_id)
            if model is None:
                return False
            session.delete(model)
            return True

    def append_progress(
        self, user_id: str, vacancy_id: str, status: str, at: datetime
    ) -> "SavedVacancy":
        with self.session_scope() as session:
            model = self._require_entry_model(session, user_id, vacancy_id)
            history = append_status(self._progress_of(model), status, at)
            latest = history[-1]
            model.progress_entries.append(
                ProgressEntryModel(
                    sequence=len(history) - 1,
                    status=latest.status,
                    status_set_date=latest.status_set_date,
                )
            )
            model.updated_at = at
            session.add(model)
            session.flush()
            return self._model_to_entry(model)

    def replace_notes(
        self, user_id: str, vacancy_id: str, notes: str, at: datetime
    ) -> "SavedVacancy":
        with self.session_scope() as session:
            model = self._require_entry_model(session, user_id, vacancy_id)
            model.notes = notes
            model.updated_at = at
            session.add(model)
            session.flush()
            return self._model_to_entry(model)

    def replace_checklist(
        self,
        user_id: str,
        vacancy_id: str,
        checklist: Sequence["ChecklistItem"],
        at: datetime,
    ) -> "SavedVacancy":
        with self.session_scope() as session:
            model = self._require_entry_model(session, user_id, vacancy_id)
            model.checklist_json = json.dumps([item.to_dict() for item in checklist])
            model.updated_at = at
            session.add(model)
            session.flush()
            return self._model_to_entry(model)

    @staticmethod
    def _get_entry_model(
        session: Session, user_id: str, vacancy_id: str
    ) -> Optional[SavedVacancyModel]:
        stmt = select(SavedVacancyModel).where(
            SavedVacancyModel.user_id == user_id,
            SavedVacancyModel.vacancy_id == vacancy_id,
        )
        return session.scalars(stmt).first()

    def _require_entry_model(
        self, session: Session, user_id: str, vacancy_id: str
    ) -> SavedVacancyModel:
        model = self._get_entry_model(session, user_id, vacancy_id)
        if model is None:
            raise SavedVacancyNotFoundError(user_id, vacancy_id=vacancy_id)
        return model

    def _model_to_entry(self, model: Optional[SavedVacancyModel]) -> Optional["SavedVacancy"]:
        if model is None:
            return None
        from src.services.saved_vacancy_service import ChecklistItem, SavedVacancy

        return SavedVacancy(
            id=model.id,
            user_id=model.user_id,
            external_id=model.external_id,
            vacancy_id=model.vacancy_id,
            progress=self._progress_of(model),
            notes=model.notes or "",
            checklist=[
                ChecklistItem(text=item.get("text", ""), checked=bool(item.get("checked", False)))
                for item in self._deserialize_checklist(model.checklist_json)
            ],
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _progress_of(model: SavedVacancyModel) -> List[ProgressEntry]:
        return [
            ProgressEntry(status=row.status, status_set_date=row.status_set_date)
            for row in sorted(model.progress_entries, key=lambda row: row.sequence)
        ]

    @staticmethod
    def _deserialize_checklist(raw: Optional[str]) -> list:
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as error:
            logger.warning("Unreadable checklist, serving it empty: %s", error)
            return []
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []
