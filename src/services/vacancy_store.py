"""Vacancy document store: read-through cache and permanent snapshots."""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import DATABASE_URL, VACANCY_CACHE_TTL_DAYS
from src.db.base import Base, get_engine, get_session_factory
from src.db.models import VacancyModel, utcnow
from src.services.errors import UpstreamError, VacancyNotFoundError
from src.services.hh_api_client import HhApiClient
from src.services.vacancy_mapper import map_vacancy

logger = logging.getLogger(__name__)


@dataclass
class Vacancy:
    """A stored vacancy document in its mapped shape."""

    id: str
    external_id: str
    name: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    published_at: Optional[datetime] = None
    cache_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_cached(self) -> bool:
        return self.cache_expires_at is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "external_id": self.external_id,
            **self.payload,
        }
        if self.name is not None:
            data["name"] = self.name
        if self.published_at is not None:
            data["published_at"] = self.published_at.isoformat()
        if self.cache_expires_at is not None:
            data["cache_expires_at"] = self.cache_expires_at.isoformat()
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


class VacancyStore:
    """Owns every vacancy document, cache row or permanent snapshot.

    A row with ``cache_expires_at`` set is a cache entry filled by lookups and
    eligible for expiry. A row without it is a snapshot created when a user
    saves the vacancy; it lives until that save is removed. Snapshots are never
    shared: each save either promotes the current cache row or gets its own row.
    """

    def __init__(
        self,
        client: Optional[HhApiClient] = None,
        database_url: str = DATABASE_URL,
        cache_ttl: timedelta = timedelta(days=VACANCY_CACHE_TTL_DAYS),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client or HhApiClient()
        self._engine = get_engine(database_url)
        self._session_factory = get_session_factory(database_url)
        self._cache_ttl = cache_ttl
        self._clock = clock

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

    def get_or_fetch(self, external_id: str) -> Vacancy:
        """Return a live cache row or a snapshot for ``external_id``, fetching upstream when neither exists."""
        now = self._clock()
        with self.session_scope() as session:
            cached = self._cache_row(session, external_id)
            if cached is not None and cached.cache_expires_at > now:
                logger.debug("Vacancy %s served from cache", external_id)
                return self._model_to_vacancy(cached)

            permanent = session.scalars(
                select(VacancyModel)
                .where(
                    VacancyModel.external_id == external_id,
                    VacancyModel.cache_expires_at.is_(None),
                )
                .order_by(VacancyModel.updated_at.desc())
                .limit(1)
            ).first()
            if permanent is not None:
                logger.debug("Vacancy %s served from snapshot %s", external_id, permanent.id)
                return self._model_to_vacancy(permanent)

        fields = self._fetch(external_id)

        try:
            return self._store_cache_row(external_id, fields, now)
        except IntegrityError:
            # Another lookup inserted the cache row between our check and flush.
            logger.debug("Vacancy %s was cached concurrently; reading stored row", external_id)
            with self.session_scope() as session:
                cached = self._cache_row(session, external_id)
                if cached is None:
                    raise
                return self._model_to_vacancy(cached)

    def create_permanent_snapshot(self, external_id: str) -> Vacancy:
        """Create the non-expiring document a saved vacancy points to.

        A live cache row is promoted by clearing its expiry. An expired one is
        re-fetched and promoted. Otherwise a new row is inserted from upstream.
        Promotion only succeeds while the row is still a cache row, so two saves
        racing for the same row never end up sharing it.
        """
        now = self._clock()
        stale_id: Optional[str] = None
        with self.session_scope() as session:
            cached = self._cache_row(session, external_id)
            if cached is not None:
                if cached.cache_expires_at <= now:
                    stale_id = cached.id
                elif self._claim_cache_row(session, cached.id, {"updated_at": now}):
                    session.refresh(cached)
                    logger.info("Promoted cached vacancy %s to snapshot %s", external_id, cached.id)
                    return self._model_to_vacancy(cached)
                else:
                    logger.debug("Cache row %s was promoted by another save", cached.id)

        fields = self._fetch(external_id)

        with self.session_scope() as session:
            if stale_id and self._claim_cache_row(session, stale_id, self._field_values(fields, now)):
                model = session.get(VacancyModel, stale_id)
                logger.info("Refetched and promoted vacancy %s to snapshot %s", external_id, stale_id)
                return self._model_to_vacancy(model)

            model = VacancyModel(id=uuid.uuid4().hex, external_id=external_id, created_at=now)
            self._apply_fields(model, fields, now)
            model.cache_expires_at = None
            session.add(model)
            session.flush()
            logger.info("Created snapshot %s for vacancy %s", model.id, external_id)
            return self._model_to_vacancy(model)

    def refresh(self, snapshot_id: str, external_id: str) -> Vacancy:
        """Overwrite one document's payload with fresh upstream data; its expiry is kept."""
        with self.session_scope() as session:
            if session.get(VacancyModel, snapshot_id) is None:
                raise VacancyNotFoundError(snapshot_id)

        fields = self._fetch(external_id)
        now = self._clock()

        with self.session_scope() as session:
            model = session.get(VacancyModel, snapshot_id)
            if model is None:
                raise VacancyNotFoundError(snapshot_id)
            self._apply_fields(model, fields, now)
            session.add(model)
            session.flush()
            logger.info("Refreshed snapshot %s for vacancy %s", snapshot_id, external_id)
            return self._model_to_vacancy(model)

    def delete(self, snapshot_id: str) -> bool:
        """Delete by internal id. Deleting a missing id is not an error."""
        with self.session_scope() as session:
            result = session.execute(delete(VacancyModel).where(VacancyModel.id == snapshot_id))
            removed = bool(result.rowcount)
        if removed:
            logger.info("Deleted vacancy document %s", snapshot_id)
        return removed

    def get(self, snapshot_id: str) -> Optional[Vacancy]:
        with self.session_scope() as session:
            return self._model_to_vacancy(session.get(VacancyModel, snapshot_id))

    def get_many(self, snapshot_ids: Iterable[str]) -> Dict[str, Vacancy]:
        ids = list(snapshot_ids)
        if not ids:
            return {}
        with self.session_scope() as session:
            models = session.scalars(select(VacancyModel).where(VacancyModel.id.in_(ids))).all()
            return {model.id: self._model_to_vacancy(model) for model in models}

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Remove cache rows past their expiry. Permanent rows are never touched."""
        cutoff = now or self._clock()
        with self.session_scope() as session:
            result = session.execute(
                delete(VacancyModel).where(
                    VacancyModel.cache_expires_at.is_not(None),
                    VacancyModel.cache_expires_at <= cutoff,
                )
            )
            return result.rowcount or 0

    def _fetch(self, external_id: str) -> Dict[str, Any]:
        raw = self._client.get_vacancy(external_id)
        try:
            return map_vacancy(raw)
        except ValueError as error:
            logger.error("hh.ru returned an unusable payload for vacancy %s: %s", external_id, error)
            raise UpstreamError(None, str(error)) from error

    def _store_cache_row(self, external_id: str, fields: Dict[str, Any], now: datetime) -> Vacancy:
        """Write fetched fields into the cache row, overwriting an expired one in place."""
        with self.session_scope() as session:
            model = self._cache_row(session, external_id)
            if model is None:
                model = VacancyModel(id=uuid.uuid4().hex, external_id=external_id, created_at=now)
            self._apply_fields(model, fields, now)
            model.cache_expires_at = now + self._cache_ttl
            session.add(model)
            session.flush()
            logger.info("Cached vacancy %s until %s", external_id, model.cache_expires_at.isoformat())
            return self._model_to_vacancy(model)

    @staticmethod
    def _cache_row(session: Session, external_id: str) -> Optional[VacancyModel]:
        stmt = select(VacancyModel).where(
            VacancyModel.external_id == external_id,
            VacancyModel.cache_expires_at.is_not(None),
        )
        return session.scalars(stmt).first()

    @staticmethod
    def _claim_cache_row(session: Session, row_id: str, values: Dict[str, Any]) -> bool:
        """Clear the expiry of a cache row and apply ``values``; False if it is no longer a cache row."""
        values = dict(values, cache_expires_at=None)
        result = session.execute(
            update(VacancyModel)
            .where(VacancyModel.id == row_id, VacancyModel.cache_expires_at.is_not(None))
            .values({getattr(VacancyModel, key): value for key, value in values.items()})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def _field_values(fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        payload = dict(fields)
        payload.pop("external_id", None)
        published_at = payload.pop("published_at", None)
        return {
            "name": payload.pop("name", None),
            "published_at": _to_naive_utc(published_at),
            "payload_json": json.dumps(payload),
            "updated_at": now,
        }

    def _apply_fields(self, model: VacancyModel, fields: Dict[str, Any], now: datetime) -> None:
        for key, value in self._field_values(fields, now).items():
            setattr(model, key, value)

    def _model_to_vacancy(self, model: Optional[VacancyModel]) -> Optional[Vacancy]:
        if model is None:
            return None
        return Vacancy(
            id=model.id,
            external_id=model.external_id,
            name=model.name,
            payload=self._deserialize_payload(model),
            published_at=model.published_at,
            cache_expires_at=model.cache_expires_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _deserialize_payload(model: VacancyModel) -> dict:
        if not model.payload_json:
            return {}
        try:
            return json.loads(model.payload_json)
        except json.JSONDecodeError as error:
            logger.warning("Vacancy %s has an unreadable payload, serving it empty: %s", model.id, error)
            return {}


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
