"""ORM models for vacancy documents, users and saved vacancies."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from src.db.base import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class VacancyModel(Base):
    """A vacancy document: a cache row when ``cache_expires_at`` is set, a permanent snapshot otherwise."""

    __tablename__ = "vacancies"

    id = Column(String(32), primary_key=True)
    external_id = Column(String(64), nullable=False, index=True)
    name = Column(String(512), nullable=True)
    payload_json = Column("payload", Text, nullable=False, default="{}")
    published_at = Column(DateTime, nullable=True)
    cache_expires_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        # Only one cache row per external id; permanent snapshots are per save.
        Index(
            "uq_vacancies_cached_external_id",
            "external_id",
            unique=True,
            sqlite_where=text("cache_expires_at IS NOT NULL"),
            postgresql_where=text("cache_expires_at IS NOT NULL"),
        ),
    )


class UserModel(Base):
    """Account that owns saved vacancies. Rows are written by the authentication layer."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(320), nullable=True, unique=True)
    first_name = Column(String(128), nullable=True)
    last_name = Column(String(128), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    saved_vacancies = relationship(
        "SavedVacancyModel",
        back_populates="user",
        order_by="SavedVacancyModel.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SavedVacancyModel(Base):
    """One user's saved vacancy: a reference to a snapshot plus notes and checklist."""

    __tablename__ = "saved_vacancies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    external_id = Column(String(64), nullable=False)
    # Internal id of the snapshot in ``vacancies``; removed explicitly, not by FK cascade.
    vacancy_id = Column(String(32), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=False, default="")
    checklist_json = Column("checklist", Text, nullable=False, default="[]")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("UserModel", back_populates="saved_vacancies")
    progress_entries = relationship(
        "ProgressEntryModel",
        back_populates="saved_vacancy",
        order_by="ProgressEntryModel.sequence",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uq_saved_vacancies_user_external"),
        Index("idx_saved_vacancies_user_position", "user_id", "position"),
    )


class ProgressEntryModel(Base):
    """Append-only status history row."""

    __tablename__ = "progress_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    saved_vacancy_id = Column(
        Integer, ForeignKey("saved_vacancies.id", ondelete="CASCADE"), nullable=False
    )
    sequence = Column(Integer, nullable=False)
    status = Column(String(32), nullable=False)
    status_set_date = Column(DateTime, nullable=False, default=utcnow)

    saved_vacancy = relationship("SavedVacancyModel", back_populates="progress_entries")

    __table_args__ = (
        UniqueConstraint("saved_vacancy_id", "sequence", name="uq_progress_entries_sequence"),
    )
