"""Translate hh.ru vacancy payloads into stored vacancy documents.

hh.ru does not guarantee which fields a vacancy carries, so the wire shape is
described by pydantic records in which every field is optional. Fields missing
upstream stay missing in the document: no zero salaries, no invented flags.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)


class NamedEntity(_WireModel):
    id: Optional[str] = None
    name: Optional[str] = None


class RawEmployer(_WireModel):
    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None
    alternate_url: Optional[str] = None
    logo_urls: Optional[Dict[str, Optional[str]]] = None
    trusted: Optional[bool] = None
    accredited_it_employer: Optional[bool] = None


class RawSalary(_WireModel):
    salary_from: Optional[Union[int, float]] = Field(default=None, alias="from")
    salary_to: Optional[Union[int, float]] = Field(default=None, alias="to")
    currency: Optional[str] = None
    gross: Optional[bool] = None


class RawArea(_WireModel):
    id: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None


class RawAddress(_WireModel):
    city: Optional[str] = None
    street: Optional[str] = None
    building: Optional[str] = None
    raw: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class RawPhone(_WireModel):
    city: Optional[str] = None
    number: Optional[str] = None
    comment: Optional[str] = None


class RawContacts(_WireModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phones: Optional[List[RawPhone]] = None


class RawKeySkill(_WireModel):
    name: Optional[str] = None


class RawVacancy(_WireModel):
    """A vacancy as returned by ``GET /vacancies/{id}``."""

    id: Optional[str] = None
    name: Optional[str] = None
    employer: Optional[RawEmployer] = None
    salary: Optional[RawSalary] = None
    area: Optional[RawArea] = None
    url: Optional[str] = None
    alternate_url: Optional[str] = None
    description: Optional[str] = None
    schedule: Optional[NamedEntity] = None
    experience: Optional[NamedEntity] = None
    employment: Optional[NamedEntity] = None
    key_skills: Optional[List[RawKeySkill]] = None
    professional_roles: Optional[List[NamedEntity]] = None
    work_format: Optional[List[NamedEntity]] = None
    working_hours: Optional[List[NamedEntity]] = None
    work_schedule_by_days: Optional[List[NamedEntity]] = None
    address: Optional[RawAddress] = None
    contacts: Optional[RawContacts] = None
    accept_handicapped: Optional[bool] = None
    accept_kids: Optional[bool] = None
    accept_temporary: Optional[bool] = None
    accept_incomplete_resumes: Optional[bool] = None
    published_at: Optional[str] = None


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    """Parse hh.ru timestamps such as ``2024-01-15T10:30:00+0300``."""
    if not value:
        return None
    for fmt in ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _dump(record: Optional[BaseModel]) -> Optional[Dict[str, Any]]:
    if record is None:
        return None
    dumped = record.model_dump(by_alias=True, exclude_none=True)
    return dumped or None


def _dump_list(records: Optional[List[BaseModel]]) -> Optional[List[Dict[str, Any]]]:
    if records is None:
        return None
    return [item for item in (_dump(record) for record in records) if item]


def _validate(raw: Dict[str, Any]) -> RawVacancy:
    """Validate the payload, dropping top-level fields whose upstream type is unexpected."""
    if not isinstance(raw, dict):
        raise ValueError("hh.ru vacancy payload is not an object")
    try:
        return RawVacancy.model_validate(raw)
    except ValidationError as error:
        invalid = {err["loc"][0] for err in error.errors() if err["loc"]}
        logger.warning(
            "Dropping malformed fields %s from hh.ru vacancy %s",
            sorted(str(name) for name in invalid),
            raw.get("id"),
        )
        return RawVacancy.model_validate({key: value for key, value in raw.items() if key not in invalid})


def map_vacancy(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map an hh.ru vacancy payload to document fields.

    Args:
        raw: Decoded JSON of ``GET /vacancies/{id}``

    Returns:
        Dict of document fields; keys whose upstream value is absent are omitted.

    Raises:
        ValueError: If the payload is not an object or has no vacancy id
    """
    record = _validate(raw)
    if not record.id:
        raise ValueError("hh.ru vacancy payload has no id")

    document: Dict[str, Any] = {
        "external_id": record.id,
        "name": record.name,
        "employer": _dump(record.employer),
        "salary": _dump(record.salary),
        "area": _dump(record.area),
        "url": record.url,
        "alternate_url": record.alternate_url,
        "description": record.description,
        "schedule": _dump(record.schedule),
        "experience": _dump(record.experience),
        "employment": _dump(record.employment),
        "professional_roles": _dump_list(record.professional_roles),
        "work_format": _dump_list(record.work_format),
        "working_hours": _dump_list(record.working_hours),
        "work_schedule_by_days": _dump_list(record.work_schedule_by_days),
        "address": _dump(record.address),
        "contacts": _dump(record.contacts),
        "accept_handicapped": record.accept_handicapped,
        "accept_kids": record.accept_kids,
        "accept_temporary": record.accept_temporary,
        "accept_incomplete_resumes": record.accept_incomplete_resumes,
        "published_at": parse_published_at(record.published_at),
    }

    if record.key_skills is not None:
        document["key_skills"] = [skill.name for skill in record.key_skills if skill.name]

    return {key: value for key, value in document.items() if value is not None}
