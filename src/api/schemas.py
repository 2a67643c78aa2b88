"""Request validation models for the HTTP API."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.services.progress import ProgressStatus
from src.services.saved_vacancy_service import ChecklistItem, SavedVacancyQuery

NOTES_MAX_LENGTH = 2000
CHECKLIST_MAX_ITEMS = 50
CHECKLIST_ITEM_MAX_LENGTH = 200


class SearchVacanciesQuery(BaseModel):
    """Query string accepted by ``GET /vacancies/search``."""

    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = Field(default=None, description="Free-text query")
    area: Optional[int] = Field(default=None, description="hh.ru area id")
    salary: Optional[int] = Field(default=None, description="Desired salary")
    experience: Optional[str] = None
    employment: Optional[str] = None
    schedule: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=0)
    per_page: Optional[int] = Field(default=None, ge=1, le=100)
    order_by: Optional[str] = None
    only_with_salary: Optional[bool] = None

    def to_criteria(self) -> dict:
        return self.model_dump(exclude_none=True)


class SavedVacanciesQuery(BaseModel):
    """Query string accepted by ``GET /users/me/vacancies``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: Optional[ProgressStatus] = None
    sort_by: Literal["savedDate", "name"] = Field(default="savedDate", alias="sortBy")
    sort_order: Literal["asc", "desc"] = Field(default="desc", alias="sortOrder")
    page: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=100)

    def to_query(self) -> SavedVacancyQuery:
        return SavedVacancyQuery(
            status=self.status.value if self.status else None,
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            page=self.page,
            limit=self.limit,
        )


class UpdateProgressRequest(BaseModel):
    status: ProgressStatus


class UpdateNotesRequest(BaseModel):
    notes: str = Field(max_length=NOTES_MAX_LENGTH)


class ChecklistItemPayload(BaseModel):
    text: str = Field(min_length=1, max_length=CHECKLIST_ITEM_MAX_LENGTH)
    checked: bool


class UpdateChecklistRequest(BaseModel):
    checklist: List[ChecklistItemPayload] = Field(max_length=CHECKLIST_MAX_ITEMS)

    def to_items(self) -> List[ChecklistItem]:
        return [ChecklistItem(text=item.text, checked=item.checked) for item in self.checklist]
