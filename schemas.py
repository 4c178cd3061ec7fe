"""
Database Schemas for the Club Site

Each Pydantic model describes the documents of one MongoDB collection. Field
names are stored under their camelCase aliases (the wire contract shared with
the admin panel), while Python code uses the snake_case attribute names.

The weekly schedule is the exception to "one document per entity": all slots
live in the `slots` array of a single document keyed `main`.
"""
from datetime import date as Date, datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class Document(BaseModel):
    """Common behaviour of every stored model."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    # Optional string fields where the admin forms submit "" for "not set"
    blank_as_none: ClassVar[tuple] = ()

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for name in cls.blank_as_none:
            field = cls.model_fields[name]
            for key in (name, field.alias):
                if key in out and isinstance(out[key], str) and not out[key].strip():
                    out[key] = None
        return out

    def to_document(self) -> Dict[str, Any]:
        """Dump for storage: wire names, no identifier."""
        return self.model_dump(by_alias=True, exclude={"id"})

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]):
        data = dict(doc)
        _id = data.pop("_id", None)
        if _id is not None and "id" not in data:
            data["id"] = str(_id)
        return cls.model_validate(data)


class ScheduleSlot(Document):
    model_config = ConfigDict(use_enum_values=True)
    blank_as_none: ClassVar[tuple] = ("title",)

    id: str = Field(..., min_length=1, description="Slot identifier, generated by the admin editor")
    title: Optional[str] = Field(None, description="Optional session title")
    day: Weekday = Field(..., description="Weekday the practice happens on")
    start_time: str = Field(..., alias="startTime", pattern=TIME_PATTERN, description="HH:MM, 24h")
    end_time: str = Field(..., alias="endTime", pattern=TIME_PATTERN, description="HH:MM, 24h")
    location: str = Field(..., min_length=1, description="Venue")
    order: int = Field(1, description="Display position, ascending")
    featured: bool = Field(False, description="Highlighted on the public schedule")


class Schedule(Document):
    """Singleton document `schedule/main`."""

    id: Optional[str] = None
    slots: List[ScheduleSlot] = Field(default_factory=list)


class NewsPost(Document):
    blank_as_none: ClassVar[tuple] = ("image_url",)

    id: Optional[str] = None
    title: str = Field(..., min_length=1, description="Headline")
    content: str = Field(..., min_length=1, description="Body text")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="Optional picture URL")
    published: bool = Field(True, description="Whether the post is visible to the public")
    date: Optional[datetime] = Field(None, description="Server assigned timestamp")


class Flyer(Document):
    blank_as_none: ClassVar[tuple] = ("description",)

    id: Optional[str] = None
    title: str = Field(..., min_length=1, description="Flyer caption")
    description: Optional[str] = Field(None, description="Optional longer text")
    image_url: str = Field(..., alias="imageUrl", min_length=1, description="Flyer image URL")
    published: bool = Field(True, description="Whether the flyer is visible to the public")
    date: Optional[datetime] = Field(None, description="Server assigned timestamp")


class CompetitionEvent(Document):
    blank_as_none: ClassVar[tuple] = ("end_date", "location", "divisions", "notes", "link")

    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Event name")
    date: str = Field(..., pattern=DATE_PATTERN, description="First day, YYYY-MM-DD")
    end_date: Optional[str] = Field(None, alias="endDate", pattern=DATE_PATTERN, description="Last day, YYYY-MM-DD")
    location: Optional[str] = None
    divisions: Optional[str] = None
    notes: Optional[str] = None
    link: Optional[str] = Field(None, description="Registration or info URL")
    published: bool = Field(True, description="Whether the event is visible to the public")
    travel: Optional[bool] = Field(None, description="Away event requiring travel")

    @field_validator("date", "end_date")
    @classmethod
    def _calendar_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            Date.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def _end_not_before_start(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("endDate must not be before date")
        return self


class Sponsor(Document):
    blank_as_none: ClassVar[tuple] = ("logo_url", "website")

    id: Optional[str] = None
    name: str = Field(..., min_length=1, description="Sponsor name")
    logo_url: Optional[str] = Field(None, alias="logoUrl", description="Logo image URL")
    website: Optional[str] = Field(None, description="Sponsor website")
    order: int = Field(0, description="Display position, ascending")


# Collection names are the wire contract with the admin panel and the site.
SCHEDULE = "schedule"
NEWS = "news"
FLYERS = "flyers"
COMPETITIONS = "competitions"
SPONSORS = "sponsors"

SCHEDULE_DOC_ID = "main"

COLLECTIONS = {
    SCHEDULE: Schedule,
    NEWS: NewsPost,
    FLYERS: Flyer,
    COMPETITIONS: CompetitionEvent,
    SPONSORS: Sponsor,
}

# Collections stored as one fixed-key document rather than one document per record
SINGLETONS = {SCHEDULE: SCHEDULE_DOC_ID}

# Collections whose `date` is assigned by the server on every write
TIMESTAMPED = {NEWS, FLYERS}
