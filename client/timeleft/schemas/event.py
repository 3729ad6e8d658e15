"""
Pydantic schemas for event-related request/response validation.

Input schemas (EventCreate, EventUpdate, ImageUpload) validate locally so a
bad form never reaches the network; Event mirrors the server's record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from timeleft.schemas.icebreaker import IcebreakerRef
from timeleft.schemas.refs import UserRef, ref_id, tag_reference, tag_references

MIN_PARTICIPANTS = 2
MAX_PARTICIPANTS = 100
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EventStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class Event(BaseModel):
    id: str = Field(..., alias="_id")
    title: str
    description: str = ""
    event_date: datetime = Field(..., alias="eventDate")
    reveal_date: datetime = Field(..., alias="revealDate")
    location: str = ""
    max_participants: int = Field(..., alias="maxParticipants")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    participants: tuple[UserRef, ...] = ()
    icebreakers: tuple[IcebreakerRef, ...] = ()
    status: EventStatus = EventStatus.PENDING
    rejection_reason: Optional[str] = Field(None, alias="rejectionReason")
    created_by: Optional[UserRef] = Field(None, alias="createdBy")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("participants", "icebreakers", mode="before")
    @classmethod
    def _tag_many(cls, value):
        return tag_references(value)

    @field_validator("created_by", mode="before")
    @classmethod
    def _tag_creator(cls, value):
        return tag_reference(value)

    @field_validator("event_date", "reveal_date")
    @classmethod
    def _normalize_dates(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @property
    def participant_ids(self) -> list[str]:
        return [ref_id(participant) for participant in self.participants]

    @property
    def icebreaker_ids(self) -> list[str]:
        return [ref_id(icebreaker) for icebreaker in self.icebreakers]

    @property
    def creator_id(self) -> Optional[str]:
        return ref_id(self.created_by) if self.created_by is not None else None

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.max_participants

    @property
    def accepts_joins(self) -> bool:
        return self.status == EventStatus.APPROVED and not self.is_full

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def is_created_by(self, user_id: str) -> bool:
        return self.creator_id == user_id

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, status={self.status.value}, "
            f"participants={len(self.participants)}/{self.max_participants})>"
        )


class ImageUpload(BaseModel):
    filename: str = Field(..., min_length=1)
    content_type: str
    content: bytes

    @field_validator("content_type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        if value not in ALLOWED_IMAGE_TYPES:
            raise ValueError("Only JPEG, PNG, or GIF images are allowed")
        return value

    @field_validator("content")
    @classmethod
    def _check_size(cls, value: bytes) -> bytes:
        if len(value) > MAX_IMAGE_BYTES:
            raise ValueError("Image size must be less than 5MB")
        return value


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=2000)
    event_date: datetime
    reveal_date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    max_participants: int = Field(10, ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS)
    image: Optional[ImageUpload] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("event_date", "reveal_date")
    @classmethod
    def _normalize_dates(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("event_date")
    @classmethod
    def _event_in_future(cls, value: datetime) -> datetime:
        if value <= datetime.now(timezone.utc):
            raise ValueError("Event date must be in the future")
        return value

    @model_validator(mode="after")
    def _reveal_before_event(self) -> "EventCreate":
        if self.reveal_date > self.event_date:
            raise ValueError("Reveal date must be before the event date")
        return self

    def to_multipart(self) -> dict[str, tuple]:
        """Form fields as httpx multipart entries (a None filename marks a plain field)."""
        fields = {
            "title": (None, self.title),
            "description": (None, self.description),
            "eventDate": (None, self.event_date.isoformat()),
            "revealDate": (None, self.reveal_date.isoformat()),
            "location": (None, self.location),
            "maxParticipants": (None, str(self.max_participants)),
        }
        if self.image is not None:
            fields["image"] = (self.image.filename, self.image.content, self.image.content_type)
        return fields


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    event_date: Optional[datetime] = Field(None, serialization_alias="eventDate")
    reveal_date: Optional[datetime] = Field(None, serialization_alias="revealDate")
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    max_participants: Optional[int] = Field(
        None, ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS, serialization_alias="maxParticipants"
    )

    model_config = {"str_strip_whitespace": True}

    @field_validator("event_date", "reveal_date")
    @classmethod
    def _normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _reveal_before_event(self) -> "EventUpdate":
        if self.event_date and self.reveal_date and self.reveal_date > self.event_date:
            raise ValueError("Reveal date must be before the event date")
        return self

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RejectRequest(BaseModel):
    reason: str
