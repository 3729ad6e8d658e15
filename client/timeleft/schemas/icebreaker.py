"""
Pydantic schemas for icebreaker questions.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from timeleft.schemas.refs import Reference, TaggedRef, UserRef, tag_reference


class Icebreaker(BaseModel):
    id: str = Field(..., alias="_id")
    question: str
    category: str = ""
    created_by: Optional[UserRef] = Field(None, alias="createdBy")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("created_by", mode="before")
    @classmethod
    def _tag_creator(cls, value):
        return tag_reference(value)


class ExpandedIcebreaker(TaggedRef):
    kind: Literal["expanded"] = "expanded"
    record: Icebreaker


IcebreakerRef = Annotated[Union[Reference, ExpandedIcebreaker], Field(discriminator="kind")]


class IcebreakerCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)
    category: str = Field(..., min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}


class IcebreakerUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[str] = Field(None, min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}
