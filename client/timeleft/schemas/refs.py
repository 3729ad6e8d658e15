"""
References to related records.

The API returns related users and icebreakers either as a bare id string
or as the expanded record, depending on what the server populated. Both
shapes are normalized into a tagged union here so the rest of the client
resolves ids through `ref_id` instead of checking types at each use site.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from timeleft.schemas.user import UserSummary


class TaggedRef(BaseModel):
    model_config = {"frozen": True}


class Reference(TaggedRef):
    """A related record known only by its id."""

    kind: Literal["reference"] = "reference"
    id: str


class ExpandedUser(TaggedRef):
    kind: Literal["expanded"] = "expanded"
    record: UserSummary


UserRef = Annotated[Union[Reference, ExpandedUser], Field(discriminator="kind")]


def ref_id(ref: TaggedRef) -> str:
    """Return the id behind a reference, whichever shape it has."""
    if isinstance(ref, Reference):
        return ref.id
    return ref.record.id


def tag_reference(value: Any) -> Any:
    """Wrap a raw wire value into the tagged shape pydantic validates.

    Used as a "before" validator: strings become references, plain
    records become expanded entries, already-tagged values pass through.
    """
    if value is None or isinstance(value, TaggedRef):
        return value
    if isinstance(value, str):
        return {"kind": "reference", "id": value}
    if isinstance(value, BaseModel):
        return {"kind": "expanded", "record": value.model_dump(by_alias=True)}
    if isinstance(value, dict) and "kind" not in value:
        return {"kind": "expanded", "record": value}
    return value


def tag_references(values: Any) -> Any:
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return [tag_reference(value) for value in values]
    return values
