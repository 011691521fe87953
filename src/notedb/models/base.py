"""Base models for NoteDB."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class NoteDBBaseModel(BaseModel):
    """Base model for metadata and stream entries.

    Fields are snake_case in Python and camelCase on the wire
    (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        alias_generator=to_camel,
        extra="forbid",
    )
