"""Change notification models for NoteDB."""

from enum import Enum
from typing import Optional

from pydantic import Field

from .base import NoteDBBaseModel


class NotificationKind(str, Enum):
    """Granularity of a change notification."""

    TABLE_LIST = "table_list"
    TABLE_DATA = "table_data"
    TABLE_ROW = "table_row"


class Notification(NoteDBBaseModel):
    """Tells consumers what to re-fetch after a successful mutation."""

    kind: NotificationKind = Field(description="Granularity of the change")
    table_oid: Optional[int] = Field(default=None, description="Affected table")
    row_oid: Optional[int] = Field(default=None, description="Affected row")
    deep: bool = Field(
        default=False,
        description="Schema-affecting (deep) rather than validation-only (shallow) refresh",
    )
