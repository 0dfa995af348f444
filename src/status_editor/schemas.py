"""Request models for status edits."""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Options(BaseModel):
    # Accept both snake_case and camelCase keys (mediaIds / media_ids)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PollOptions(_Options):
    """Requested poll shape."""

    options: List[str]
    hide_totals: bool = False
    multiple: bool = False
    expires_in: Optional[int] = None  # seconds


class UpdateStatusOptions(_Options):
    """Requested changes to a status. Unset fields fall back as described in UpdateStatusService."""

    text: Optional[str] = None
    spoiler_text: Optional[str] = None
    sensitive: Optional[bool] = None
    language: Optional[str] = None
    media_ids: Optional[List[Any]] = None
    poll: Optional[PollOptions] = None

    @classmethod
    def coerce(cls, options: "UpdateStatusOptions | dict | None") -> "UpdateStatusOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(options)
