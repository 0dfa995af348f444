from __future__ import annotations

from typing import Optional

MESSAGES = {
    "too_many": "Cannot attach more than 4 files, or attach files to a poll",
    "images_and_video": "Cannot attach a video or audio file to a status that already contains images",
    "not_ready": "Cannot attach files that have not finished processing. Try again in a moment!",
    "too_long": "Status is over the character limit",
    "poll.too_few_options": "must have more than one item",
    "poll.too_many_options": "cannot contain more than the allowed number of items",
    "poll.over_character_limit": "cannot be longer than the allowed number of characters each",
    "poll.duplicate_options": "contain duplicate items",
    "poll.duration_too_short": "is too soon",
    "poll.duration_too_long": "is too far into the future",
}


class StatusEditError(Exception):
    def __init__(self, msg: str, code: Optional[str] = None):
        super().__init__(msg)
        self.code = code


class ValidationError(StatusEditError):
    """Rejected input. Raised before anything from the edit becomes visible."""

    def __init__(self, code: str, msg: Optional[str] = None):
        super().__init__(msg or MESSAGES.get(code, code), code=code)


class PersistenceError(StatusEditError):
    """The store refused a write. The whole edit was rolled back."""


class SnapshotImmutableError(StatusEditError):
    def __init__(self, msg: str):
        super().__init__(msg, code="snapshot_immutable")
