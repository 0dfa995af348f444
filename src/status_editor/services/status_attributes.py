"""Service for the scalar fields of a status."""
from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from status_editor.config import Settings
from status_editor.db.base import utcnow
from status_editor.db.models import Status
from status_editor.errors import ValidationError
from status_editor.languages import find_language
from status_editor.schemas import UpdateStatusOptions


def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


class StatusAttributeService:

    @staticmethod
    def resolve_language(requested: Optional[str], current: Optional[str]) -> Optional[str]:
        """Use the requested language when it is recognized, else keep the current one."""
        return find_language(requested) or current

    @staticmethod
    def update_immediate_attributes(
        session: Session,
        status: Status,
        options: UpdateStatusOptions,
        settings: Settings,
    ) -> bool:
        """
        Write text, spoiler, sensitivity, language and edited_at.

        A blank text takes the spoiler text as its body, and the spoiler is
        then cleared. Returns True when the text body changed.
        """
        previous_text = status.text
        spoiler_text = options.spoiler_text

        if _present(options.text):
            text = options.text
        else:
            text = spoiler_text or ""
            spoiler_text = None

        spoiler_text = spoiler_text or ""

        if len(text) + len(spoiler_text) > settings.max_status_characters:
            raise ValidationError("too_long")

        status.text = text
        status.spoiler_text = spoiler_text
        status.sensitive = bool(options.sensitive) or _present(spoiler_text)
        status.language = StatusAttributeService.resolve_language(options.language, status.language)
        status.edited_at = utcnow()

        if options.language and find_language(options.language) is None:
            logger.warning(f"[EDIT] Unknown language {options.language!r} for status {status.id}, keeping {status.language!r}")

        session.flush()
        return status.text != previous_text
