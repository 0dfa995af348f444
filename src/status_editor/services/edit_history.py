"""Service for the append-only edit history of a status."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from status_editor.db.base import utcnow
from status_editor.db.models import Status, StatusEdit


class EditHistoryService:
    """
    Records snapshots of a status' text, media and poll.

    The first edit of a status also stores a baseline snapshot holding the
    state from before any edit, dated at the status' creation time.
    """

    @staticmethod
    def has_history(session: Session, status: Status) -> bool:
        return bool(
            session.execute(select(exists().where(StatusEdit.status_id == status.id))).scalar()
        )

    @staticmethod
    def count(session: Session, status_id: int) -> int:
        return session.execute(
            select(func.count()).select_from(StatusEdit).where(StatusEdit.status_id == status_id)
        ).scalar_one()

    @staticmethod
    def history(session: Session, status_id: int) -> List[StatusEdit]:
        return list(
            session.execute(
                select(StatusEdit).where(StatusEdit.status_id == status_id).order_by(StatusEdit.id)
            ).scalars().all()
        )

    @staticmethod
    def snapshot(
        session: Session,
        status: Status,
        *,
        media_attachments_changed: bool = False,
        account_id: Optional[int] = None,
        at_time: Optional[datetime] = None,
    ) -> StatusEdit:
        """Append a snapshot of the status as it currently stands in the session."""
        media_attachments = list(status.media_attachments)
        poll = status.poll

        edit = StatusEdit(
            status_id=status.id,
            account_id=account_id,
            text=status.text or "",
            spoiler_text=status.spoiler_text or "",
            sensitive=bool(status.sensitive),
            ordered_media_attachment_ids=[media.id for media in media_attachments],
            media_descriptions=[media.description for media in media_attachments],
            poll_options=list(poll.options) if poll is not None else None,
            media_attachments_changed=media_attachments_changed,
            created_at=at_time or utcnow(),
        )
        status.edits.append(edit)
        session.flush()
        return edit

    @staticmethod
    def seed_baseline(session: Session, status: Status) -> Optional[StatusEdit]:
        """Store the never-recorded original state, unless history already exists."""
        if EditHistoryService.has_history(session, status):
            return None

        edit = EditHistoryService.snapshot(
            session,
            status,
            media_attachments_changed=False,
            at_time=status.created_at,
        )
        logger.info(f"[HISTORY] Seeded baseline edit {edit.id} for status {status.id}")
        return edit

    @staticmethod
    def append_edit(
        session: Session,
        status: Status,
        account_id: int,
        *,
        media_attachments_changed: bool,
    ) -> StatusEdit:
        edit = EditHistoryService.snapshot(
            session,
            status,
            media_attachments_changed=media_attachments_changed,
            account_id=account_id,
        )
        logger.info(
            f"[HISTORY] Recorded edit {edit.id} for status {status.id} "
            f"(media_attachments_changed={media_attachments_changed})"
        )
        return edit
