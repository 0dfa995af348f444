"""Service for reconciling the media attached to a status."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from loguru import logger
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from status_editor.db.models import MediaAttachment, Status
from status_editor.errors import ValidationError


@dataclass(frozen=True)
class MediaDiff:
    """Result of comparing the current attachments with the requested ones."""

    attachments: List[MediaAttachment] = field(default_factory=list)
    added: List[MediaAttachment] = field(default_factory=list)
    removed: List[MediaAttachment] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def diff_media_attachments(
    previous: Sequence[MediaAttachment],
    requested: Sequence[MediaAttachment],
) -> MediaDiff:
    """Compute which attachments must be detached and which must be attached.

    Attachments are compared by id so that separately loaded instances of
    the same row are treated as equal. Input order is preserved.
    """
    previous_ids = {media.id for media in previous}
    requested_ids = {media.id for media in requested}

    return MediaDiff(
        attachments=list(requested),
        added=[media for media in requested if media.id not in previous_ids],
        removed=[media for media in previous if media.id not in requested_ids],
    )


def _coerce_ids(media_ids: Iterable[Any]) -> List[int]:
    ids = []
    for raw in media_ids:
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            logger.warning(f"[MEDIA] Ignoring malformed media id {raw!r}")
    return ids


class MediaAttachmentService:
    """Resolves requested media ids and moves attachment ownership."""

    @staticmethod
    def validate_media(
        session: Session,
        status: Status,
        account_id: int,
        media_ids: Optional[Sequence[Any]],
        *,
        poll_requested: bool = False,
        max_attachments: int = 4,
    ) -> List[MediaAttachment]:
        """Return the attachments the edit should end up with.

        Raises ValidationError for too many ids, media combined with a poll,
        mixed audio/video with other media, or media still processing.
        Ids that are unknown or not attachable are dropped.
        """
        if not media_ids or not isinstance(media_ids, (list, tuple)):
            return []

        if len(media_ids) > max_attachments or poll_requested:
            raise ValidationError("too_many")

        ids = _coerce_ids(media_ids[:max_attachments])
        if not ids:
            return []

        media_attachments = list(
            session.execute(
                select(MediaAttachment)
                .where(
                    MediaAttachment.account_id == account_id,
                    or_(MediaAttachment.status_id.is_(None), MediaAttachment.status_id == status.id),
                    MediaAttachment.scheduled_status_id.is_(None),
                    MediaAttachment.id.in_(ids),
                )
                .order_by(MediaAttachment.id)
            ).scalars().all()
        )

        if len(media_attachments) < len(set(ids)):
            found = {media.id for media in media_attachments}
            dropped = [media_id for media_id in ids if media_id not in found]
            logger.warning(f"[MEDIA] Dropping unavailable media ids {dropped} for status {status.id}")

        if len(media_attachments) > 1 and any(media.audio_or_video for media in media_attachments):
            raise ValidationError("images_and_video")

        if any(media.not_processed for media in media_attachments):
            raise ValidationError("not_ready")

        return media_attachments

    @staticmethod
    def update_media_attachments(
        session: Session,
        status: Status,
        account_id: int,
        media_ids: Optional[Sequence[Any]],
        *,
        poll_requested: bool = False,
        max_attachments: int = 4,
    ) -> bool:
        """Re-parent attachments so the status holds exactly the requested set.

        Returns True when any attachment was added or removed.
        """
        previous = list(status.media_attachments)
        requested = MediaAttachmentService.validate_media(
            session,
            status,
            account_id,
            media_ids,
            poll_requested=poll_requested,
            max_attachments=max_attachments,
        )
        diff = diff_media_attachments(previous, requested)

        if diff.removed:
            session.execute(
                update(MediaAttachment)
                .where(MediaAttachment.id.in_([media.id for media in diff.removed]))
                .values(status_id=None)
                .execution_options(synchronize_session="fetch")
            )
        if diff.added:
            session.execute(
                update(MediaAttachment)
                .where(MediaAttachment.id.in_([media.id for media in diff.added]))
                .values(status_id=status.id)
                .execution_options(synchronize_session="fetch")
            )

        for media in diff.added + diff.removed:
            session.expire(media, ["status"])
        session.expire(status, ["media_attachments"])

        if diff.changed:
            logger.info(
                f"[MEDIA] Status {status.id}: attached {[m.id for m in diff.added]}, "
                f"detached {[m.id for m in diff.removed]}"
            )
        return diff.changed
