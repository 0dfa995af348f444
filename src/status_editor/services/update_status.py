"""Edit an existing status in place while keeping its edit history."""
from __future__ import annotations

from typing import Callable, Optional, Union

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from status_editor.config import Settings, load_settings
from status_editor.db.models import Status
from status_editor.errors import PersistenceError, StatusEditError
from status_editor.jobs.poll_expiration import PollExpirationNotifier, QueuedPollExpirationNotifier
from status_editor.jobs.queue import (
    DISTRIBUTION_WORKER,
    LINK_CRAWL_WORKER,
    STATUS_UPDATE_DISTRIBUTION_WORKER,
    JobQueue,
)
from status_editor.schemas import UpdateStatusOptions
from status_editor.services.edit_history import EditHistoryService
from status_editor.services.media_attachments import MediaAttachmentService
from status_editor.services.metadata import ProcessHashtagsService, ProcessMentionsService
from status_editor.services.polls import PollChange, PollService
from status_editor.services.status_attributes import StatusAttributeService


class UpdateStatusService:
    """
    Applies an edit to a status.

    Inside one transaction, in this order:
    1. Seed the baseline snapshot if the status has no history yet
    2. Reconcile attached media
    3. Create, reshape or remove the poll
    4. Write text, spoiler, sensitivity, language and edited_at
    5. Append the snapshot for this edit

    After commit, independently of each other and without failing the edit:
    poll expiration notifications, preview card reset, hashtag/mention
    processing, and broadcast of the update.
    """

    def __init__(
        self,
        session: Session,
        settings: Optional[Settings] = None,
        notifier: Optional[PollExpirationNotifier] = None,
    ):
        self.session = session
        self.settings = settings or load_settings()
        self.notifier = notifier or QueuedPollExpirationNotifier(session)

    def call(
        self,
        status: Status,
        account_id: int,
        options: Union[UpdateStatusOptions, dict, None] = None,
    ) -> Status:
        options = UpdateStatusOptions.coerce(options)
        status_id = status.id

        logger.info(f"[EDIT] Account {account_id} editing status {status_id}")

        try:
            status = self._lock_status(status_id)

            EditHistoryService.seed_baseline(self.session, status)

            media_attachments_changed = MediaAttachmentService.update_media_attachments(
                self.session,
                status,
                account_id,
                options.media_ids,
                poll_requested=options.poll is not None,
                max_attachments=self.settings.max_media_attachments,
            )
            poll_change = PollService.update_poll(
                self.session,
                status,
                account_id,
                options.poll,
                self.settings,
            )
            text_changed = StatusAttributeService.update_immediate_attributes(
                self.session,
                status,
                options,
                self.settings,
            )
            EditHistoryService.append_edit(
                self.session,
                status,
                account_id,
                media_attachments_changed=media_attachments_changed or poll_change.changed,
            )

            self.session.commit()

        except StatusEditError as e:
            self.session.rollback()
            logger.warning(f"[EDIT] Edit of status {status_id} rejected ({e.code}): {e}")
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"[EDIT] Edit of status {status_id} could not be saved: {e}")
            raise PersistenceError(f"Could not save edit of status {status_id}: {e}", code="persistence") from e
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"[EDIT] Status {status_id} updated")

        self._after_commit("queue_poll_notifications", lambda: self._queue_poll_notifications(status, poll_change))
        if text_changed:
            self._after_commit("reset_preview_card", lambda: self._reset_preview_card(status))
        self._after_commit("update_metadata", lambda: self._update_metadata(status))
        self._after_commit("broadcast_updates", lambda: self._broadcast_updates(status))

        return status

    def _lock_status(self, status_id: int) -> Status:
        # Serializes concurrent edits so only one of them can seed the baseline
        return self.session.execute(
            select(Status)
            .where(Status.id == status_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _after_commit(self, name: str, step: Callable[[], None]) -> None:
        try:
            step()
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.exception(f"[EDIT] Post-edit step {name} failed")

    def _queue_poll_notifications(self, status: Status, poll_change: PollChange) -> None:
        poll = status.poll

        # Only an expiry that is new or earlier than before needs a fresh
        # notification; a job for a later expiry requeues itself when it runs
        if poll is None or poll.expires_at is None:
            return
        if not PollService.has_votes(self.session, poll):
            return

        previous_expires_at = poll_change.previous_expires_at
        if previous_expires_at is not None and previous_expires_at <= poll.expires_at:
            return

        if previous_expires_at is not None and previous_expires_at > poll.expires_at:
            self.notifier.cancel(poll.id)

        self.notifier.schedule_at(poll.id, poll.expires_at + self.settings.poll_notification_delay)

    def _reset_preview_card(self, status: Status) -> None:
        status.preview_cards.clear()
        JobQueue.perform_async(self.session, LINK_CRAWL_WORKER, status.id)

    def _update_metadata(self, status: Status) -> None:
        ProcessHashtagsService.call(self.session, status)
        ProcessMentionsService.call(self.session, status)

    def _broadcast_updates(self, status: Status) -> None:
        JobQueue.perform_async(self.session, DISTRIBUTION_WORKER, status.id, {"update": True})
        JobQueue.perform_async(self.session, STATUS_UPDATE_DISTRIBUTION_WORKER, status.id)
