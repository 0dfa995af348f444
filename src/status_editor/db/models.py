"""ORM models for statuses, their attachments, polls and edit history."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, object_session, relationship

from status_editor.db.base import JSON_VARIANT, Base, UTCDateTime, utcnow
from status_editor.errors import SnapshotImmutableError


preview_cards_statuses = Table(
    "preview_cards_statuses",
    Base.metadata,
    Column("preview_card_id", ForeignKey("preview_cards.id", ondelete="CASCADE"), primary_key=True),
    Column("status_id", ForeignKey("statuses.id", ondelete="CASCADE"), primary_key=True),
)

statuses_tags = Table(
    "statuses_tags",
    Base.metadata,
    Column("status_id", ForeignKey("statuses.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Account(Base):
    """A local account that authors statuses and uploads media."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    statuses: Mapped[List["Status"]] = relationship(back_populates="account")
    media_attachments: Mapped[List["MediaAttachment"]] = relationship(back_populates="account")
    polls: Mapped[List["Poll"]] = relationship(back_populates="account")


class ScheduledStatus(Base):
    """A status queued for later publication. Media held here cannot be attached elsewhere."""

    __tablename__ = "scheduled_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    params: Mapped[Optional[dict]] = mapped_column(JSON_VARIANT, nullable=True)


class Status(Base):
    """An editable post."""

    __tablename__ = "statuses"

    __table_args__ = (
        Index("idx_statuses_account_created", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    poll_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("polls.id", ondelete="SET NULL", use_alter=True, name="fk_statuses_poll_id"),
        nullable=True,
    )

    text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    spoiler_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    edited_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    account: Mapped["Account"] = relationship(back_populates="statuses")
    media_attachments: Mapped[List["MediaAttachment"]] = relationship(
        back_populates="status",
        foreign_keys="MediaAttachment.status_id",
        order_by="MediaAttachment.id",
    )
    poll: Mapped[Optional["Poll"]] = relationship(foreign_keys=[poll_id])
    edits: Mapped[List["StatusEdit"]] = relationship(
        back_populates="status",
        order_by="StatusEdit.id",
        cascade="all, delete-orphan",
    )
    preview_cards: Mapped[List["PreviewCard"]] = relationship(
        secondary=preview_cards_statuses, back_populates="statuses"
    )
    tags: Mapped[List["Tag"]] = relationship(secondary=statuses_tags, back_populates="statuses")
    mentions: Mapped[List["Mention"]] = relationship(
        back_populates="status", cascade="all, delete-orphan"
    )

    @property
    def edited(self) -> bool:
        return self.edited_at is not None

    @property
    def ordered_media_attachment_ids(self) -> List[int]:
        return [media.id for media in self.media_attachments]


class MediaAttachment(Base):
    """An uploaded asset that may be attached to a single status."""

    __tablename__ = "media_attachments"

    __table_args__ = (
        Index("idx_media_attachments_account_status", "account_id", "status_id"),
        Index("idx_media_attachments_scheduled_status", "scheduled_status_id"),
    )

    TYPE_IMAGE = "image"
    TYPE_GIFV = "gifv"
    TYPE_VIDEO = "video"
    TYPE_AUDIO = "audio"
    TYPE_UNKNOWN = "unknown"

    PROCESSING_QUEUED = "queued"
    PROCESSING_IN_PROGRESS = "in_progress"
    PROCESSING_COMPLETE = "complete"
    PROCESSING_FAILED = "failed"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    status_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("statuses.id", ondelete="SET NULL"), nullable=True
    )
    scheduled_status_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("scheduled_statuses.id", ondelete="SET NULL"), nullable=True
    )

    type: Mapped[str] = mapped_column(String(20), default=TYPE_IMAGE, nullable=False)
    processing: Mapped[str] = mapped_column(String(20), default=PROCESSING_COMPLETE, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_key: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    account: Mapped["Account"] = relationship(back_populates="media_attachments")
    status: Mapped[Optional["Status"]] = relationship(
        back_populates="media_attachments", foreign_keys=[status_id]
    )

    @property
    def audio_or_video(self) -> bool:
        return self.type in (self.TYPE_AUDIO, self.TYPE_VIDEO)

    @property
    def not_processed(self) -> bool:
        return self.processing != self.PROCESSING_COMPLETE


class Poll(Base):
    """A set of choices attached to a status."""

    __tablename__ = "polls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    status_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("statuses.id", ondelete="CASCADE"), nullable=True, index=True
    )

    options: Mapped[list] = mapped_column(JSON_VARIANT, default=list, nullable=False)
    cached_tallies: Mapped[list] = mapped_column(JSON_VARIANT, default=list, nullable=False)
    multiple: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hide_totals: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    votes_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    voters_count: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    # Relationships
    account: Mapped["Account"] = relationship(back_populates="polls")
    votes: Mapped[List["PollVote"]] = relationship(
        back_populates="poll", cascade="all, delete-orphan"
    )

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= utcnow()

    def reset_votes(self) -> None:
        """Zero the counters. Callers delete the vote rows themselves."""
        self.cached_tallies = [0 for _ in self.options or []]
        self.votes_count = 0
        self.voters_count = 0


class PollVote(Base):
    """One account's choice on a poll."""

    __tablename__ = "poll_votes"

    __table_args__ = (
        Index("idx_poll_votes_poll_account", "poll_id", "account_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    poll_id: Mapped[int] = mapped_column(ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)
    choice: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    poll: Mapped["Poll"] = relationship(back_populates="votes")


class StatusEdit(Base):
    """Immutable snapshot of a status' edit-relevant state."""

    __tablename__ = "status_edits"

    __table_args__ = (
        Index("idx_status_edits_status_created", "status_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status_id: Mapped[int] = mapped_column(ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False)
    # Null for the baseline entry seeded from the original post
    account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"), nullable=True)

    text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    spoiler_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ordered_media_attachment_ids: Mapped[Optional[list]] = mapped_column(JSON_VARIANT, nullable=True)
    media_descriptions: Mapped[Optional[list]] = mapped_column(JSON_VARIANT, nullable=True)
    poll_options: Mapped[Optional[list]] = mapped_column(JSON_VARIANT, nullable=True)
    media_attachments_changed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    status: Mapped["Status"] = relationship(back_populates="edits")
    account: Mapped[Optional["Account"]] = relationship()


@event.listens_for(StatusEdit, "before_update")
def _reject_status_edit_update(mapper, connection, target: StatusEdit) -> None:
    # Fires for every dirty instance, including ones with no column changes
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise SnapshotImmutableError(f"Status edit {target.id} is immutable and cannot be modified")


@event.listens_for(StatusEdit, "before_delete")
def _reject_status_edit_delete(mapper, connection, target: StatusEdit) -> None:
    raise SnapshotImmutableError(f"Status edit {target.id} is immutable and cannot be deleted")


class PreviewCard(Base):
    """Cached link preview for URLs found in status text."""

    __tablename__ = "preview_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Relationships
    statuses: Mapped[List["Status"]] = relationship(
        secondary=preview_cards_statuses, back_populates="preview_cards"
    )


class Tag(Base):
    """Hashtag, stored lower-cased."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Relationships
    statuses: Mapped[List["Status"]] = relationship(secondary=statuses_tags, back_populates="tags")


class Mention(Base):
    """Local account referenced by @username in a status."""

    __tablename__ = "mentions"

    __table_args__ = (
        UniqueConstraint("status_id", "account_id", name="uq_mentions_status_account"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status_id: Mapped[int] = mapped_column(ForeignKey("statuses.id", ondelete="CASCADE"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    status: Mapped["Status"] = relationship(back_populates="mentions")
    account: Mapped["Account"] = relationship()


class Notification(Base):
    """In-app notification delivered to an account."""

    __tablename__ = "notifications"

    __table_args__ = (
        UniqueConstraint("account_id", "type", "activity_id", name="uq_notifications_account_type_activity"),
    )

    TYPE_POLL = "poll"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    from_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    activity_id: Mapped[int] = mapped_column(Integer, nullable=False)


class ScheduledJob(Base):
    """Durable background job, executed at or after scheduled_at."""

    __tablename__ = "scheduled_jobs"

    __table_args__ = (
        Index("idx_scheduled_jobs_status_scheduled", "status", "scheduled_at"),
        Index("idx_scheduled_jobs_worker_status_args", "worker", "status", "args_key"),
    )

    STATUS_PENDING = "PENDING"
    STATUS_SCHEDULED = "SCHEDULED"
    STATUS_RUNNING = "RUNNING"
    STATUS_SUCCESS = "SUCCESS"
    STATUS_FAILED = "FAILED"
    STATUS_CANCELLED = "CANCELLED"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    worker: Mapped[str] = mapped_column(String(100), nullable=False)
    args: Mapped[list] = mapped_column(JSON_VARIANT, default=list, nullable=False)
    # Canonical JSON of args, so jobs can be matched by arguments in SQL
    args_key: Mapped[str] = mapped_column(String(1000), default="[]", nullable=False)
    status: Mapped[str] = mapped_column(String(50), default=STATUS_PENDING, nullable=False)

    scheduled_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
