import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from status_editor.config import Settings
from status_editor.db.base import Base
from status_editor.db.models import Account, MediaAttachment, Poll, PollVote, Status


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture
def account(session):
    account = Account(username="alice", display_name="Alice")
    session.add(account)
    session.commit()
    return account


@pytest.fixture
def other_account(session):
    account = Account(username="bob", display_name="Bob")
    session.add(account)
    session.commit()
    return account


@pytest.fixture
def make_status(session):
    def _make(account, text="A", **kwargs):
        status = Status(account_id=account.id, text=text, **kwargs)
        session.add(status)
        session.commit()
        return status
    return _make


@pytest.fixture
def make_media(session):
    def _make(account, **kwargs):
        media = MediaAttachment(account_id=account.id, **kwargs)
        session.add(media)
        session.commit()
        return media
    return _make


@pytest.fixture
def make_poll(session):
    """Attach a committed poll to a status, with optional votes as (account, choice) pairs."""
    def _make(status, options=("a", "b"), votes=(), **kwargs):
        poll = Poll(
            account_id=status.account_id,
            status_id=status.id,
            options=list(options),
            cached_tallies=[0 for _ in options],
            votes_count=len(votes),
            **kwargs,
        )
        session.add(poll)
        session.flush()
        status.poll = poll
        for voter, choice in votes:
            session.add(PollVote(poll_id=poll.id, account_id=voter.id, choice=choice))
        session.commit()
        return poll
    return _make
