from datetime import timedelta

import pytest
from sqlalchemy import func, select

from status_editor.db.base import utcnow
from status_editor.db.models import Poll, PollVote
from status_editor.errors import ValidationError
from status_editor.schemas import PollOptions
from status_editor.services.polls import PollService


def _vote_count(session, poll_id):
    return session.execute(
        select(func.count()).select_from(PollVote).where(PollVote.poll_id == poll_id)
    ).scalar_one()


@pytest.mark.parametrize(
    "poll_options, code",
    [
        (PollOptions(options=["only"]), "poll.too_few_options"),
        (PollOptions(options=["a", "b", "c", "d", "e"]), "poll.too_many_options"),
        (PollOptions(options=["a", "b" * 51]), "poll.over_character_limit"),
        (PollOptions(options=["a", "a"]), "poll.duplicate_options"),
        (PollOptions(options=["a", "b"], expires_in=60), "poll.duration_too_short"),
        (PollOptions(options=["a", "b"], expires_in=10_000_000), "poll.duration_too_long"),
    ],
)
def test_validate_poll_rejects(settings, poll_options, code):
    with pytest.raises(ValidationError) as exc:
        PollService.validate_poll(poll_options, settings)
    assert exc.value.code == code


def test_create_poll_flags_change_by_default(session, settings, account, make_status):
    status = make_status(account)

    change = PollService.update_poll(
        session, status, account.id, PollOptions(options=["yes", "no"], expires_in=3600), settings
    )
    session.commit()

    assert change.changed
    assert change.previous_expires_at is None
    poll = status.poll
    assert poll is not None
    assert poll.options == ["yes", "no"]
    assert poll.account_id == account.id
    assert poll.status_id == status.id
    assert poll.votes_count == 0
    assert poll.cached_tallies == [0, 0]
    assert poll.expires_at > utcnow() + timedelta(minutes=59)


def test_create_poll_not_flagged_when_creation_is_not_a_change(session, settings, account, make_status):
    settings = settings.model_copy(update={"poll_creation_is_change": False})
    status = make_status(account)

    change = PollService.update_poll(session, status, account.id, PollOptions(options=["yes", "no"]), settings)

    assert not change.changed
    assert status.poll is not None
    assert status.poll.expires_at is None


def test_same_options_keep_votes(session, settings, account, other_account, make_status, make_poll):
    status = make_status(account)
    poll = make_poll(status, options=["a", "b"], votes=[(other_account, 0)])

    change = PollService.update_poll(
        session, status, account.id, PollOptions(options=["a", "b"], multiple=True), settings
    )
    session.commit()

    assert not change.changed
    assert _vote_count(session, poll.id) == 1
    assert status.poll.id == poll.id
    assert status.poll.multiple is True
    assert status.poll.votes_count == 1


def test_different_options_discard_votes(session, settings, account, other_account, make_status, make_poll):
    status = make_status(account)
    poll = make_poll(status, options=["a", "b"], votes=[(other_account, 0), (account, 1)])

    change = PollService.update_poll(session, status, account.id, PollOptions(options=["x", "y"]), settings)
    session.commit()

    assert change.changed
    assert _vote_count(session, poll.id) == 0
    assert status.poll.id == poll.id
    assert status.poll.options == ["x", "y"]
    assert status.poll.votes_count == 0
    assert status.poll.voters_count == 0
    assert status.poll.cached_tallies == [0, 0]


def test_remove_poll(session, settings, account, other_account, make_status, make_poll):
    status = make_status(account)
    expires_at = utcnow() + timedelta(days=1)
    poll = make_poll(status, votes=[(other_account, 0)], expires_at=expires_at)
    poll_id = poll.id

    change = PollService.update_poll(session, status, account.id, None, settings)
    session.commit()

    assert change.changed
    assert change.previous_expires_at == expires_at
    assert status.poll is None
    assert status.poll_id is None
    assert session.get(Poll, poll_id) is None
    assert _vote_count(session, poll_id) == 0


def test_no_poll_requested_and_none_present(session, settings, account, make_status):
    status = make_status(account)

    change = PollService.update_poll(session, status, account.id, None, settings)

    assert not change.changed
    assert change.previous_expires_at is None
    assert status.poll is None


def test_has_votes(session, account, other_account, make_status, make_poll):
    status = make_status(account)
    poll = make_poll(status)
    assert not PollService.has_votes(session, poll)

    session.add(PollVote(poll_id=poll.id, account_id=other_account.id, choice=0))
    session.commit()
    assert PollService.has_votes(session, poll)
