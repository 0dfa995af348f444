import pytest

from status_editor.errors import SnapshotImmutableError
from status_editor.services.edit_history import EditHistoryService


def test_seed_baseline_once(session, account, make_status):
    status = make_status(account, text="original")

    baseline = EditHistoryService.seed_baseline(session, status)
    session.commit()

    assert baseline is not None
    assert baseline.account_id is None
    assert baseline.text == "original"
    assert baseline.media_attachments_changed is False
    assert baseline.created_at == status.created_at

    assert EditHistoryService.seed_baseline(session, status) is None
    assert EditHistoryService.count(session, status.id) == 1


def test_snapshot_captures_media_and_poll(session, account, make_status, make_media, make_poll):
    status = make_status(account, text="with media", spoiler_text="cw", sensitive=True)
    first = make_media(account, status_id=status.id, description="a cat")
    second = make_media(account, status_id=status.id)

    edit = EditHistoryService.snapshot(session, status)

    assert edit.ordered_media_attachment_ids == [first.id, second.id]
    assert edit.media_descriptions == ["a cat", None]
    assert edit.spoiler_text == "cw"
    assert edit.sensitive is True
    assert edit.poll_options is None

    other = make_status(account, text="with poll")
    make_poll(other, options=["a", "b"])
    assert EditHistoryService.snapshot(session, other).poll_options == ["a", "b"]


def test_append_edit(session, account, make_status):
    status = make_status(account, text="A")
    EditHistoryService.seed_baseline(session, status)

    status.text = "B"
    edit = EditHistoryService.append_edit(session, status, account.id, media_attachments_changed=True)
    session.commit()

    history = EditHistoryService.history(session, status.id)
    assert [e.text for e in history] == ["A", "B"]
    assert history[-1].id == edit.id
    assert edit.account_id == account.id
    assert edit.media_attachments_changed is True
    assert EditHistoryService.has_history(session, status)


def test_persisted_snapshot_cannot_be_modified(session, account, make_status):
    status = make_status(account)
    edit = EditHistoryService.seed_baseline(session, status)
    session.commit()

    edit.text = "rewritten"
    with pytest.raises(SnapshotImmutableError):
        session.flush()


def test_persisted_snapshot_cannot_be_deleted(session, account, make_status):
    status = make_status(account)
    edit = EditHistoryService.seed_baseline(session, status)
    session.commit()

    session.delete(edit)
    with pytest.raises(SnapshotImmutableError) as exc:
        session.flush()
    assert exc.value.code == "snapshot_immutable"
