from sqlalchemy import func, select

from status_editor.db.models import Account, Tag
from status_editor.services.metadata import (
    ProcessHashtagsService,
    ProcessMentionsService,
    extract_hashtags,
    extract_mentions,
)


def test_extract_hashtags():
    assert extract_hashtags("#One two #one #3 #x3 a#b https://e.com/#frag") == ["one", "x3"]
    assert extract_hashtags(None) == []


def test_extract_mentions():
    assert extract_mentions("@Bob hi @carol@Remote.Example and @bob again, mail@host") == [
        ("bob", None),
        ("carol", "remote.example"),
    ]


def test_hashtags_replace_existing_tags(session, account, make_status):
    status = make_status(account, text="#old")
    ProcessHashtagsService.call(session, status)
    session.commit()

    status.text = "#new and #old"
    status.spoiler_text = "#cw"
    ProcessHashtagsService.call(session, status)
    session.commit()

    assert sorted(tag.name for tag in status.tags) == ["cw", "new", "old"]
    assert session.execute(select(func.count()).select_from(Tag)).scalar_one() == 3


def test_mentions_resolve_local_accounts(session, account, other_account, make_status):
    status = make_status(account, text="@bob and @nobody")

    mentions = ProcessMentionsService.call(session, status)
    session.commit()

    assert [m.account_id for m in mentions] == [other_account.id]

    status.text = "no one"
    ProcessMentionsService.call(session, status)
    session.commit()

    assert status.mentions == []


def test_remote_mention_does_not_match_local_account(session, account, make_status):
    carol = Account(username="carol")
    session.add(carol)
    session.commit()
    status = make_status(account, text="hi @carol@remote.example")

    mentions = ProcessMentionsService.call(session, status)
    session.commit()

    assert mentions == []
    assert status.mentions == []

    status.text = "hi @carol@remote.example and @Carol"
    mentions = ProcessMentionsService.call(session, status)
    session.commit()

    assert [m.account_id for m in mentions] == [carol.id]
