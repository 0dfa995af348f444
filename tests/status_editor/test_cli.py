import argparse

from status_editor.__main__ import build_options
from status_editor.schemas import UpdateStatusOptions


def _args(**overrides):
    values = dict(
        text="hello",
        spoiler_text=None,
        sensitive=False,
        language=None,
        media_ids=None,
        poll_options=None,
        poll_expires_in=None,
        poll_multiple=False,
        poll_hide_totals=False,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


def test_build_options_without_poll():
    options = UpdateStatusOptions.coerce(build_options(_args(media_ids=[1, 2])))

    assert options.text == "hello"
    assert options.media_ids == [1, 2]
    assert options.poll is None


def test_build_options_with_poll():
    options = UpdateStatusOptions.coerce(
        build_options(_args(poll_options=["a", "b"], poll_expires_in=600, poll_multiple=True))
    )

    assert options.poll.options == ["a", "b"]
    assert options.poll.expires_in == 600
    assert options.poll.multiple is True
    assert options.poll.hide_totals is False
