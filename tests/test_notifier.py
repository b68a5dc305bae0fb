import asyncio

import pytest

from color_relay.notifier import Notifier


@pytest.mark.asyncio
async def test_newest_message_first():
    n = Notifier(ttl=60)
    n.notify("first")
    n.notify("second", "ok")
    n.notify("third", "error")
    assert [(m.text, m.kind) for m in n.messages()] == [
        ("third", "error"),
        ("second", "ok"),
        ("first", "info"),
    ]


@pytest.mark.asyncio
async def test_messages_expire_independently():
    n = Notifier(ttl=0.3)
    n.notify("old")
    await asyncio.sleep(0.15)
    n.notify("new")
    await asyncio.sleep(0.2)
    assert [m.text for m in n.messages()] == ["new"]
    await asyncio.sleep(0.2)
    assert n.messages() == []


@pytest.mark.asyncio
async def test_duplicates_are_kept():
    n = Notifier(ttl=60)
    n.notify("same")
    n.notify("same")
    assert len(n.messages()) == 2


@pytest.mark.asyncio
async def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        Notifier().notify("x", "warning")
