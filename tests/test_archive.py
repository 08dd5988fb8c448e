from datetime import datetime, timezone

import pytest
from tortoise import Tortoise

from relay.archive import NullArchive, TortoiseArchive
from relay.models import Message


@pytest.fixture
async def db():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["relay.models"]})
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


async def test_tortoise_archive_stores_messages(db) -> None:
    archive = TortoiseArchive()
    now = datetime.now(timezone.utc)
    archive.record("lobby", "alice", "hi", now)
    archive.record("lobby", "bob", "&lt;b&gt;", now)
    archive.record("other", "carol", "yo", now)
    await archive.drain()

    rows = await Message.filter(room="lobby").order_by("id")
    assert [(m.user, m.text) for m in rows] == [("alice", "hi"), ("bob", "&lt;b&gt;")]
    assert await Message.all().count() == 3


async def test_long_user_names_are_archived(db) -> None:
    archive = TortoiseArchive()
    name = "&lt;" * 200
    archive.record("lobby", name, "hi", datetime.now(timezone.utc))
    await archive.drain()

    row = await Message.get(room="lobby")
    assert row.user == name


async def test_null_archive_accepts_anything() -> None:
    archive = NullArchive()
    archive.record("lobby", "alice", "hi", datetime.now(timezone.utc))
    await archive.drain()
