from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest
from rich.text import Text

from guildterm.config import Config
from guildterm.context import ClientContext
from guildterm.models import parse_message
from guildterm.surface import NullSurface

OPEN_CHANNEL = 10
OTHER_CHANNEL = 20
ME = 1000


class RecordingSurface(NullSurface):
    """Records calls and parses every line the way the message view does."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[tuple] = []
        self.plain: dict = {}

    def _parse(self, message_id, text):
        # Raises MarkupError on anything the view could not display.
        self.plain[message_id] = Text.from_markup(text).plain

    def append_line(self, message_id, text):
        self._parse(message_id, text)
        self.calls.append(("append_line", message_id))

    def reset(self, lines):
        super().reset(lines)
        self.plain = {}
        for message_id, text in lines:
            self._parse(message_id, text)
        self.calls.append(("reset", [mid for mid, _ in lines]))

    def highlight(self, message_id):
        super().highlight(message_id)
        self.calls.append(("highlight", message_id))

    def scroll_to_highlight(self):
        self.calls.append(("scroll_to_highlight",))

    def clear_highlights(self):
        super().clear_highlights()
        self.calls.append(("clear_highlights",))

    def scroll_to_latest(self):
        self.calls.append(("scroll_to_latest",))

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]


class FakeRest:
    """Stands in for RestClient; records calls, optional gates and failures."""

    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.deleted: List[tuple] = []
        self.history: dict = {}
        self.files: dict = {}
        self.channels: dict = {}
        self.delete_gate: Optional[asyncio.Event] = None
        self.fail_delete: Optional[Exception] = None
        self.token = ""

    async def fetch_messages(self, channel_id, limit=50):
        msgs = sorted(self.history.get(channel_id, []), key=lambda m: m.message_id, reverse=True)
        return msgs[:limit]

    async def fetch_guild_channels(self, guild_id):
        return list(self.channels.get(guild_id, []))

    async def send_message(self, channel_id, content, reply_to=None, mention_replied=False):
        self.sent.append(
            {"channel_id": channel_id, "content": content, "reply_to": reply_to, "mention": mention_replied}
        )

    async def delete_message(self, channel_id, message_id):
        if self.delete_gate is not None:
            await self.delete_gate.wait()
        if self.fail_delete is not None:
            raise self.fail_delete
        self.deleted.append((channel_id, message_id))

    async def fetch_bytes(self, url):
        return self.files[url]

    async def close(self):
        pass


def message_payload(
    message_id,
    channel_id=OPEN_CHANNEL,
    author_id=1,
    content="hello",
    reply_to=None,
    attachments=(),
):
    payload = {
        "id": str(message_id),
        "channel_id": str(channel_id),
        "author": {"id": str(author_id), "username": f"user{author_id}", "discriminator": "0"},
        "content": content,
        "attachments": [dict(a) for a in attachments],
    }
    if reply_to is not None:
        payload["message_reference"] = {"message_id": str(reply_to), "channel_id": str(channel_id)}
    return payload


def make_message(message_id, **kwargs):
    return parse_message(message_payload(message_id, **kwargs))


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def rest() -> FakeRest:
    return FakeRest()


@pytest.fixture
def ctx(surface, rest, tmp_path) -> ClientContext:
    config = Config(
        token="user-token",
        downloads_dir=str(tmp_path / "downloads"),
        cache_dir=str(tmp_path / "cache"),
    )
    context = ClientContext(config, rest=rest)
    context.surface.attach(surface)
    context.notices = []
    context.notify = context.notices.append
    return context
