"""Minimal gateway reader: yields ``(event_type, payload)`` dispatches in order.

Only the happy path is covered (HELLO, IDENTIFY, heartbeats, DISPATCH). A
reconnect request, an invalid session or a closed socket ends the stream;
there is no resume and no replay of missed events.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sys
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import aiohttp

log = logging.getLogger(__name__)

OP_DISPATCH = 0
OP_HEARTBEAT = 1
OP_IDENTIFY = 2
OP_RECONNECT = 7
OP_INVALID_SESSION = 9
OP_HELLO = 10
OP_HEARTBEAT_ACK = 11

INTENT_GUILDS = 1 << 0
INTENT_GUILD_MESSAGES = 1 << 9
INTENT_MESSAGE_CONTENT = 1 << 15
BOT_INTENTS = INTENT_GUILDS | INTENT_GUILD_MESSAGES | INTENT_MESSAGE_CONTENT


class GatewayConnection:
    def __init__(
        self,
        token: str,
        url: str,
        browser: str = "guildterm",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.token = token
        self.url = url
        self.browser = browser
        self.seq: Optional[int] = None
        self._session = session

    def identify_payload(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "token": self.token,
            "properties": {"os": sys.platform, "browser": self.browser, "device": ""},
            "compress": False,
        }
        if self.token.startswith("Bot "):
            data["token"] = self.token[len("Bot "):]
            data["intents"] = BOT_INTENTS
        return {"op": OP_IDENTIFY, "d": data}

    async def _heartbeat(self, ws: aiohttp.ClientWebSocketResponse, interval_s: float) -> None:
        while not ws.closed:
            await asyncio.sleep(interval_s)
            await ws.send_json({"op": OP_HEARTBEAT, "d": self.seq})

    async def events(self) -> AsyncIterator[Tuple[str, Dict[str, Any]]]:
        own_session = self._session is None
        session = self._session or aiohttp.ClientSession()
        try:
            async with session.ws_connect(self.url, max_msg_size=0) as ws:
                hello = await ws.receive_json()
                if not isinstance(hello, dict) or hello.get("op") != OP_HELLO:
                    raise ConnectionError(f"expected HELLO, got {hello!r:.80}")
                interval_s = float(hello["d"]["heartbeat_interval"]) / 1000.0
                heartbeat = asyncio.create_task(self._heartbeat(ws, interval_s))
                try:
                    await ws.send_json(self.identify_payload())
                    async for msg in ws:
                        if msg.type != aiohttp.WSMsgType.TEXT:
                            break
                        try:
                            frame = json.loads(msg.data)
                        except json.JSONDecodeError:
                            log.debug("ignoring non-JSON gateway frame")
                            continue
                        if not isinstance(frame, dict):
                            log.debug("ignoring gateway frame of type %s", type(frame).__name__)
                            continue
                        op = frame.get("op")
                        if frame.get("s") is not None:
                            self.seq = frame["s"]
                        if op == OP_DISPATCH:
                            yield str(frame.get("t")), frame.get("d")
                        elif op == OP_HEARTBEAT:
                            await ws.send_json({"op": OP_HEARTBEAT, "d": self.seq})
                        elif op in (OP_RECONNECT, OP_INVALID_SESSION):
                            log.warning("gateway asked to reconnect (op %s); stream ends", op)
                            break
                finally:
                    heartbeat.cancel()
                    with contextlib.suppress(asyncio.CancelledError, ConnectionError):
                        await heartbeat
        finally:
            if own_session:
                await session.close()
