from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .models import Channel, Message, parse_channel, parse_message

log = logging.getLogger(__name__)


class RemoteError(Exception):
    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(f"HTTP {status}: {message}" if message else f"HTTP {status}")
        self.status = status


def is_network_error(exc: BaseException) -> bool:
    return isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError, RemoteError, OSError))


class RestClient:
    """Request/response operations against the chat service's HTTP API."""

    def __init__(
        self,
        token: str,
        api_base: str,
        timeout_s: float = 30.0,
        user_agent: str = "guildterm",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._user_agent = user_agent
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _api_request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        headers = {"User-Agent": self._user_agent}
        if self.token:
            headers["Authorization"] = self.token
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body, separators=(",", ":"))
        url = f"{self.api_base}{path}"
        async with self._get_session().request(method, url, data=data, headers=headers) as resp:
            payload = await resp.text()
            if resp.status >= 400:
                raise RemoteError(resp.status, payload[:200])
            if not payload:
                return None
            return json.loads(payload)

    async def fetch_messages(self, channel_id: int, limit: int = 50) -> List[Message]:
        """Latest messages of a channel, newest first."""
        data = await self._api_request("GET", f"/channels/{channel_id}/messages?limit={limit}")
        messages = []
        for raw in data or []:
            try:
                messages.append(parse_message(raw))
            except (KeyError, TypeError, ValueError) as e:
                log.debug("skipping malformed message in channel %s: %s", channel_id, e)
        messages.sort(key=lambda m: m.message_id, reverse=True)
        return messages

    async def fetch_guild_channels(self, guild_id: int) -> List[Channel]:
        data = await self._api_request("GET", f"/guilds/{guild_id}/channels")
        channels = []
        for raw in data or []:
            try:
                channels.append(parse_channel(raw, guild_id))
            except (KeyError, TypeError, ValueError) as e:
                log.debug("skipping malformed channel in guild %s: %s", guild_id, e)
        return channels

    async def send_message(
        self,
        channel_id: int,
        content: str,
        reply_to: Optional[int] = None,
        mention_replied: bool = False,
    ) -> Optional[Message]:
        body: Dict[str, Any] = {"content": content}
        if reply_to is not None:
            body["message_reference"] = {"message_id": str(reply_to), "channel_id": str(channel_id)}
            body["allowed_mentions"] = {"replied_user": mention_replied}
        data = await self._api_request("POST", f"/channels/{channel_id}/messages", body)
        return parse_message(data) if data else None

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        await self._api_request("DELETE", f"/channels/{channel_id}/messages/{message_id}")

    async def fetch_bytes(self, url: str) -> bytes:
        async with self._get_session().get(url) as resp:
            if resp.status >= 400:
                raise RemoteError(resp.status, url)
            return await resp.read()
