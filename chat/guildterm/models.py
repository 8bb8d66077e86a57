from __future__ import annotations

import dataclasses
from typing import Any, Dict, List, Optional


def snowflake(value: Any) -> int:
    """Parse a service identifier (sent as a decimal string) into an int."""
    if isinstance(value, bool):
        raise TypeError("snowflake cannot be a bool")
    result = int(value)
    if result < 0:
        raise ValueError(f"negative snowflake: {value!r}")
    return result


@dataclasses.dataclass
class Guild:
    guild_id: int
    name: str


@dataclasses.dataclass
class PermissionOverwrite:
    target_id: int
    kind: int  # 0 = role, 1 = member
    allow: int = 0
    deny: int = 0


@dataclasses.dataclass
class Channel:
    channel_id: int
    guild_id: Optional[int]  # lookup only; the guild may already be gone
    name: str
    kind: int = 0
    position: int = 0
    overwrites: List[PermissionOverwrite] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class Attachment:
    filename: str
    url: str
    size: int = 0


@dataclasses.dataclass(frozen=True)
class Message:
    message_id: int
    channel_id: int
    author_id: int
    author_tag: str
    content: str
    attachments: tuple = ()
    reply_to: Optional[int] = None  # referenced message id, may be outside the window


def author_tag(user: Dict[str, Any]) -> str:
    name = str(user["username"])
    discriminator = str(user.get("discriminator") or "0")
    if discriminator == "0":
        return name
    return f"{name}#{discriminator}"


def parse_guild(payload: Dict[str, Any]) -> Guild:
    return Guild(guild_id=snowflake(payload["id"]), name=str(payload.get("name") or ""))


def parse_attachment(payload: Dict[str, Any]) -> Attachment:
    return Attachment(
        filename=str(payload["filename"]),
        url=str(payload["url"]),
        size=int(payload.get("size", 0) or 0),
    )


def parse_message(payload: Dict[str, Any]) -> Message:
    reference = payload.get("message_reference") or {}
    if not isinstance(reference, dict):
        raise TypeError("message_reference must be an object")
    reply_to = reference.get("message_id")
    author = payload["author"]
    return Message(
        message_id=snowflake(payload["id"]),
        channel_id=snowflake(payload["channel_id"]),
        author_id=snowflake(author["id"]),
        author_tag=author_tag(author),
        content=str(payload.get("content") or ""),
        attachments=tuple(parse_attachment(a) for a in payload.get("attachments") or []),
        reply_to=snowflake(reply_to) if reply_to is not None else None,
    )


def parse_overwrite(payload: Dict[str, Any]) -> PermissionOverwrite:
    return PermissionOverwrite(
        target_id=snowflake(payload["id"]),
        kind=int(payload.get("type", 0)),
        allow=int(payload.get("allow", 0) or 0),
        deny=int(payload.get("deny", 0) or 0),
    )


def parse_channel(payload: Dict[str, Any], guild_id: Optional[int] = None) -> Channel:
    raw_guild = payload.get("guild_id")
    return Channel(
        channel_id=snowflake(payload["id"]),
        guild_id=snowflake(raw_guild) if raw_guild is not None else guild_id,
        name=str(payload.get("name") or ""),
        kind=int(payload.get("type", 0) or 0),
        position=int(payload.get("position", 0) or 0),
        overwrites=[parse_overwrite(o) for o in payload.get("permission_overwrites") or []],
    )
