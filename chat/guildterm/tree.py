"""In-memory mirror of the guild → channel → message hierarchy.

The model is written by exactly one owner (see ``guildterm.owner``) and read
by the navigation state machine, the action dispatcher and the TUI.
"""
from __future__ import annotations

import dataclasses
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .models import Channel, Guild, Message

DEFAULT_FOLDER_COLOR = "#ED4245"


@dataclasses.dataclass
class TreeNode:
    label: str
    kind: str = "root"  # root | folder | guild
    ref: Optional[int] = None
    color: Optional[str] = None
    children: List["TreeNode"] = dataclasses.field(default_factory=list)

    def add(self, child: "TreeNode") -> "TreeNode":
        self.children.append(child)
        return child

    def walk(self, parent: Optional["TreeNode"] = None) -> Iterator[Tuple["TreeNode", Optional["TreeNode"]]]:
        """Yield ``(node, parent)`` pairs depth-first, starting with self."""
        yield self, parent
        for child in list(self.children):
            yield from child.walk(self)


def folder_label(name: str, color: Optional[int]) -> Tuple[str, str]:
    label = name or "Folder"
    hex_color = f"#{color:06X}" if color is not None else DEFAULT_FOLDER_COLOR
    return label, hex_color


class TreeModel:
    def __init__(self) -> None:
        self.root = TreeNode("Guilds")
        self.guilds: Dict[int, Guild] = {}
        self.channels: Dict[int, List[Channel]] = {}  # guild_id -> channels by position
        self.open_channel_id: Optional[int] = None
        self.messages: List[Message] = []  # open channel only, newest first

    # ── Guilds ────────────────────────────────────────────────────────────────

    def find_guild_node(self, guild_id: int) -> Tuple[Optional[TreeNode], Optional[TreeNode]]:
        for node, parent in self.root.walk():
            if node.kind == "guild" and node.ref == guild_id:
                return node, parent
        return None, None

    def has_guild(self, guild_id: int) -> bool:
        return self.find_guild_node(guild_id)[0] is not None

    def guild_ids(self) -> List[int]:
        return [node.ref for node, _ in self.root.walk() if node.kind == "guild"]

    def insert_guild(self, guild: Guild, parent: Optional[TreeNode] = None) -> bool:
        """Add *guild* under *parent* (root by default). Returns False if present."""
        if self.has_guild(guild.guild_id):
            return False
        self.guilds[guild.guild_id] = guild
        (parent or self.root).add(TreeNode(guild.name, kind="guild", ref=guild.guild_id))
        return True

    def add_folder(self, name: str, color: Optional[int]) -> TreeNode:
        label, hex_color = folder_label(name, color)
        return self.root.add(TreeNode(label, kind="folder", color=hex_color))

    def remove_guild(self, guild_id: int) -> bool:
        node, parent = self.find_guild_node(guild_id)
        if node is None or parent is None:
            return False
        parent.children.remove(node)
        self.guilds.pop(guild_id, None)
        for channel in self.channels.pop(guild_id, []):
            if channel.channel_id == self.open_channel_id:
                self.close_channel()
        return True

    def rename_guild(self, guild_id: int, name: str) -> bool:
        node, _ = self.find_guild_node(guild_id)
        if node is None:
            return False
        node.label = name
        self.guilds[guild_id].name = name
        return True

    def reset(self) -> None:
        self.root.children.clear()
        self.guilds.clear()
        self.channels.clear()
        self.close_channel()

    # ── Channels ──────────────────────────────────────────────────────────────

    def set_channels(self, guild_id: int, channels: Sequence[Channel]) -> None:
        self.channels[guild_id] = sorted(channels, key=lambda c: (c.position, c.channel_id))

    def channels_for(self, guild_id: int) -> List[Channel]:
        return self.channels.get(guild_id, [])

    def channel(self, channel_id: int) -> Optional[Channel]:
        for channels in self.channels.values():
            for channel in channels:
                if channel.channel_id == channel_id:
                    return channel
        return None

    # ── Open channel buffer ───────────────────────────────────────────────────

    def open_channel(self, channel_id: int, messages: Sequence[Message] = ()) -> None:
        self.open_channel_id = channel_id
        self.messages = []
        self.replace_messages(messages)

    def close_channel(self) -> None:
        self.open_channel_id = None
        self.messages = []

    def replace_messages(self, messages: Sequence[Message]) -> None:
        unique = {m.message_id: m for m in messages if m.channel_id == self.open_channel_id}
        self.messages = sorted(unique.values(), key=lambda m: m.message_id, reverse=True)

    def insert_message(self, message: Message) -> int:
        """Insert into the open buffer keeping newest-first order.

        Returns the index used, or -1 when the message was not taken (other
        channel or duplicate identifier).
        """
        if message.channel_id != self.open_channel_id:
            return -1
        index = 0
        for index, existing in enumerate(self.messages):
            if existing.message_id == message.message_id:
                return -1
            if existing.message_id < message.message_id:
                break
        else:
            index = len(self.messages)
        self.messages.insert(index, message)
        return index

    def remove_message(self, channel_id: int, message_id: int) -> bool:
        if channel_id != self.open_channel_id:
            return False
        index, _ = self.find_message(message_id)
        if index < 0:
            return False
        del self.messages[index]
        return True

    def find_message(self, message_id: int) -> Tuple[int, Optional[Message]]:
        for index, message in enumerate(self.messages):
            if message.message_id == message_id:
                return index, message
        return -1, None
