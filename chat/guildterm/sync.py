"""Apply the ordered gateway event stream to the tree model.

Each event is parsed in full before anything is mutated, so a malformed
payload is dropped without leaving a half-applied change behind. Dropped
events are logged at DEBUG and never retried.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import Guild, parse_guild, parse_message, snowflake
from .navigation import NavigationStateMachine
from .permissions import GuildAccess, PermissionEvaluator
from .surface import RenderSurface, format_message, render_lines
from .tree import TreeModel

log = logging.getLogger(__name__)

PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def _guild_name(payload: Dict[str, Any]) -> str:
    name = payload.get("name")
    if name is None:
        name = (payload.get("properties") or {}).get("name", "")
    return str(name)


def _member_roles(members: Any, user_id: Optional[int]) -> Optional[List[int]]:
    if user_id is None or not members:
        return None
    for member in members:
        member_user = member.get("user") or {}
        raw_id = member_user.get("id", member.get("user_id"))
        if raw_id is not None and snowflake(raw_id) == user_id:
            return [snowflake(r) for r in member.get("roles") or []]
    return None


def parse_guild_access(
    payload: Dict[str, Any],
    user_id: Optional[int],
    members: Any = None,
) -> Optional[GuildAccess]:
    roles = payload.get("roles")
    owner_id = payload.get("owner_id")
    if roles is None or owner_id is None:
        return None
    member_roles = _member_roles(members if members is not None else payload.get("members"), user_id)
    return GuildAccess(
        owner_id=snowflake(owner_id),
        role_permissions={snowflake(r["id"]): int(r.get("permissions", 0) or 0) for r in roles},
        member_roles=member_roles or [],
    )


class GatewaySynchronizer:
    def __init__(
        self,
        tree: TreeModel,
        surface: RenderSurface,
        navigation: NavigationStateMachine,
        permissions: PermissionEvaluator,
        emote_color: str = "green",
        snapshot: bool = True,
    ) -> None:
        self.tree = tree
        self.surface = surface
        self.navigation = navigation
        self.permissions = permissions
        self.emote_color = emote_color
        # True for accounts whose READY carries the whole guild list.
        self.snapshot = snapshot
        self.listeners: List[Callable[[str], None]] = []
        self._handlers: Dict[str, Callable[[Dict[str, Any]], bool]] = {
            "READY": self._on_ready,
            "GUILD_CREATE": self._on_guild_create,
            "GUILD_UPDATE": self._on_guild_update,
            "GUILD_DELETE": self._on_guild_delete,
            "MESSAGE_CREATE": self._on_message_create,
            "MESSAGE_DELETE": self._on_message_delete,
        }

    def apply(self, event_type: str, payload: Any) -> bool:
        """Apply one event. Returns True when local state changed."""
        handler = self._handlers.get(event_type)
        if handler is None:
            return False
        try:
            if not isinstance(payload, dict):
                raise TypeError(f"payload is {type(payload).__name__}, expected object")
            changed = handler(payload)
        except PAYLOAD_ERRORS as e:
            log.debug("dropped %s event: %s: %s", event_type, type(e).__name__, e)
            return False
        if changed:
            for listener in self.listeners:
                listener(event_type)
        return changed

    # ── Guilds ────────────────────────────────────────────────────────────────

    def _on_ready(self, payload: Dict[str, Any]) -> bool:
        user_id = snowflake(payload["user"]["id"])
        if not self.snapshot:
            self.permissions.user_id = user_id
            return False

        raw_guilds = payload.get("guilds") or []
        merged = payload.get("merged_members")
        guilds: Dict[int, Guild] = {}
        order: List[int] = []
        access: Dict[int, GuildAccess] = {}
        for i, raw in enumerate(raw_guilds):
            guild = Guild(guild_id=snowflake(raw["id"]), name=_guild_name(raw))
            guilds[guild.guild_id] = guild
            order.append(guild.guild_id)
            members = merged[i] if merged and i < len(merged) else None
            guild_access = parse_guild_access(raw, user_id, members)
            if guild_access is not None:
                access[guild.guild_id] = guild_access

        settings = payload.get("user_settings") or {}
        raw_folders = settings.get("guild_folders")
        # (folder name, color, guild ids) or (None, None, [guild id]) for loose guilds
        plan: List[Tuple[Optional[str], Optional[int], List[int]]] = []
        if raw_folders is None:
            plan = [(None, None, [gid]) for gid in order]
        else:
            for folder in raw_folders:
                ids = [snowflake(g) for g in folder.get("guild_ids") or []]
                folder_id = folder.get("id")
                if not folder_id:
                    plan.extend((None, None, [gid]) for gid in ids)
                else:
                    color = folder.get("color")
                    plan.append((str(folder.get("name") or ""), int(color) if color is not None else None, ids))

        self.tree.reset()
        self.navigation.switch_channel()
        self.permissions.user_id = user_id
        self.permissions.access = access
        for name, color, ids in plan:
            parent = self.tree.add_folder(name, color) if name is not None else None
            for gid in ids:
                guild = guilds.get(gid)
                if guild is None:
                    log.debug("folder references unknown guild %s", gid)
                    continue
                self.tree.insert_guild(guild, parent)
        return True

    def _on_guild_create(self, payload: Dict[str, Any]) -> bool:
        if payload.get("unavailable"):
            return False
        guild = parse_guild(payload)
        guild.name = _guild_name(payload)
        guild_access = parse_guild_access(payload, self.permissions.user_id)
        if guild_access is not None:
            self.permissions.set_guild_access(guild.guild_id, guild_access)
        return self.tree.insert_guild(guild)

    def _on_guild_update(self, payload: Dict[str, Any]) -> bool:
        guild_id = snowflake(payload["id"])
        name = _guild_name(payload)
        if not name:
            return False
        return self.tree.rename_guild(guild_id, name)

    def _on_guild_delete(self, payload: Dict[str, Any]) -> bool:
        guild_id = snowflake(payload["id"])
        open_before = self.tree.open_channel_id
        removed = self.tree.remove_guild(guild_id)
        if removed:
            self.permissions.forget_guild(guild_id)
            if self.tree.open_channel_id != open_before:
                self.navigation.switch_channel()
                self.surface.reset([])
        return removed

    # ── Messages ──────────────────────────────────────────────────────────────

    def _on_message_create(self, payload: Dict[str, Any]) -> bool:
        message = parse_message(payload)
        if message.channel_id != self.tree.open_channel_id:
            return False
        index = self.tree.insert_message(message)
        if index < 0:
            return False
        self.navigation.on_inserted(index)
        if index == 0:
            replied = None
            if message.reply_to is not None:
                _, replied = self.tree.find_message(message.reply_to)
            self.surface.append_line(message.message_id, format_message(message, self.emote_color, replied))
        else:
            self.rerender()
        if not self.surface.has_highlight:
            self.surface.scroll_to_latest()
        return True

    def _on_message_delete(self, payload: Dict[str, Any]) -> bool:
        message_id = snowflake(payload["id"])
        channel_id = snowflake(payload["channel_id"])
        selected = self.navigation.selected
        if not self.tree.remove_message(channel_id, message_id):
            return False
        if selected is not None:
            self.navigation.revalidate(selected.message_id)
        self.rerender()
        return True

    def rerender(self) -> None:
        self.surface.reset(render_lines(self.tree, self.emote_color))
        selected = self.navigation.selected
        if selected is not None:
            self.surface.highlight(selected.message_id)
