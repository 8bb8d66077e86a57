from __future__ import annotations

import dataclasses
import enum
from typing import Dict, List, Optional

from .tree import TreeModel


class Permission(enum.IntFlag):
    ADMINISTRATOR = 1 << 3
    VIEW_CHANNEL = 1 << 10
    SEND_MESSAGES = 1 << 11
    MANAGE_MESSAGES = 1 << 13
    READ_MESSAGE_HISTORY = 1 << 16


ALL_PERMISSIONS = (1 << 53) - 1

# Granted when the guild's role data has not been seen (DMs, lazy guilds).
FALLBACK_PERMISSIONS = Permission.VIEW_CHANNEL | Permission.SEND_MESSAGES | Permission.READ_MESSAGE_HISTORY


@dataclasses.dataclass
class GuildAccess:
    owner_id: int
    role_permissions: Dict[int, int]  # role_id -> permission bits; @everyone has the guild's id
    member_roles: List[int]


class PermissionEvaluator:
    """Answers capability checks for the client user in a channel."""

    def __init__(self, tree: TreeModel) -> None:
        self.tree = tree
        self.user_id: Optional[int] = None
        self.access: Dict[int, GuildAccess] = {}

    def set_guild_access(self, guild_id: int, access: GuildAccess) -> None:
        self.access[guild_id] = access

    def forget_guild(self, guild_id: int) -> None:
        self.access.pop(guild_id, None)

    def permissions_for(self, channel_id: int) -> int:
        channel = self.tree.channel(channel_id)
        if channel is None or channel.guild_id is None:
            return int(FALLBACK_PERMISSIONS)
        access = self.access.get(channel.guild_id)
        if access is None or self.user_id is None:
            return int(FALLBACK_PERMISSIONS)
        if access.owner_id == self.user_id:
            return ALL_PERMISSIONS

        guild_id = channel.guild_id
        perms = access.role_permissions.get(guild_id, 0)
        for role_id in access.member_roles:
            perms |= access.role_permissions.get(role_id, 0)
        if perms & Permission.ADMINISTRATOR:
            return ALL_PERMISSIONS

        # Overwrites apply @everyone, then roles combined, then the member.
        role_allow = role_deny = 0
        member_overwrite = None
        for overwrite in channel.overwrites:
            if overwrite.kind == 0 and overwrite.target_id == guild_id:
                perms = (perms & ~overwrite.deny) | overwrite.allow
            elif overwrite.kind == 0 and overwrite.target_id in access.member_roles:
                role_allow |= overwrite.allow
                role_deny |= overwrite.deny
            elif overwrite.kind == 1 and overwrite.target_id == self.user_id:
                member_overwrite = overwrite
        perms = (perms & ~role_deny) | role_allow
        if member_overwrite is not None:
            perms = (perms & ~member_overwrite.deny) | member_overwrite.allow
        return perms

    def check(self, channel_id: int, capability: Permission) -> bool:
        return bool(self.permissions_for(channel_id) & capability)
