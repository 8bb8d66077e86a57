"""The client context: every long-lived component, built once and passed around.

Lifecycle: construct, ``startup()`` once (loads plugins), run the owner and
the event pump, ``close()`` at exit. Nothing here is module-global.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncIterable, Callable, List, Optional, Tuple

from .actions import ActionDispatcher
from .config import API_BASE, PLUGINS_DIR, Config
from .models import Channel, Message
from .navigation import NavigationStateMachine
from .owner import MutationOwner
from .permissions import PermissionEvaluator
from .plugins import PluginRegistry
from .rest import RestClient
from .surface import ProxySurface
from .sync import GatewaySynchronizer
from .tree import TreeModel

log = logging.getLogger(__name__)


class ClientContext:
    def __init__(
        self,
        config: Config,
        rest: Optional[RestClient] = None,
        plugins: Optional[PluginRegistry] = None,
    ) -> None:
        self.config = config
        self.tree = TreeModel()
        self.surface = ProxySurface()
        self.navigation = NavigationStateMachine(self.tree, self.surface)
        self.permissions = PermissionEvaluator(self.tree)
        self.sync = GatewaySynchronizer(
            self.tree,
            self.surface,
            self.navigation,
            self.permissions,
            emote_color=config.emote_color,
            snapshot=not config.is_bot,
        )
        self.owner = MutationOwner()
        self.rest = rest or RestClient(
            config.token,
            API_BASE,
            timeout_s=config.request_timeout_s,
            user_agent=config.user_agent,
        )
        self.plugins = plugins or PluginRegistry()
        self.actions = ActionDispatcher(self)
        self.notify: Callable[[str], None] = log.info
        self.channel_listeners: List[Callable[[int], None]] = []
        self._started = False

    def startup(self, plugins_dir: Path = PLUGINS_DIR) -> None:
        if self._started:
            raise RuntimeError("client context already started")
        self._started = True
        count = self.plugins.load(plugins_dir)
        log.info("%d plugin(s) loaded from %s", count, plugins_dir)

    def set_token(self, token: str) -> None:
        self.config.token = token
        self.rest.token = token
        self.sync.snapshot = not self.config.is_bot

    async def pump(self, source: AsyncIterable[Tuple[str, dict]]) -> None:
        """Forward every gateway event to the owner, in arrival order."""
        async for event_type, payload in source:
            self.owner.submit(self.sync.apply, event_type, payload)

    async def close(self) -> None:
        await self.owner.shutdown()
        await self.rest.close()
        self.plugins.close()

    # ── Lazy channel lists ────────────────────────────────────────────────────

    def load_channels(self, guild_id: int) -> None:
        self.owner.spawn(
            self.rest.fetch_guild_channels(guild_id),
            on_result=lambda channels: self._channels_loaded(guild_id, channels),
            on_error=lambda e: self.notify(f"Could not load channels: {e}"),
        )

    def _channels_loaded(self, guild_id: int, channels: List[Channel]) -> None:
        if guild_id not in self.tree.guilds:
            return
        self.tree.set_channels(guild_id, channels)
        for listener in self.channel_listeners:
            listener(guild_id)

    # ── Open channel ──────────────────────────────────────────────────────────

    def open_channel(self, channel_id: int) -> None:
        if channel_id == self.tree.open_channel_id:
            return
        self.tree.open_channel(channel_id)
        self.navigation.switch_channel()
        self.actions.cancel_reply()
        self.surface.reset([])
        self.reload_channel(channel_id)

    def reload_channel(self, channel_id: int) -> None:
        self.owner.spawn(
            self.rest.fetch_messages(channel_id, self.config.messages_limit),
            on_result=lambda messages: self._messages_loaded(channel_id, messages),
            on_error=lambda e: self.notify(f"Could not load messages: {e}"),
        )

    def _messages_loaded(self, channel_id: int, messages: List[Message]) -> None:
        if channel_id != self.tree.open_channel_id:
            return
        selected = self.navigation.selected
        # Keep live messages that arrived while the fetch was in flight.
        newest = messages[0].message_id if messages else 0
        live = [m for m in self.tree.messages if m.message_id > newest]
        self.tree.replace_messages(list(messages) + live)
        if selected is not None:
            self.navigation.revalidate(selected.message_id)
        self.sync.rerender()
        if not self.surface.has_highlight:
            self.surface.scroll_to_latest()
