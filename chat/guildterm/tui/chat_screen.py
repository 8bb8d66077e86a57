"""Guild sidebar, message view and composer."""
from __future__ import annotations

import asyncio
import contextlib
from typing import Optional, Set

from rich.markup import escape as markup_escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Input, Tree

from guildterm.config import GATEWAY_URL
from guildterm.context import ClientContext
from guildterm.gateway import GatewayConnection
from guildterm.rest import is_network_error
from guildterm.tree import TreeNode

from .message_log import MessageLog
from .modals import ActionsModal

TEXT_CHANNEL_KINDS = {0, 5}  # text, announcement


class ChatScreen(Screen):
    """Guild tree on the left, open channel and composer on the right."""

    BINDINGS = [
        Binding("ctrl+q", "app.quit", "Quit"),
        Binding("ctrl+g", "focus_guilds", "Guilds"),
        Binding("ctrl+l", "focus_messages", "Messages"),
        Binding("ctrl+e", "focus_input", "Compose"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    ChatScreen {
        layout: vertical;
    }
    #chat-body {
        height: 1fr;
    }
    #guild-tree {
        width: 28;
        border-right: solid $primary-darken-2;
        padding: 0 1;
    }
    #message-log {
        height: 1fr;
        padding: 0 1;
    }
    #message-input {
        dock: bottom;
        height: 3;
        border-top: solid $primary-darken-2;
    }
    """

    def __init__(self, ctx: ClientContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx
        self._expanded: Set[int] = set()
        self._owner_task: Optional[asyncio.Task] = None
        self._gateway_task: Optional[asyncio.Task] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="chat-body"):
            yield Tree("Guilds", id="guild-tree")
            with Vertical():
                yield MessageLog(id="message-log")
                yield Input(placeholder="Message...", id="message-input")
        yield Footer()

    async def on_mount(self) -> None:
        ctx = self.ctx
        ctx.surface.attach(self.query_one("#message-log", MessageLog))
        ctx.notify = self._log_system
        ctx.sync.listeners.append(self._on_synced)
        ctx.channel_listeners.append(self._on_channels_loaded)

        self._owner_task = asyncio.create_task(ctx.owner.run())
        self._gateway_task = asyncio.create_task(self._gateway_loop())

        self._refresh_sidebar()
        self.query_one("#guild-tree", Tree).focus()

    async def on_unmount(self) -> None:
        for task in (self._gateway_task, self._owner_task):
            if task:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        await self.ctx.close()

    # ── Gateway ───────────────────────────────────────────────────────────────

    async def _gateway_loop(self) -> None:
        connection = GatewayConnection(self.ctx.config.token, GATEWAY_URL, browser=self.ctx.config.user_agent)
        self._log_system("Connecting…")
        try:
            await self.ctx.pump(connection.events())
        except Exception as e:
            if not is_network_error(e):
                raise
            self._log_system(f"Gateway error: {type(e).__name__}: {e}")
            return
        self._log_system("Gateway connection closed.")

    def _on_synced(self, event_type: str) -> None:
        if event_type.startswith("GUILD_") or event_type == "READY":
            self._refresh_sidebar()

    # ── Sidebar ───────────────────────────────────────────────────────────────

    def _add_guild(self, parent, node: TreeNode) -> None:
        guild_id = node.ref
        guild_node = parent.add(markup_escape(node.label), data={"type": "guild", "id": guild_id})
        for channel in self.ctx.tree.channels_for(guild_id):
            if channel.kind not in TEXT_CHANNEL_KINDS:
                continue
            active = channel.channel_id == self.ctx.tree.open_channel_id
            label = f"#{markup_escape(channel.name)}" + (" <" if active else "")
            guild_node.add_leaf(label, data={"type": "channel", "id": channel.channel_id, "guild": guild_id})
        if guild_id in self._expanded:
            guild_node.expand()

    def _refresh_sidebar(self) -> None:
        tree = self.query_one("#guild-tree", Tree)
        tree.clear()
        for node in self.ctx.tree.root.children:
            if node.kind == "folder":
                label = f"[{node.color}]{markup_escape(node.label)}[/]"
                folder = tree.root.add(label, data={"type": "folder"}, expand=True)
                for child in node.children:
                    self._add_guild(folder, child)
            else:
                self._add_guild(tree.root, node)
        tree.root.expand()
        self._update_title()

    def _on_channels_loaded(self, guild_id: int) -> None:
        self._expanded.add(guild_id)
        self._refresh_sidebar()

    def _update_title(self) -> None:
        channel = None
        if self.ctx.tree.open_channel_id is not None:
            channel = self.ctx.tree.channel(self.ctx.tree.open_channel_id)
        if channel is None:
            self.title = "guildterm"
            return
        guild = self.ctx.tree.guilds.get(channel.guild_id) if channel.guild_id else None
        where = guild.name if guild else "direct"
        self.title = f"guildterm  {where} | #{channel.name}"

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        data = event.node.data
        if not data or data.get("type") != "guild":
            return
        guild_id = data["id"]
        self._expanded.add(guild_id)
        if guild_id not in self.ctx.tree.channels:
            self.ctx.owner.submit(self.ctx.load_channels, guild_id)

    def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        data = event.node.data
        if data and data.get("type") == "guild":
            self._expanded.discard(data["id"])

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        data = event.node.data
        if not data or data.get("type") != "channel":
            return
        self.ctx.owner.submit(self._open_channel, data["id"])
        self.query_one("#message-log", MessageLog).focus()

    def _open_channel(self, channel_id: int) -> None:
        self.ctx.open_channel(channel_id)
        self._refresh_sidebar()
        self._update_input()

    # ── Message log ───────────────────────────────────────────────────────────

    def _log_system(self, msg: str) -> None:
        self.query_one("#message-log", MessageLog).write(f"[dim italic]  {markup_escape(msg)}[/dim italic]")

    def navigate(self, transition: str) -> None:
        self.ctx.owner.submit(getattr(self.ctx.navigation, transition))

    def open_actions(self) -> None:
        message = self.ctx.navigation.selected
        if message is None:
            return
        actions = self.ctx.actions.build_actions(message)

        def _chosen(key: Optional[str]) -> None:
            for action in actions:
                if action.key == key:
                    self.ctx.owner.submit(self._run_action, action)
                    return

        self.app.push_screen(ActionsModal(actions), _chosen)

    def _run_action(self, action) -> None:
        action.run()
        self._update_input()
        if self.ctx.actions.pending_reply is not None:
            self.query_one("#message-input", Input).focus()

    # ── Input handling ────────────────────────────────────────────────────────

    def _update_input(self) -> None:
        pending = self.ctx.actions.pending_reply
        field = self.query_one("#message-input", Input)
        field.placeholder = f"{pending.title}..." if pending else "Message..."

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        self.query_one("#message-input", Input).value = ""
        if not text:
            return
        self.ctx.owner.submit(self._send_message, text)

    def _send_message(self, text: str) -> None:
        if not self.ctx.actions.send_message(text):
            self._log_system("Open a channel first.")
        self._update_input()

    # ── Actions ───────────────────────────────────────────────────────────────

    def action_focus_guilds(self) -> None:
        self.query_one("#guild-tree", Tree).focus()

    def action_focus_messages(self) -> None:
        self.query_one("#message-log", MessageLog).focus()

    def action_focus_input(self) -> None:
        self.query_one("#message-input", Input).focus()

    def action_cancel(self) -> None:
        self.query_one("#message-input", Input).value = ""

        def _cancel() -> None:
            self.ctx.actions.cancel_reply()
            self.ctx.navigation.clear()
            self._update_input()

        self.ctx.owner.submit(_cancel)
