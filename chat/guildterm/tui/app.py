"""Top-level Textual application."""
from __future__ import annotations

from textual.app import App
from textual.binding import Binding

from guildterm.context import ClientContext

from .chat_screen import ChatScreen
from .setup_screen import SetupScreen


class GuildtermApp(App):
    """guildterm terminal UI application."""

    TITLE = "guildterm"
    BINDINGS = [Binding("ctrl+q", "quit", "Quit")]

    def __init__(self, ctx: ClientContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx

    def on_mount(self) -> None:
        if self.ctx.config.token:
            self.push_screen(ChatScreen(self.ctx))
        else:
            self.push_screen(SetupScreen(self.ctx))
