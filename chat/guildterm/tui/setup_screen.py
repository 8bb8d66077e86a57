"""First-run screen: ask for an account token."""
from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Input, Label, RadioButton, RadioSet

from guildterm.config import CONFIG_FILE, save_config
from guildterm.context import ClientContext

BOT_PREFIX = "Bot "


class SetupScreen(Screen):
    """Paste a user or bot token; it is saved to the config file."""

    DEFAULT_CSS = """
    SetupScreen {
        align: center middle;
    }
    #token-box {
        width: 70;
        height: auto;
        border: round $accent;
        padding: 1 2;
    }
    #token-title {
        width: 100%;
        content-align: center middle;
        text-style: bold;
    }
    #account-kind {
        width: 100%;
        margin: 1 0;
    }
    #token-hint {
        color: $text-muted;
    }
    #token-error {
        color: $error;
        height: 1;
    }
    #btn-connect {
        width: 100%;
    }
    """

    def __init__(self, ctx: ClientContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.ctx = ctx

    def compose(self) -> ComposeResult:
        with Vertical(id="token-box"):
            yield Label("guildterm", id="token-title")
            with RadioSet(id="account-kind"):
                yield RadioButton("User account", id="kind-user", value=True)
                yield RadioButton("Bot account", id="kind-bot")
            yield Input(placeholder="token", password=True, id="input-token")
            yield Label(f"Saved to {CONFIG_FILE}", id="token-hint")
            yield Label("", id="token-error")
            yield Button("Connect", id="btn-connect", variant="success")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#input-token", Input).focus()

    @property
    def _is_bot(self) -> bool:
        return self.query_one("#kind-bot", RadioButton).value

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-connect":
            await self._connect()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        await self._connect()

    async def _connect(self) -> None:
        # Local import breaks the setup_screen ↔ chat_screen circular dependency.
        from .chat_screen import ChatScreen

        error = self.query_one("#token-error", Label)
        token = self.query_one("#input-token", Input).value.strip()
        if token.startswith(BOT_PREFIX):
            token = token[len(BOT_PREFIX):].strip()
        if not token:
            error.update("A token is required.")
            return

        self.ctx.set_token(BOT_PREFIX + token if self._is_bot else token)
        try:
            save_config(self.ctx.config)
        except OSError as e:
            error.update(f"Could not save config: {e}")
            return
        await self.app.switch_screen(ChatScreen(self.ctx))
