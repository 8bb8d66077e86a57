"""Modal dialogs for the guildterm TUI."""
from __future__ import annotations

from typing import List, Optional

from rich.markup import escape as markup_escape
from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, OptionList
from textual.widgets.option_list import Option

from guildterm.actions import Action


class ActionsModal(ModalScreen[Optional[str]]):
    """Pop-up list of the actions available for the selected message.

    Dismisses with the chosen action's key, or ``None`` on Escape.
    """

    BINDINGS = [Binding("escape", "cancel", "Close")]

    DEFAULT_CSS = """
    ActionsModal {
        align: center middle;
    }
    #actions-box {
        width: 48;
        height: auto;
        border: solid $primary;
        padding: 1 2;
        background: $surface;
    }
    #actions-title {
        text-style: bold;
        margin-bottom: 1;
    }
    #actions-list {
        height: auto;
        max-height: 14;
    }
    #actions-hint {
        color: $text-muted;
        margin-top: 1;
    }
    """

    def __init__(self, actions: List[Action], **kwargs) -> None:
        super().__init__(**kwargs)
        self._actions = actions

    def compose(self) -> ComposeResult:
        with Vertical(id="actions-box"):
            yield Label("Message actions", id="actions-title")
            yield OptionList(
                *[
                    Option(f"[bold]{markup_escape(a.key)}[/bold]  {markup_escape(a.label)}", id=a.key)
                    for a in self._actions
                ],
                id="actions-list",
            )
            yield Label("Press a key or Enter · Esc to close", id="actions-hint")

    def on_mount(self) -> None:
        self.query_one("#actions-list", OptionList).focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option.id)

    def on_key(self, event: events.Key) -> None:
        for action in self._actions:
            if event.character == action.key:
                event.stop()
                self.dismiss(action.key)
                return

    def action_cancel(self) -> None:
        self.dismiss(None)
