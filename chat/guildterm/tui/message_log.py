"""Message list widget: a RichLog with addressable, highlightable regions."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from rich.errors import MarkupError
from rich.text import Text
from textual.binding import Binding
from textual.widgets import RichLog

log = logging.getLogger(__name__)


class MessageLog(RichLog):
    """Renders the open channel oldest-first; one region per message id."""

    BINDINGS = [
        Binding("up,k", "select_previous", "Older", show=False),
        Binding("down,j", "select_next", "Newer", show=False),
        Binding("home,g", "select_first", "Oldest", show=False),
        Binding("end,G", "select_last", "Newest", show=False),
        Binding("enter", "open_actions", "Actions"),
        Binding("escape", "clear_selection", "Clear", show=False),
    ]

    can_focus = True

    def __init__(self, **kwargs) -> None:
        super().__init__(markup=True, wrap=True, auto_scroll=False, highlight=False, **kwargs)
        self._entries: List[Tuple[int, str]] = []
        self._offsets: Dict[int, int] = {}
        self._highlighted: Optional[int] = None

    # ── Render surface ────────────────────────────────────────────────────────

    @property
    def has_highlight(self) -> bool:
        return self._highlighted is not None

    def _write_entry(self, message_id: int, text: str) -> None:
        self._offsets[message_id] = len(self.lines)
        if message_id == self._highlighted:
            text = f"[reverse]{text}[/reverse]"
        try:
            renderable = Text.from_markup(text)
        except MarkupError as e:
            log.warning("message %s has unparsable markup: %s", message_id, e)
            renderable = Text(text)
        self.write(renderable)

    def _redraw(self) -> None:
        self.clear()
        self._offsets = {}
        for message_id, text in self._entries:
            self._write_entry(message_id, text)

    def append_line(self, message_id: int, text: str) -> None:
        self._entries.append((message_id, text))
        self._write_entry(message_id, text)

    def reset(self, lines: Sequence[Tuple[int, str]]) -> None:
        self._entries = list(lines)
        self._highlighted = None
        self._redraw()

    def highlight(self, message_id: int) -> None:
        self._highlighted = message_id
        self._redraw()

    def scroll_to_highlight(self) -> None:
        if self._highlighted is None:
            return
        y = self._offsets.get(self._highlighted)
        if y is not None:
            self.scroll_to(y=y, animate=False)

    def clear_highlights(self) -> None:
        if self._highlighted is None:
            return
        self._highlighted = None
        self._redraw()

    def scroll_to_latest(self) -> None:
        self.scroll_end(animate=False)

    # ── Key actions, forwarded to the screen ──────────────────────────────────

    def action_select_previous(self) -> None:
        self.screen.navigate("select_previous")

    def action_select_next(self) -> None:
        self.screen.navigate("select_next")

    def action_select_first(self) -> None:
        self.screen.navigate("select_first")

    def action_select_last(self) -> None:
        self.screen.navigate("select_last")

    def action_clear_selection(self) -> None:
        self.screen.navigate("clear")

    def action_open_actions(self) -> None:
        self.screen.open_actions()
