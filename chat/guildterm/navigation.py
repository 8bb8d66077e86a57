"""Selection/highlight state over the open channel's message buffer.

Index 0 is the newest message and ``len(buffer) - 1`` the oldest, so
"previous" walks towards older messages.
"""
from __future__ import annotations

from .surface import RenderSurface
from .tree import TreeModel

UNSELECTED = -1


class NavigationStateMachine:
    def __init__(self, tree: TreeModel, surface: RenderSurface) -> None:
        self.tree = tree
        self.surface = surface
        self.selected_index = UNSELECTED
        self._channel_id = tree.open_channel_id

    @property
    def selected(self):
        self._sync_channel()
        if self.selected_index == UNSELECTED:
            return None
        return self.tree.messages[self.selected_index]

    def _sync_channel(self) -> int:
        """Clear the selection if the open channel changed; return buffer length."""
        if self.tree.open_channel_id != self._channel_id:
            self._channel_id = self.tree.open_channel_id
            self.clear()
        n = len(self.tree.messages)
        if self.selected_index >= n:
            self.clear()
        return n

    def _land(self, index: int) -> None:
        self.selected_index = index
        self.surface.highlight(self.tree.messages[index].message_id)
        self.surface.scroll_to_highlight()

    def select_previous(self) -> None:
        n = self._sync_channel()
        if n == 0:
            return
        if self.selected_index == UNSELECTED or self.selected_index == n - 1:
            self._land(0)
        else:
            self._land(self.selected_index + 1)

    def select_next(self) -> None:
        n = self._sync_channel()
        if n == 0:
            return
        if self.selected_index == UNSELECTED:
            self._land(0)
        elif self.selected_index == 0:
            self._land(n - 1)
        else:
            self._land(self.selected_index - 1)

    def select_first(self) -> None:
        n = self._sync_channel()
        if n:
            self._land(n - 1)

    def select_last(self) -> None:
        if self._sync_channel():
            self._land(0)

    def select_reply_of(self) -> bool:
        """Jump to the message the selected one replies to, if it is loaded."""
        message = self.selected
        if message is None or message.reply_to is None:
            return False
        index, _ = self.tree.find_message(message.reply_to)
        if index < 0:
            return False
        self._land(index)
        return True

    def clear(self) -> None:
        self.selected_index = UNSELECTED
        self.surface.clear_highlights()

    def switch_channel(self) -> None:
        """Forget the selection after the open channel was replaced."""
        self._channel_id = self.tree.open_channel_id
        self.clear()

    def on_inserted(self, index: int) -> None:
        """Keep the selection on the same message after an insert at *index*."""
        if self.selected_index != UNSELECTED and index <= self.selected_index:
            self.selected_index += 1

    def revalidate(self, message_id: int) -> None:
        """After a removal, keep the selection on *message_id* or drop it."""
        index, _ = self.tree.find_message(message_id)
        if index < 0:
            self.clear()
            return
        self.selected_index = index
        self.surface.highlight(message_id)
