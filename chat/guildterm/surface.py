"""The render surface contract and the message-line formatter."""
from __future__ import annotations

from typing import Optional, Protocol, Sequence, Tuple

from rich.markup import escape as markup_escape

from .markup import translate
from .models import Message

# The chat service's default role colours; readable on dark and light themes.
_ROLE_COLORS = (
    "#1abc9c", "#2ecc71", "#3498db", "#9b59b6", "#e91e63",
    "#f1c40f", "#e67e22", "#e74c3c", "#95a5a6", "#607d8b",
)


class RenderSurface(Protocol):
    """What the core needs from the message view.

    Regions are addressed by message id; at most one is highlighted.
    """

    @property
    def has_highlight(self) -> bool: ...

    def append_line(self, message_id: int, text: str) -> None: ...

    def reset(self, lines: Sequence[Tuple[int, str]]) -> None: ...

    def highlight(self, message_id: int) -> None: ...

    def scroll_to_highlight(self) -> None: ...

    def clear_highlights(self) -> None: ...

    def scroll_to_latest(self) -> None: ...


class NullSurface:
    """Headless surface: tracks highlight state, draws nothing."""

    def __init__(self) -> None:
        self.highlighted: Optional[int] = None

    @property
    def has_highlight(self) -> bool:
        return self.highlighted is not None

    def append_line(self, message_id: int, text: str) -> None:
        pass

    def reset(self, lines: Sequence[Tuple[int, str]]) -> None:
        self.highlighted = None

    def highlight(self, message_id: int) -> None:
        self.highlighted = message_id

    def scroll_to_highlight(self) -> None:
        pass

    def clear_highlights(self) -> None:
        self.highlighted = None

    def scroll_to_latest(self) -> None:
        pass


def author_color(author_id: int) -> str:
    """Pick a stable role colour from the author's identifier."""
    # Low snowflake bits are a per-process counter; mix in the timestamp part.
    return _ROLE_COLORS[(author_id ^ (author_id >> 22)) % len(_ROLE_COLORS)]


def format_message(message: Message, emote_color: str, replied: Optional[Message] = None) -> str:
    color = author_color(message.author_id)
    author = markup_escape(message.author_tag)
    body = translate(message.content, emote_color)
    lines = []
    if message.reply_to is not None:
        target = markup_escape(replied.author_tag) if replied else "an older message"
        lines.append(f"[dim]  ╭ replying to {target}[/dim]")
    lines.append(f"[bold {color}]{author}[/bold {color}]: {body}")
    for attachment in message.attachments:
        lines.append(f"[dim]  file: {markup_escape(attachment.filename)}[/dim]")
    return "\n".join(lines)


def render_lines(tree, emote_color: str) -> list:
    """``(message_id, markup)`` for the open buffer, oldest first."""
    lines = []
    for message in reversed(tree.messages):
        replied = None
        if message.reply_to is not None:
            _, replied = tree.find_message(message.reply_to)
        lines.append((message.message_id, format_message(message, emote_color, replied)))
    return lines


class ProxySurface:
    """Forwards to the attached view; headless until one is attached."""

    def __init__(self) -> None:
        self.target: RenderSurface = NullSurface()

    def attach(self, target: RenderSurface) -> None:
        self.target = target

    @property
    def has_highlight(self) -> bool:
        return self.target.has_highlight

    def append_line(self, message_id: int, text: str) -> None:
        self.target.append_line(message_id, text)

    def reset(self, lines: Sequence[Tuple[int, str]]) -> None:
        self.target.reset(lines)

    def highlight(self, message_id: int) -> None:
        self.target.highlight(message_id)

    def scroll_to_highlight(self) -> None:
        self.target.scroll_to_highlight()

    def clear_highlights(self) -> None:
        self.target.clear_highlights()

    def scroll_to_latest(self) -> None:
        self.target.scroll_to_latest()
