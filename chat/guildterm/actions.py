"""Context actions for the selected message (reply, delete, copy, ...).

Remote-affecting actions are spawned on the mutation owner and never awaited
here; their outcome comes back as an ordinary queued mutation.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence

from . import desktop
from .markup import find_links
from .models import Attachment, Message
from .permissions import Permission

if TYPE_CHECKING:
    from .context import ClientContext

log = logging.getLogger(__name__)


@dataclasses.dataclass
class Action:
    key: str
    label: str
    run: Callable[[], None]


@dataclasses.dataclass
class PendingReply:
    message_id: int
    author_tag: str
    mention: bool = False

    @property
    def title(self) -> str:
        prefix = "[@] " if self.mention else ""
        return f"{prefix}Replying to {self.author_tag}"


def _safe_filename(filename: str) -> str:
    name = Path(filename).name
    return name or "attachment"


class ActionDispatcher:
    def __init__(self, ctx: "ClientContext") -> None:
        self.ctx = ctx
        self.pending_reply: Optional[PendingReply] = None

    # ── Menu ──────────────────────────────────────────────────────────────────

    def build_actions(self, message: Message) -> List[Action]:
        ctx = self.ctx
        actions: List[Action] = []
        if ctx.permissions.check(message.channel_id, Permission.SEND_MESSAGES):
            actions.append(Action("r", "Reply", lambda: self.reply(message)))
            actions.append(Action("R", "Mention Reply", lambda: self.reply(message, mention=True)))
        is_author = ctx.permissions.user_id is not None and message.author_id == ctx.permissions.user_id
        if is_author or ctx.permissions.check(message.channel_id, Permission.MANAGE_MESSAGES):
            actions.append(Action("d", "Delete", lambda: self.delete(message)))
        if message.reply_to is not None and ctx.tree.find_message(message.reply_to)[1] is not None:
            actions.append(Action("m", "Select Reply", lambda: self.select_reply(message)))
        if find_links(message.content):
            actions.append(Action("l", "Open Link", lambda: self.open_links(message)))
        if message.attachments:
            actions.append(Action("a", "Download Attachment", lambda: self.download_attachments(message)))
            actions.append(Action("o", "Open Attachment", lambda: self.open_attachments(message)))
        actions.append(Action("c", "Copy Content", lambda: self.copy_content(message)))
        actions.append(Action("i", "Copy ID", lambda: self.copy_id(message)))
        return actions

    # ── Replies & sending ─────────────────────────────────────────────────────

    def reply(self, message: Message, mention: bool = False) -> None:
        self.pending_reply = PendingReply(message.message_id, message.author_tag, mention)

    def cancel_reply(self) -> None:
        self.pending_reply = None

    def send_message(self, text: str) -> bool:
        """Queue *text* for the open channel, consuming any pending reply."""
        ctx = self.ctx
        text = text.strip()
        channel_id = ctx.tree.open_channel_id
        if not text or channel_id is None:
            return False
        pending, self.pending_reply = self.pending_reply, None
        if pending is not None:
            coro = ctx.rest.send_message(channel_id, text, pending.message_id, pending.mention)
            ctx.navigation.clear()
        else:
            coro = ctx.rest.send_message(channel_id, text)
        ctx.owner.spawn(coro, on_error=lambda e: ctx.notify(f"Send failed: {e}"))
        return True

    # ── Delete ────────────────────────────────────────────────────────────────

    def delete(self, message: Message) -> None:
        """Remove locally first, then ask the service to delete."""
        ctx = self.ctx
        selected = ctx.navigation.selected
        if ctx.tree.remove_message(message.channel_id, message.message_id):
            if selected is not None:
                ctx.navigation.revalidate(selected.message_id)
            ctx.sync.rerender()
        ctx.owner.spawn(
            ctx.rest.delete_message(message.channel_id, message.message_id),
            on_error=lambda e: self._delete_failed(message, e),
        )

    def _delete_failed(self, message: Message, exc: BaseException) -> None:
        log.warning("delete of %s failed: %s", message.message_id, exc)
        self.ctx.notify(f"Delete failed: {exc}")
        self.ctx.reload_channel(message.channel_id)

    # ── Navigation ────────────────────────────────────────────────────────────

    def select_reply(self, message: Message) -> None:
        index, _ = self.ctx.tree.find_message(message.message_id)
        if index < 0:
            return
        if self.ctx.navigation.selected_index != index:
            self.ctx.navigation.revalidate(message.message_id)
        self.ctx.navigation.select_reply_of()

    # ── Links, clipboard ──────────────────────────────────────────────────────

    def open_links(self, message: Message) -> None:
        for link in find_links(message.content):
            self.ctx.owner.spawn(asyncio.to_thread(desktop.open_url, link))

    def _copy(self, text: str, what: str) -> None:
        def _copied(ok: bool) -> None:
            if not ok:
                log.info("no clipboard tool accepted the %s", what)

        self.ctx.owner.spawn(asyncio.to_thread(desktop.try_copy_to_clipboard, text), on_result=_copied)

    def copy_content(self, message: Message) -> None:
        self._copy(message.content, "message content")

    def copy_id(self, message: Message) -> None:
        self._copy(str(message.message_id), "message id")

    # ── Attachments ───────────────────────────────────────────────────────────

    async def save_attachments(self, attachments: Sequence[Attachment], directory: Path) -> List[Path]:
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        saved = []
        for attachment in attachments:
            data = await self.ctx.rest.fetch_bytes(attachment.url)
            path = directory / _safe_filename(attachment.filename)
            await asyncio.to_thread(path.write_bytes, data)
            saved.append(path)
        return saved

    def download_attachments(self, message: Message) -> None:
        directory = Path(self.ctx.config.downloads_dir).expanduser()
        self.ctx.owner.spawn(
            self.save_attachments(message.attachments, directory),
            on_result=lambda paths: self.ctx.notify(f"Saved {', '.join(p.name for p in paths)}"),
            on_error=lambda e: self.ctx.notify(f"Download failed: {e}"),
        )

    async def _open_attachments(self, attachments: Sequence[Attachment]) -> List[Path]:
        paths = await self.save_attachments(attachments, Path(self.ctx.config.cache_dir).expanduser())
        for path in paths:
            desktop.open_path(path)
        return paths

    def open_attachments(self, message: Message) -> None:
        self.ctx.owner.spawn(
            self._open_attachments(message.attachments),
            on_error=lambda e: self.ctx.notify(f"Open failed: {e}"),
        )
