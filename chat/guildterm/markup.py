"""Inline chat formatting → Rich console markup.

Rules run in a fixed order and every rule rewrites the whole string, so a
later rule scans the tags produced by the earlier ones. Overlapping input
such as ``***x***`` therefore yields mis-nested tags; that output is the
documented behaviour and the tests pin it down.

Rules emit private-use placeholders instead of tags. User text is escaped
with the placeholders in place, and only then are they swapped for tags, so
nothing the user typed can turn an inserted tag into literal text.
"""
from __future__ import annotations

import re

from rich.markup import escape as markup_escape

_FLAGS = re.MULTILINE | re.DOTALL

# placeholder pairs: (open, close)
_B = ("\ue000", "\ue001")
_I = ("\ue002", "\ue003")
_U = ("\ue004", "\ue005")
_S = ("\ue006", "\ue007")
_CODE_MARK = ("\ue008", "\ue009")
_EMOTE_MARK = ("\ue00a", "\ue00b")

_PLACEHOLDERS = "".join(_B + _I + _U + _S + _CODE_MARK + _EMOTE_MARK)
_STRIP_PLACEHOLDERS = {ord(c): None for c in _PLACEHOLDERS}

_RULES = [
    (re.compile(r"\*\*(.*?)\*\*", _FLAGS), _B),
    (re.compile(r"\*(.*?)\*", _FLAGS), _I),
    (re.compile(r"__(.*?)__", _FLAGS), _U),
    (re.compile(r"~~(.*?)~~", _FLAGS), _S),
    (re.compile(r"`([^`\n]+)`", _FLAGS), _CODE_MARK),
]
_EMOTE = re.compile(r"<(:[a-zA-Z0-9]+:)[0-9]+>")

# A run of backslashes in front of a tag escapes it unless the run is even.
_BACKSLASHES_BEFORE_TAG = re.compile(r"(\\+)(?=[%s])" % _PLACEHOLDERS)

LINK_RE = re.compile(r"https?://\S+")


def _tags(emote_color: str) -> dict:
    return {
        _B[0]: "[b]", _B[1]: "[/b]",
        _I[0]: "[i]", _I[1]: "[/i]",
        _U[0]: "[u]", _U[1]: "[/u]",
        _S[0]: "[s]", _S[1]: "[/s]",
        _CODE_MARK[0]: "[reverse]", _CODE_MARK[1]: "[/reverse]",
        _EMOTE_MARK[0]: f"[{emote_color}]", _EMOTE_MARK[1]: f"[/{emote_color}]",
    }


def translate(text: str, emote_color: str) -> str:
    """Escape Rich markup typed by the user, then convert inline formatting.

    Supported: ``**bold**``  ``*italic*``  ``__underline__``  ``~~strike~~``
    `` `code` `` and custom emotes ``<:name:123>``.
    """
    out = text.translate(_STRIP_PLACEHOLDERS)
    for pattern, (start, end) in _RULES:
        out = pattern.sub(lambda m, s=start, e=end: f"{s}{m.group(1)}{e}", out)
    out = _EMOTE.sub(lambda m: f"{_EMOTE_MARK[0]}{m.group(1)}{_EMOTE_MARK[1]}", out)

    out = markup_escape(out)
    out = _BACKSLASHES_BEFORE_TAG.sub(lambda m: m.group(1) * 2, out)
    tags = _tags(emote_color)
    return "".join(tags.get(ch, ch) for ch in out)


def find_links(text: str) -> list:
    return LINK_RE.findall(text)
