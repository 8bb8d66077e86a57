"""Clipboard and system-opener helpers."""
from __future__ import annotations

import os
import shutil
import subprocess
import sys
import webbrowser
from pathlib import Path
from typing import List

CLIPBOARD_TIMEOUT_S = 2.0


def clipboard_commands() -> List[List[str]]:
    """Clipboard writers for this desktop, best candidate first, installed only."""
    if sys.platform == "win32":
        candidates = [["clip"]]
    elif sys.platform == "darwin":
        candidates = [["pbcopy"]]
    else:
        x11 = [["xclip", "-selection", "clipboard"], ["xsel", "--clipboard", "--input"]]
        wayland = [["wl-copy"]]
        candidates = wayland + x11 if os.getenv("WAYLAND_DISPLAY") else x11 + wayland
        candidates.append(["clip.exe"])  # WSL
    return [cmd for cmd in candidates if shutil.which(cmd[0])]


def try_copy_to_clipboard(text: str) -> bool:
    """Pipe *text* into the first clipboard writer that accepts it. Blocking."""
    data = text.encode("utf-8")
    for cmd in clipboard_commands():
        try:
            done = subprocess.run(cmd, input=data, capture_output=True, timeout=CLIPBOARD_TIMEOUT_S)
        except (subprocess.TimeoutExpired, OSError):
            continue
        if done.returncode == 0:
            return True
    return False


def open_path(path: Path) -> bool:
    """Hand *path* to the desktop's default application."""
    if sys.platform == "win32":
        cmd = ["cmd", "/c", "start", "", str(path)]
    elif sys.platform == "darwin":
        cmd = ["open", str(path)]
    else:
        cmd = ["xdg-open", str(path)]
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError:
        return False
    return True


def open_url(url: str) -> bool:
    return webbrowser.open(url, new=2)
