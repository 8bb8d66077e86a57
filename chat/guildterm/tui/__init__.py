"""guildterm TUI package.

Public surface: ``GuildtermApp``.
"""
from .app import GuildtermApp

__all__ = ["GuildtermApp"]
