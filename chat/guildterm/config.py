from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Optional

_config_dir_env = os.getenv("GUILDTERM_CONFIG_DIR", "")
CONFIG_DIR = Path(_config_dir_env).expanduser() if _config_dir_env else Path.home() / ".config" / "guildterm"
CONFIG_FILE = CONFIG_DIR / "config.json"
PLUGINS_DIR = CONFIG_DIR / "plugins"
LOG_FILE = CONFIG_DIR / "guildterm.log"

_cache_env = os.getenv("XDG_CACHE_HOME", "")
CACHE_DIR = Path(_cache_env).expanduser() if _cache_env else Path.home() / ".cache"

API_BASE = os.getenv("GUILDTERM_API_BASE", "https://discord.com/api/v10")
GATEWAY_URL = os.getenv("GUILDTERM_GATEWAY_URL", "wss://gateway.discord.gg/?v=10&encoding=json")

DEFAULT_EMOTE_COLOR = "green"
DEFAULT_MESSAGES_LIMIT = 50


class ConfigError(Exception):
    """Raised when the configuration file exists but cannot be used."""


@dataclasses.dataclass
class Config:
    token: str = ""
    messages_limit: int = DEFAULT_MESSAGES_LIMIT
    downloads_dir: str = str(Path.home() / "Downloads")
    cache_dir: str = str(CACHE_DIR)
    emote_color: str = DEFAULT_EMOTE_COLOR
    mouse: bool = True
    request_timeout_s: float = 30.0
    user_agent: str = "guildterm (https://github.com/guildterm/guildterm, 0.1)"

    @property
    def is_bot(self) -> bool:
        return self.token.startswith("Bot ")


def _load_dataclass_strict(cls, payload: dict, path: Path):
    try:
        return cls(**payload)
    except TypeError as e:
        raise ConfigError(f"Config schema mismatch in {path}: {e}") from e


def load_config(path: Optional[Path] = None) -> Config:
    """Read the JSON config file, falling back to defaults when it is absent.

    ``GUILDTERM_TOKEN`` always wins over the file's token.
    """
    path = path or CONFIG_FILE
    if not path.exists():
        config = Config()
    else:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a JSON object")
        config = _load_dataclass_strict(Config, data, path)

    if not isinstance(config.messages_limit, int) or not 1 <= config.messages_limit <= 100:
        raise ConfigError("messages_limit must be an integer between 1 and 100")

    token = os.getenv("GUILDTERM_TOKEN", "")
    if token:
        config.token = token.strip()
    return config


def ensure_config_dir() -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def save_config(config: Config, path: Optional[Path] = None) -> None:
    path = path or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    data = dataclasses.asdict(config)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)
