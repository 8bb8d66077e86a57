"""Load sandboxed WebAssembly extensions once at startup.

Every file in the plugins directory becomes one ``extism.Plugin``. Files that
fail to instantiate are logged and skipped; a missing directory simply means
no plugins. Loaded plugins live until the process exits.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional

import extism

log = logging.getLogger(__name__)


def instantiate_wasm(path: Path) -> Any:
    manifest = {"wasm": [{"path": str(path), "name": path.name}]}
    return extism.Plugin(manifest, wasi=True)


class PluginRegistry:
    def __init__(self, factory: Optional[Callable[[Path], Any]] = None) -> None:
        self._factory = factory or instantiate_wasm
        self.plugins: List[Any] = []
        self.names: List[str] = []
        self.loaded = False

    def load(self, directory: Path) -> int:
        """Instantiate every entry of *directory*; returns how many loaded."""
        if self.loaded:
            raise RuntimeError("plugin registry is already initialised")
        self.loaded = True
        if not directory.exists():
            log.info("no plugin directory at %s", directory)
            return 0

        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            try:
                plugin = self._factory(entry)
            except Exception as e:
                log.warning("failed to load plugin %s: %s: %s", entry.name, type(e).__name__, e)
                continue
            self.plugins.append(plugin)
            self.names.append(entry.name)
            log.info("loaded plugin %s", entry.name)
        return len(self.plugins)

    def close(self) -> None:
        self.plugins.clear()
        self.names.clear()

    def __len__(self) -> int:
        return len(self.plugins)
