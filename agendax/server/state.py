from __future__ import annotations

from pathlib import Path
from threading import RLock
from typing import Optional

from .adapters.files import VaultCorpus


class VaultSelection:
    """The vault served by the API, switched through ``/api/vault/select``."""

    def __init__(self) -> None:
        self._root: Optional[Path] = None
        self._lock = RLock()

    def select(self, path: str) -> Path:
        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise ValueError(f"Vault directory does not exist: {root}")
        with self._lock:
            self._root = root
        return root

    @property
    def root(self) -> Path:
        with self._lock:
            if self._root is None:
                raise RuntimeError("No vault selected. Call /api/vault/select first.")
            return self._root

    def reset(self) -> None:
        with self._lock:
            self._root = None

    def corpus(self, templates_folder: Optional[str] = None) -> VaultCorpus:
        # A fresh corpus per request; nothing is cached between passes.
        return VaultCorpus(self.root, templates_folder=templates_folder)


current_vault = VaultSelection()
