from __future__ import annotations
from typing import Dict, Optional

from chatdeck.store_protocol import KeyValueStore


class MemoryStore(KeyValueStore):
    """Store en memoria: útil en tests o sesiones efímeras."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
