from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """Almacenamiento durable clave/valor, síncrono, un único scope por perfil."""
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...
