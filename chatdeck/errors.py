from __future__ import annotations
from typing import Optional


class ChatError(Exception):
    """Base de los errores del cliente de chat. Ninguno es fatal para el proceso."""


class ValidationError(ChatError):
    """
    Envío rechazado antes de tocar el estado (prompt vacío, sin credencial...).
    El mensaje es el aviso que se le muestra al usuario.
    """


class TransportError(ChatError):
    """Fallo de red, respuesta no-2xx o payload mal formado."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceParseError(ChatError):
    """Blob persistido corrupto o imposible de parsear."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Unable to parse stored '{key}': {reason}")
        self.key = key
        self.reason = reason
