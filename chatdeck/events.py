from __future__ import annotations
from typing import Callable, Optional

from .models import ChatEvent

EventListener = Callable[[ChatEvent], None]


class EventEmitter:
    """
    Notificaciones explícitas de cambio de estado hacia la UI (patrón observer).
    """
    def __init__(self, event_listener: Optional[EventListener] = None):
        self._listeners: list[EventListener] = []
        if event_listener is not None:
            self._listeners.append(event_listener)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def emit(self, type: str, message: Optional[str] = None, **payload) -> None:
        if not self._listeners:
            return
        event = ChatEvent(type=type, message=message, payload=payload)
        for listener in list(self._listeners):
            listener(event)
