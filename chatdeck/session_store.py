from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence

from .config import PREVIOUS_CHATS_KEY
from .errors import PersistenceParseError
from .events import EventEmitter, EventListener
from .models import Message, Session
from .store_protocol import KeyValueStore
from .utils.collections import dedupe_by
from .utils.serializer import sessions_from_json, to_json

logger = logging.getLogger(__name__)


class SessionStore(EventEmitter):
    """
    Repositorio de sesiones en memoria, sincronizado write-through con el store durable.

    El título es la clave: un `upsert` sobre un título existente reemplaza sus mensajes
    en el mismo lugar, nunca duplica. El orden es el de inserción (la más vieja primero)
    y no se reordena por actividad.
    """
    def __init__(
        self,
        store: KeyValueStore,
        key: str = PREVIOUS_CHATS_KEY,
        event_listener: Optional[EventListener] = None,
    ):
        super().__init__(event_listener)
        self.store = store
        self.key = key
        self._sessions: Dict[str, Session] = {}
        self._hydrated = False

    # ---------- Ciclo de vida ----------
    def hydrate(self) -> List[Session]:
        """Carga el snapshot persistido. Se ejecuta una sola vez, al arrancar."""
        if self._hydrated:
            logger.warning("SessionStore already hydrated, ignoring")
            return self.list()
        self._hydrated = True

        raw = self.store.get(self.key)
        if raw is None:
            return []
        try:
            stored = sessions_from_json(self.key, raw)
        except PersistenceParseError as ex:
            logger.error("Failed to parse previous chats, starting with no history: %s", ex)
            return []

        self._sessions = dedupe_by(stored, lambda s: s.title)
        if len(self._sessions) != len(stored):
            logger.warning("Collapsed %d duplicated titles in stored chats", len(stored) - len(self._sessions))
        self.emit("sessions_changed", titles=self.titles())
        return self.list()

    # ---------- Repo API ----------
    def upsert(self, title: str, messages: Sequence[Message]) -> Session:
        existing = self._sessions.get(title)
        if existing is not None:
            session = existing.model_copy(update={"messages": list(messages)})
        else:
            session = Session(title=title, messages=list(messages))
        # dict conserva la posición original al reasignar una clave existente
        self._sessions[title] = session
        self._persist()
        self.emit("sessions_changed", titles=self.titles())
        return session

    def find(self, title: str) -> Optional[Session]:
        return self._sessions.get(title)

    def delete(self, title: str) -> bool:
        if self._sessions.pop(title, None) is None:
            return False
        self._persist()
        self.emit("sessions_changed", titles=self.titles())
        return True

    def list(self) -> List[Session]:
        return list(self._sessions.values())

    def titles(self) -> List[str]:
        return list(self._sessions.keys())

    def first(self) -> Optional[Session]:
        return next(iter(self._sessions.values()), None)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, title: object) -> bool:
        return title in self._sessions

    # ---------- Persistencia ----------
    def _persist(self) -> None:
        # fire-and-forget: perder historial por cuota llena es un modo degradado, no un error
        try:
            self.store.set(self.key, to_json(self.list()))
        except Exception as ex:
            logger.warning("Could not persist previous chats: %s", ex)
