from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .config import CHAT_HISTORY_KEY, EMPTY_PROMPT_NOTICE, GREETING_TEXT, NEW_CHAT_PLACEHOLDER
from .errors import PersistenceParseError, ValidationError
from .events import EventEmitter, EventListener
from .models import Message, Session
from .store_protocol import KeyValueStore
from .utils.serializer import messages_from_json, to_json

logger = logging.getLogger(__name__)


def greeting() -> List[Message]:
    return [Message.bot(GREETING_TEXT)]


class ActiveTranscript(EventEmitter):
    """
    Secuencia de mensajes visible, ligada a lo sumo a una sesión.
    `current_title is None` es un borrador ("New Chat") todavía sin guardar.

    Cada mutación de `messages` se persiste en el store aparte del repositorio de
    sesiones, así un crash a mitad de conversación no pierde la cola sin commitear.
    """
    def __init__(
        self,
        store: KeyValueStore,
        key: str = CHAT_HISTORY_KEY,
        event_listener: Optional[EventListener] = None,
    ):
        super().__init__(event_listener)
        self.store = store
        self.key = key
        self.current_title: Optional[str] = None
        self._messages: List[Message] = self._restore()

    def _restore(self) -> List[Message]:
        raw = self.store.get(self.key)
        if raw is None:
            return greeting()
        try:
            return messages_from_json(self.key, raw)
        except PersistenceParseError as ex:
            logger.error("Failed to parse chat history, starting a new chat: %s", ex)
            return greeting()

    # ---------- Lectura ----------
    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def is_draft(self) -> bool:
        return self.current_title is None

    @property
    def display_title(self) -> str:
        return self.current_title or NEW_CHAT_PLACEHOLDER

    def __len__(self) -> int:
        return len(self._messages)

    # ---------- Mutaciones ----------
    def create_new_chat(self) -> None:
        self.current_title = None
        self._set(greeting())

    def bind(self, session: Session) -> None:
        self.current_title = session.title
        self._set(list(session.messages))

    def rename(self, title: str) -> None:
        self.current_title = title
        self.emit("transcript_changed", title=title, size=len(self._messages))

    def append_user_message(self, text: str) -> Message:
        if not text or not text.strip():
            raise ValidationError(EMPTY_PROMPT_NOTICE)
        message = Message.user(text)
        self._set(self._messages + [message])
        return message

    def append_bot_message(self, text: str) -> Message:
        message = Message.bot(text)
        self._set(self._messages + [message])
        return message

    def replace_messages(self, messages: Sequence[Message]) -> None:
        self._set(list(messages))

    def _set(self, messages: List[Message]) -> None:
        self._messages = messages
        self._persist()
        self.emit("transcript_changed", title=self.current_title, size=len(messages))

    def _persist(self) -> None:
        try:
            self.store.set(self.key, to_json(self._messages))
        except Exception as ex:
            logger.warning("Could not persist chat history: %s", ex)
