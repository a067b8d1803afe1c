from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_PROVIDER


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class Message(BaseModel):
    # Inmutable una vez agregado a la transcripción
    model_config = ConfigDict(frozen=True)

    text: str
    sender: Sender

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(text=text, sender=Sender.USER)

    @classmethod
    def bot(cls, text: str) -> "Message":
        return cls(text=text, sender=Sender.BOT)


class Session(BaseModel):
    """
    Conversación persistida. El título ES la clave primaria: dos chats que
    arrancan con el mismo primer mensaje colisionan y el último pisa al primero.
    """
    title: str
    messages: list[Message] = []


class Credentials(BaseModel):
    api_key: Optional[str] = None
    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    api_key: str = Field(alias="apiKey")
    provider: Optional[str] = None
    model: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Cuerpo del POST /chat, con los nombres que espera el backend."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ExchangeState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SENDING = "sending"
    AWAITING = "awaiting"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatEvent(BaseModel):
    type: str
    message: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
