from ._version import __version__

from .models import Message, Sender, Session, Credentials, ChatRequest, ChatEvent, ExchangeState
from .errors import ChatError, ValidationError, TransportError, PersistenceParseError
from .store_protocol import KeyValueStore
from .session_store import SessionStore
from .transcript import ActiveTranscript
from .llm import GenerationClient, HttpGenerationClient, LiteLLMGenerationClient
from .chat import ChatController

__all__ = [
    "__version__",
    "ChatController",
    "ActiveTranscript",
    "SessionStore",
    "KeyValueStore",
    "GenerationClient",
    "HttpGenerationClient",
    "LiteLLMGenerationClient",
    "Message",
    "Sender",
    "Session",
    "Credentials",
    "ChatRequest",
    "ChatEvent",
    "ExchangeState",
    "ChatError",
    "ValidationError",
    "TransportError",
    "PersistenceParseError",
]
