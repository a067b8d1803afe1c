from __future__ import annotations
import logging
import uuid
from typing import Callable, List, Optional

from .config import BUSY_NOTICE, EMPTY_PROMPT_NOTICE, FETCH_FAILED_NOTICE, MISSING_CREDENTIAL_NOTICE
from .errors import TransportError, ValidationError
from .events import EventEmitter, EventListener
from .llm import GenerationClient
from .models import ChatRequest, Credentials, ExchangeState, Message
from .session_store import SessionStore
from .store_protocol import KeyValueStore
from .transcript import ActiveTranscript

logger = logging.getLogger(__name__)


class ChatController(EventEmitter):
    """
    Orquesta el envío de un mensaje: valida, agrega el mensaje del usuario, llama al
    endpoint remoto, agrega la respuesta y commitea la sesión en el repositorio.

    También atiende los intents de la UI (nuevo chat, cargar, borrar, sidebar).
    Por defecto no hay guardia contra envíos concurrentes, igual que la app web;
    `single_flight=True` rechaza un envío mientras otro espera respuesta.
    """
    def __init__(
        self,
        store: KeyValueStore,
        client: GenerationClient,
        credentials: Optional[Credentials] = None,
        single_flight: bool = False,
        event_listener: Optional[EventListener] = None,
    ):
        super().__init__(event_listener)
        self.client = client
        self.credentials = credentials or Credentials()
        self.single_flight = single_flight
        self.sessions = SessionStore(store, event_listener=event_listener)
        self.transcript = ActiveTranscript(store, event_listener=event_listener)
        self.prompt = ""
        self.show_sidebar = True
        self._in_flight = 0

        stored = self.sessions.hydrate()
        if stored:
            self.transcript.bind(stored[0])

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        unsubscribers = [
            self.sessions.subscribe(listener),
            self.transcript.subscribe(listener),
            super().subscribe(listener),
        ]

        def unsubscribe() -> None:
            for fn in unsubscribers:
                fn()
        return unsubscribe

    # ---------- Datos para la UI ----------
    @property
    def session_titles(self) -> List[str]:
        return self.sessions.titles()

    @property
    def messages(self) -> List[Message]:
        return self.transcript.messages

    @property
    def current_title(self) -> Optional[str]:
        return self.transcript.current_title

    @property
    def display_title(self) -> str:
        return self.transcript.display_title

    @property
    def pending(self) -> int:
        return self._in_flight

    @property
    def state(self) -> ExchangeState:
        return ExchangeState.AWAITING if self._in_flight else ExchangeState.IDLE

    # ---------- Intents de la UI ----------
    def set_input(self, text: str) -> None:
        self.prompt = text

    def set_credentials(self, api_key: Optional[str], provider: Optional[str] = None, model: Optional[str] = None) -> None:
        update = {"api_key": api_key}
        if provider:
            update["provider"] = provider
        if model:
            update["model"] = model
        self.credentials = self.credentials.model_copy(update=update)

    def create_new_chat(self) -> None:
        self.transcript.create_new_chat()
        self.prompt = ""

    def load_chat(self, title: str) -> bool:
        session = self.sessions.find(title)
        if session is None:
            logger.debug("load_chat: no session titled %r", title)
            return False
        self.transcript.bind(session)
        self.prompt = ""
        return True

    def delete_chat(self, title: str) -> None:
        self.sessions.delete(title)
        if self.transcript.current_title != title:
            return
        first = self.sessions.first()
        if first is not None:
            self.transcript.bind(first)
        else:
            self.create_new_chat()

    def toggle_sidebar(self) -> bool:
        self.show_sidebar = not self.show_sidebar
        self.emit("sidebar_toggled", visible=self.show_sidebar)
        return self.show_sidebar

    async def send_message(self, prompt: Optional[str] = None) -> Optional[str]:
        """Intent de envío: los errores se recuperan acá y se muestran como aviso."""
        try:
            return await self.send(prompt)
        except ValidationError as ex:
            self._notice(str(ex), level="warning")
        except TransportError:
            self._notice(FETCH_FAILED_NOTICE, level="error")
        return None

    # ---------- Intercambio ----------
    def _transition(self, exchange_id: str, state: ExchangeState, title: Optional[str] = None) -> None:
        logger.debug("exchange %s -> %s", exchange_id, state.value)
        self.emit("exchange_state", exchange_id=exchange_id, state=state.value, title=title)

    def _notice(self, message: str, level: str) -> None:
        self.emit("notice", message, level=level)

    def _validate(self, prompt: str) -> None:
        if not prompt or not prompt.strip():
            raise ValidationError(EMPTY_PROMPT_NOTICE)
        if not self.credentials.configured:
            raise ValidationError(MISSING_CREDENTIAL_NOTICE)
        if self.single_flight and self._in_flight:
            raise ValidationError(BUSY_NOTICE)

    async def _generate(self, request: ChatRequest) -> str:
        # cualquier fallo del cliente cuenta como TransportError
        try:
            reply = await self.client.generate(request)
        except TransportError:
            raise
        except Exception as ex:
            raise TransportError(str(ex)) from ex
        if not isinstance(reply, str):
            raise TransportError(f"Expected a text reply, got {type(reply).__name__}")
        return reply

    async def send(self, prompt: Optional[str] = None) -> str:
        """
        Ejecuta un intercambio completo y devuelve la respuesta del bot.

        Todo lo previo a la llamada remota es síncrono: el mensaje del usuario y el
        título optimista ya son visibles antes de que la respuesta llegue.
        Lanza `ValidationError` sin efectos secundarios, o `TransportError` dejando
        el mensaje del usuario en la transcripción y sin tocar el repositorio.
        """
        prompt = self.prompt if prompt is None else prompt
        exchange_id = str(uuid.uuid4())

        self._transition(exchange_id, ExchangeState.VALIDATING)
        try:
            self._validate(prompt)
        except ValidationError as ex:
            logger.warning("Send rejected: %s", ex)
            self._transition(exchange_id, ExchangeState.IDLE)
            raise

        is_new_chat = self.transcript.current_title is None
        title = prompt if is_new_chat else self.transcript.current_title
        self._transition(exchange_id, ExchangeState.SENDING, title)
        if is_new_chat:
            self.transcript.rename(title)
        self.transcript.append_user_message(prompt)
        self.prompt = ""
        snapshot = self.transcript.messages

        request = ChatRequest(
            prompt=prompt,
            api_key=self.credentials.api_key,
            provider=self.credentials.provider,
            model=self.credentials.model,
        )
        self._in_flight += 1
        self._transition(exchange_id, ExchangeState.AWAITING, title)
        failure: Optional[TransportError] = None
        try:
            reply = await self._generate(request)
        except TransportError as ex:
            failure = ex
        finally:
            self._in_flight -= 1

        if failure is not None:
            logger.error("Exchange %s for %r failed: %s", exchange_id, title, failure)
            self._transition(exchange_id, ExchangeState.FAILED, title)
            self._transition(exchange_id, ExchangeState.IDLE, title)
            raise failure

        committed = snapshot + [Message.bot(reply)]
        # si la UI cambió de chat mientras esperábamos, solo se commitea al repositorio
        if self.transcript.current_title == title:
            self.transcript.replace_messages(committed)
        self.sessions.upsert(title, committed)
        self._transition(exchange_id, ExchangeState.COMPLETED, title)
        self._transition(exchange_id, ExchangeState.IDLE, title)
        return reply
