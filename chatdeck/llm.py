from __future__ import annotations
import logging
from typing import Any, Dict, Optional, Protocol

import httpx
import litellm

from .config import CHAT_ENDPOINT, CHAT_PATH, DEFAULT_MODELS, DEFAULT_PROVIDER, HTTP_TIMEOUT
from .errors import TransportError
from .models import ChatRequest

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    async def generate(self, request: ChatRequest) -> str: ...


class HttpGenerationClient:
    """
    Cliente del endpoint remoto `POST /chat` con cuerpo {prompt, apiKey, provider, model}.
    La respuesta exitosa es texto plano (o un string JSON).
    """
    def __init__(
        self,
        base_url: str = CHAT_ENDPOINT,
        path: str = CHAT_PATH,
        timeout: Optional[float] = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.timeout = timeout
        self.transport = transport

    async def generate(self, request: ChatRequest) -> str:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.path, json=request.to_wire())
        except httpx.HTTPError as ex:
            logger.error("POST %s%s failed: %s", self.base_url, self.path, ex)
            raise TransportError(f"Request to {self.base_url}{self.path} failed: {ex}") from ex

        if not response.is_success:
            logger.error("Chat endpoint answered %s", response.status_code)
            raise TransportError(
                f"Chat endpoint answered {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return _parse_reply(response)


def _parse_reply(response: httpx.Response) -> str:
    content_type = response.headers.get("content-type", "")
    if "json" not in content_type:
        return response.text
    try:
        data = response.json()
    except ValueError as ex:
        raise TransportError("Malformed JSON reply", status_code=response.status_code) from ex
    if not isinstance(data, str):
        raise TransportError(f"Expected a string reply, got {type(data).__name__}", status_code=response.status_code)
    return data


class LiteLLMGenerationClient:
    """
    Llama al proveedor directamente vía litellm, con la API key del usuario.
    El modelo se arma como "<provider>/<model>" (openai/gpt-4o-mini, gemini/gemini-pro...).
    """
    def __init__(self, default_models: Optional[Dict[str, str]] = None, tracer: Optional[Any] = None):
        self.default_models = default_models or DEFAULT_MODELS
        self._tracer = tracer

    @property
    def tracer(self):
        if self._tracer is None:
            from langfuse import get_client
            self._tracer = get_client()
        return self._tracer

    def model_name(self, request: ChatRequest) -> str:
        provider = request.provider or DEFAULT_PROVIDER
        model = request.model or self.default_models.get(provider)
        if not model:
            raise TransportError(f"No model configured for provider '{provider}'")
        if "/" in model:
            return model
        return f"{provider}/{model}"

    async def generate(self, request: ChatRequest) -> str:
        model = self.model_name(request)
        with self.tracer.start_as_current_observation(name=model, as_type="generation",
                                                     input=request.prompt, model=model) as generation_span:
            try:
                raw = await litellm.acompletion(
                    model=model,
                    messages=[{"role": "user", "content": request.prompt}],
                    api_key=request.api_key,
                )
            except Exception as ex:
                logger.error("litellm call to %s failed: %s", model, ex)
                raise TransportError(f"Error calling {model}: {ex}") from ex

            try:
                content = raw.choices[0].message.content
            except (AttributeError, IndexError, KeyError, TypeError) as ex:
                raise TransportError(f"Malformed completion from {model}") from ex
            if not isinstance(content, str):
                raise TransportError(f"Completion from {model} has no text content")
            generation_span.update(output=content)
        return content
