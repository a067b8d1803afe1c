from __future__ import annotations
import logging
import os

from chatdeck import ChatController, Credentials, HttpGenerationClient, LiteLLMGenerationClient
from chatdeck.storage import JsonFileStore
from chatdeck.utils.console import run_console_sync

logging.basicConfig(
    level=logging.ERROR,  # solo imprime ERROR y CRITICAL
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

os.environ.setdefault("LANGFUSE_TRACING_ENABLED", "false")


def build_controller() -> ChatController:
    # Historial en ~/.chatdeck/store.json (o CHATDECK_STORE_PATH)
    store = JsonFileStore()

    # CHATDECK_ENDPOINT apunta a un backend con POST /chat; si no, se llama al proveedor directo
    if os.environ.get("CHATDECK_ENDPOINT"):
        client = HttpGenerationClient()
    else:
        client = LiteLLMGenerationClient()

    provider = os.environ.get("CHATDECK_PROVIDER", "openai")
    api_key = os.environ.get("GEMINI_API_KEY") if provider == "gemini" else os.environ.get("OPENAI_API_KEY")
    credentials = Credentials(api_key=api_key, provider=provider, model=os.environ.get("CHATDECK_MODEL"))

    return ChatController(store, client, credentials=credentials)


if __name__ == "__main__":
    run_console_sync(controller=build_controller())
