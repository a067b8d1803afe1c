# Configuraciones base del cliente de chat
import os
from pathlib import Path

# Claves del almacenamiento durable (compatibles con el localStorage del front web)
CHAT_HISTORY_KEY = "chatHistory"
PREVIOUS_CHATS_KEY = "previousChats"

# Saludo sintético con el que arranca cada chat nuevo
GREETING_TEXT = "Hello! How can I help you today?"
NEW_CHAT_PLACEHOLDER = "New Chat"

# Avisos que ve el usuario
EMPTY_PROMPT_NOTICE = "Something went wrong. Please check your input."
MISSING_CREDENTIAL_NOTICE = "Please set your OpenAI API key first."
FETCH_FAILED_NOTICE = "Failed to fetch response from the server."
BUSY_NOTICE = "Please wait for the current reply before sending another message."

# Proveedor / modelo por defecto (LiteLLM)
DEFAULT_PROVIDER = "openai"
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-pro",
}

# Endpoint remoto de generación
CHAT_ENDPOINT = os.environ.get("CHATDECK_ENDPOINT", "http://localhost:8080")
CHAT_PATH = "/chat"
# Sin timeout: depende solo del endpoint
HTTP_TIMEOUT = None

STORE_PATH = Path(os.environ.get("CHATDECK_STORE_PATH", "~/.chatdeck/store.json")).expanduser()
