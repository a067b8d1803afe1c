"""
Dobles compartidos por los tests: clientes de generación falsos.
"""

import asyncio
from typing import Callable, Dict, List, Optional

from chatdeck.models import ChatRequest


class FakeClient:
    """Responde siempre lo mismo (o falla) y registra cada request."""

    def __init__(self, reply="Hi there!", error: Optional[Exception] = None,
                 on_call: Optional[Callable[[ChatRequest], None]] = None):
        self.reply = reply
        self.error = error
        self.on_call = on_call
        self.requests: List[ChatRequest] = []

    async def generate(self, request: ChatRequest) -> str:
        self.requests.append(request)
        if self.on_call is not None:
            self.on_call(request)
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(request)
        return self.reply


class GatedClient:
    """Cada prompt queda esperando hasta que el test abre su compuerta."""

    def __init__(self):
        self.gates: Dict[str, asyncio.Event] = {}
        self.requests: List[ChatRequest] = []

    def gate(self, prompt: str) -> asyncio.Event:
        return self.gates.setdefault(prompt, asyncio.Event())

    async def generate(self, request: ChatRequest) -> str:
        self.requests.append(request)
        await self.gate(request.prompt).wait()
        return f"reply to {request.prompt}"
