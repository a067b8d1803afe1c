from __future__ import annotations
import asyncio
from typing import Callable

from chatdeck.chat import ChatController
from chatdeck.models import ChatEvent, Message, Sender

INTRO = (
    "=== chatdeck console ===\n"
    "Comandos: :new :chats :load <título> :delete <título> :sidebar :messages :key <api_key> :exit"
)


NO_ARG_COMMANDS = (":exit", ":quit", ":new", ":chats", ":sidebar", ":messages")


def _format_message(message: Message) -> str:
    if message.sender == Sender.BOT:
        return f"\033[94mbot: {message.text}\033[0m"
    return f"you: {message.text}"


async def console_loop(
    *,
    controller: ChatController,
    prompt: str = "Tú: ",
    intro: str = INTRO,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """
    Loop de consola reusable para pruebas manuales. Hace de UI Shell: reenvía los
    intents al controller y muestra los avisos que emite.

    - controller: ChatController ya configurado (store, cliente, credenciales)
    - prompt: prefijo del input
    - intro: mensaje de bienvenida
    - input_fn / output_fn: entrada y salida (inyectables para tests)
    """
    def on_event(event: ChatEvent) -> None:
        if event.type == "notice":
            output_fn(f"\033[91m[!] {event.message}\033[0m")
        elif event.type == "sidebar_toggled":
            output_fn("Historial visible" if event.payload.get("visible") else "Historial oculto")

    unsubscribe = controller.subscribe(on_event)
    output_fn(intro)
    output_fn(f"== {controller.display_title} ==")

    try:
        while True:
            try:
                user_input = input_fn(prompt)
            except EOFError:
                break
            if not user_input.strip():
                continue

            # --- Comandos ---
            # el argumento se conserva tal cual: los títulos pueden tener espacios alrededor
            stripped = user_input.lstrip()
            command = stripped.split(maxsplit=1)[0]
            arg = stripped[len(command) + 1:]
            low = command.lower()

            if low in NO_ARG_COMMANDS and arg.strip():
                output_fn(f"{command} no acepta argumentos")
                continue

            if low in (":exit", ":quit"):
                output_fn("Saliendo...")
                break

            if low == ":new":
                controller.create_new_chat()
                output_fn(f"== {controller.display_title} ==")
                continue

            if low == ":chats":
                titles = controller.session_titles
                if not titles:
                    output_fn("(sin chats guardados)")
                for title in titles:
                    marker = "*" if title == controller.current_title else " "
                    output_fn(f"{marker} {title}")
                continue

            if low == ":load":
                if controller.load_chat(arg):
                    output_fn(f"== {controller.display_title} ==")
                else:
                    output_fn(f"No existe el chat '{arg}'")
                continue

            if low == ":delete":
                controller.delete_chat(arg)
                output_fn(f"== {controller.display_title} ==")
                continue

            if low == ":sidebar":
                controller.toggle_sidebar()
                continue

            if low == ":messages":
                output_fn("\n".join(_format_message(m) for m in controller.messages))
                continue

            if low == ":key":
                controller.set_credentials(arg.strip() or None)
                continue

            # --- Entrada normal: se envía al endpoint ---
            reply = await controller.send_message(user_input)
            if reply is not None:
                output_fn(_format_message(Message.bot(reply)))
    finally:
        unsubscribe()


def run_console_sync(*, controller: ChatController, **kwargs) -> None:
    """
    Conveniencia síncrona: crea un loop de eventos y ejecuta console_loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(console_loop(controller=controller, **kwargs))
        return
    raise RuntimeError(
        "Ya hay un event loop activo. Usa await console_loop(...) en vez de run_console_sync(...)."
    )
