"""
ChatController: ciclo de envío (validación, título optimista, commit tras
respuesta exitosa, fallo sin contaminar el historial) e intents de la UI.
"""

import asyncio
import json

import pytest

from chatdeck.chat import ChatController
from chatdeck.errors import TransportError, ValidationError
from chatdeck.models import Credentials, ExchangeState, Message, Sender, Session
from chatdeck.storage import MemoryStore
from chatdeck.utils.serializer import to_json

from conftest import FakeClient, GatedClient

GREETING = Message.bot("Hello! How can I help you today?")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _controller(client=None, store=None, api_key="sk-test", **kwargs):
    return ChatController(
        store if store is not None else MemoryStore(),
        client if client is not None else FakeClient(),
        credentials=Credentials(api_key=api_key),
        **kwargs,
    )


def _seeded_store(*titles):
    sessions = [Session(title=t, messages=[GREETING, Message.user(t), Message.bot(t.lower())]) for t in titles]
    return MemoryStore({"previousChats": to_json(sessions)})


# ---------------------------------------------------------------------------
# Arranque
# ---------------------------------------------------------------------------

class TestStartup:
    def test_empty_store_starts_as_draft(self):
        controller = _controller()
        assert controller.current_title is None
        assert controller.display_title == "New Chat"
        assert controller.messages == [GREETING]
        assert controller.state == ExchangeState.IDLE

    def test_binds_to_first_stored_session(self):
        controller = _controller(store=_seeded_store("A", "B"))
        assert controller.current_title == "A"
        assert controller.session_titles == ["A", "B"]
        assert controller.messages[-1] == Message.bot("a")

    def test_corrupt_sessions_do_not_crash(self):
        controller = _controller(store=MemoryStore({"previousChats": "garbage"}))
        assert controller.session_titles == []
        assert controller.current_title is None


# ---------------------------------------------------------------------------
# Envío
# ---------------------------------------------------------------------------

class TestSend:
    def test_first_message_creates_and_persists_session(self):
        store = MemoryStore()
        controller = _controller(FakeClient("Hi! What can I do?"), store)

        reply = asyncio.run(controller.send("Hello"))

        assert reply == "Hi! What can I do?"
        assert controller.current_title == "Hello"
        session = controller.sessions.find("Hello")
        assert session.messages == [GREETING, Message.user("Hello"), Message.bot("Hi! What can I do?")]
        stored = json.loads(store.get("previousChats"))
        assert stored[0]["title"] == "Hello"
        assert len(stored[0]["messages"]) == 3
        assert len(json.loads(store.get("chatHistory"))) == 3

    def test_user_message_and_title_visible_before_reply(self):
        seen = {}
        controller = None

        def observe(request):
            seen["size"] = len(controller.messages)
            seen["title"] = controller.current_title
            seen["last"] = controller.messages[-1]
            seen["stored"] = controller.sessions.find("Hello")

        controller = _controller(FakeClient(on_call=observe))
        asyncio.run(controller.send("Hello"))

        assert seen["size"] == 2
        assert seen["title"] == "Hello"
        assert seen["last"] == Message.user("Hello")
        # el repositorio solo se toca tras la respuesta
        assert seen["stored"] is None
        assert len(controller.messages) == 3

    def test_follow_up_updates_same_session(self):
        controller = _controller(FakeClient(lambda r: f"echo {r.prompt}"))
        asyncio.run(controller.send("Hello"))
        asyncio.run(controller.send("And again"))

        assert controller.session_titles == ["Hello"]
        texts = [m.text for m in controller.sessions.find("Hello").messages]
        assert texts == [GREETING.text, "Hello", "echo Hello", "And again", "echo And again"]

    def test_request_carries_prompt_and_credentials(self):
        client = FakeClient()
        controller = ChatController(MemoryStore(), client,
                                    credentials=Credentials(api_key="sk-1", provider="gemini", model="gemini-pro"))
        asyncio.run(controller.send("Hello"))
        request = client.requests[0]
        assert request.to_wire() == {"prompt": "Hello", "apiKey": "sk-1", "provider": "gemini", "model": "gemini-pro"}

    def test_send_uses_and_clears_pending_input(self):
        controller = _controller()
        controller.set_input("typed text")
        asyncio.run(controller.send())
        assert controller.prompt == ""
        assert controller.current_title == "typed text"

    def test_title_is_verbatim_prompt(self):
        controller = _controller()
        asyncio.run(controller.send("  spaced out  "))
        assert controller.session_titles == ["  spaced out  "]

    def test_state_transitions_are_emitted(self):
        controller = _controller()
        states = []
        controller.subscribe(lambda e: e.type == "exchange_state" and states.append(e.payload["state"]))
        asyncio.run(controller.send("Hello"))
        assert states == ["validating", "sending", "awaiting", "completed", "idle"]


class TestValidation:
    @pytest.mark.parametrize("prompt", ["", "   ", "\n"])
    def test_blank_prompt_is_rejected_without_side_effects(self, prompt):
        store = MemoryStore()
        client = FakeClient()
        controller = _controller(client, store)
        with pytest.raises(ValidationError):
            asyncio.run(controller.send(prompt))
        assert controller.messages == [GREETING]
        assert controller.current_title is None
        assert client.requests == []
        assert store.get("previousChats") is None

    def test_missing_credential_is_rejected(self):
        client = FakeClient()
        controller = _controller(client, api_key=None)
        controller.set_input("Hello")
        with pytest.raises(ValidationError, match="API key"):
            asyncio.run(controller.send())
        assert controller.messages == [GREETING]
        assert controller.prompt == "Hello"
        assert client.requests == []

    def test_blank_credential_counts_as_missing(self):
        controller = _controller(api_key="   ")
        with pytest.raises(ValidationError):
            asyncio.run(controller.send("Hello"))

    def test_set_credentials_enables_sending(self):
        controller = _controller(api_key=None)
        controller.set_credentials("sk-new", provider="gemini")
        asyncio.run(controller.send("Hello"))
        assert controller.credentials.provider == "gemini"
        assert controller.session_titles == ["Hello"]


class TestFailure:
    def test_failed_first_message_keeps_user_message_only(self):
        store = MemoryStore()
        controller = _controller(FakeClient(error=TransportError("boom", status_code=500)), store)

        with pytest.raises(TransportError):
            asyncio.run(controller.send("Hello"))

        assert controller.messages == [GREETING, Message.user("Hello")]
        assert controller.sessions.find("Hello") is None
        assert len(controller.sessions) == 0
        assert store.get("previousChats") is None
        assert controller.state == ExchangeState.IDLE

    def test_failed_follow_up_leaves_stored_session_untouched(self):
        store = _seeded_store("A")
        controller = _controller(FakeClient(error=TransportError("down")), store)
        before = controller.sessions.find("A").messages
        blob_before = store.get("previousChats")

        with pytest.raises(TransportError):
            asyncio.run(controller.send("more for A"))

        assert controller.sessions.find("A").messages == before
        assert store.get("previousChats") == blob_before
        assert controller.current_title == "A"
        assert controller.messages[-1] == Message.user("more for A")
        assert len(controller.messages) == len(before) + 1

    def test_view_state_is_idle_when_failure_is_reported(self):
        controller = _controller(FakeClient(error=TransportError("boom")))
        seen = []

        def on_event(event):
            if event.type == "exchange_state" and event.payload["state"] in ("failed", "idle"):
                seen.append((event.payload["state"], controller.state, controller.pending))

        controller.subscribe(on_event)
        asyncio.run(controller.send_message("Hello"))
        assert seen == [
            ("failed", ExchangeState.IDLE, 0),
            ("idle", ExchangeState.IDLE, 0),
        ]

    def test_unexpected_errors_become_transport_errors(self):
        controller = _controller(FakeClient(error=ConnectionError("reset")))
        with pytest.raises(TransportError):
            asyncio.run(controller.send("Hello"))
        assert controller.pending == 0

    def test_non_text_reply_is_a_failure(self):
        controller = _controller(FakeClient(reply={"oops": True}))
        with pytest.raises(TransportError):
            asyncio.run(controller.send("Hello"))
        assert len(controller.sessions) == 0

    def test_retry_after_failure_commits_session(self):
        client = FakeClient(error=TransportError("down"))
        controller = _controller(client)
        with pytest.raises(TransportError):
            asyncio.run(controller.send("Hello"))

        client.error = None
        asyncio.run(controller.send("Hello"))
        messages = controller.sessions.find("Hello").messages
        assert [m.sender for m in messages] == [Sender.BOT, Sender.USER, Sender.USER, Sender.BOT]


class TestSendMessageIntent:
    def setup_method(self):
        self.notices = []

    def _listen(self, controller):
        controller.subscribe(lambda e: e.type == "notice" and self.notices.append((e.message, e.payload["level"])))

    def test_validation_becomes_warning_notice(self):
        controller = _controller()
        self._listen(controller)
        assert asyncio.run(controller.send_message("  ")) is None
        assert self.notices == [("Something went wrong. Please check your input.", "warning")]

    def test_transport_failure_becomes_error_notice(self):
        controller = _controller(FakeClient(error=TransportError("boom")))
        self._listen(controller)
        assert asyncio.run(controller.send_message("Hello")) is None
        assert self.notices == [("Failed to fetch response from the server.", "error")]
        assert len(controller.messages) == 2

    def test_success_returns_reply(self):
        controller = _controller(FakeClient("pong"))
        self._listen(controller)
        assert asyncio.run(controller.send_message("ping")) == "pong"
        assert self.notices == []


# ---------------------------------------------------------------------------
# Concurrencia
# ---------------------------------------------------------------------------

class TestConcurrency:
    def test_state_is_awaiting_while_in_flight(self):
        client = GatedClient()
        controller = _controller(client)

        async def scenario():
            task = asyncio.create_task(controller.send("one"))
            await asyncio.sleep(0)
            assert controller.state == ExchangeState.AWAITING
            assert controller.pending == 1
            assert len(controller.messages) == 2
            client.gate("one").set()
            await task

        asyncio.run(scenario())
        assert controller.state == ExchangeState.IDLE
        assert len(controller.messages) == 3

    def test_overlapping_sends_commit_their_own_snapshot(self):
        client = GatedClient()
        controller = _controller(client)

        async def scenario():
            first = asyncio.create_task(controller.send("one"))
            await asyncio.sleep(0)
            second = asyncio.create_task(controller.send("two"))
            await asyncio.sleep(0)
            assert len(controller.messages) == 3
            client.gate("two").set()
            await second
            client.gate("one").set()
            await first

        asyncio.run(scenario())
        # la respuesta tardía pisa el snapshot posterior
        texts = [m.text for m in controller.sessions.find("one").messages]
        assert texts == [GREETING.text, "one", "reply to one"]
        assert controller.session_titles == ["one"]

    def test_single_flight_rejects_second_send(self):
        client = GatedClient()
        controller = _controller(client, single_flight=True)

        async def scenario():
            first = asyncio.create_task(controller.send("one"))
            await asyncio.sleep(0)
            with pytest.raises(ValidationError):
                await controller.send("two")
            client.gate("one").set()
            await first

        asyncio.run(scenario())
        assert [m.text for m in controller.messages] == [GREETING.text, "one", "reply to one"]

    def test_switching_chat_while_waiting_keeps_loaded_chat(self):
        client = GatedClient()
        controller = _controller(client, store=_seeded_store("A", "B"))

        async def scenario():
            task = asyncio.create_task(controller.send("more for A"))
            await asyncio.sleep(0)
            controller.load_chat("B")
            client.gate("more for A").set()
            await task

        asyncio.run(scenario())
        assert controller.current_title == "B"
        assert controller.messages[-1] == Message.bot("b")
        assert controller.sessions.find("A").messages[-1] == Message.bot("reply to more for A")


# ---------------------------------------------------------------------------
# Intents de la UI
# ---------------------------------------------------------------------------

class TestIntents:
    def test_create_new_chat_keeps_previous_session(self):
        controller = _controller()
        asyncio.run(controller.send("Hello"))
        controller.set_input("half typed")
        controller.create_new_chat()
        assert controller.current_title is None
        assert controller.messages == [GREETING]
        assert controller.prompt == ""
        assert controller.session_titles == ["Hello"]

    def test_load_chat_binds_and_clears_input(self):
        controller = _controller(store=_seeded_store("A", "B"))
        controller.set_input("draft")
        assert controller.load_chat("B") is True
        assert controller.current_title == "B"
        assert controller.messages[-1] == Message.bot("b")
        assert controller.prompt == ""

    def test_load_unknown_chat_is_noop(self):
        controller = _controller(store=_seeded_store("A"))
        controller.set_input("draft")
        assert controller.load_chat("zzz") is False
        assert controller.current_title == "A"
        assert controller.prompt == "draft"

    def test_delete_active_rebinds_to_next(self):
        controller = _controller(store=_seeded_store("A", "B"))
        controller.delete_chat("A")
        assert controller.current_title == "B"
        assert controller.session_titles == ["B"]

    def test_delete_last_session_starts_fresh_draft(self):
        store = _seeded_store("A")
        controller = _controller(store=store)
        controller.delete_chat("A")
        assert controller.current_title is None
        assert controller.messages == [GREETING]
        assert json.loads(store.get("previousChats")) == []

    def test_delete_inactive_keeps_transcript(self):
        controller = _controller(store=_seeded_store("A", "B", "C"))
        controller.delete_chat("B")
        assert controller.current_title == "A"
        assert controller.session_titles == ["A", "C"]

    def test_delete_unknown_is_noop(self):
        controller = _controller(store=_seeded_store("A"))
        controller.delete_chat("nope")
        assert controller.session_titles == ["A"]
        assert controller.current_title == "A"

    def test_toggle_sidebar(self):
        events = []
        controller = _controller()
        controller.subscribe(events.append)
        assert controller.toggle_sidebar() is False
        assert controller.toggle_sidebar() is True
        assert [e.payload["visible"] for e in events if e.type == "sidebar_toggled"] == [False, True]

    def test_history_survives_restart(self):
        store = MemoryStore()
        first = _controller(FakeClient("hi"), store)
        asyncio.run(first.send("Hello"))
        first.create_new_chat()

        second = _controller(FakeClient("hi"), store)
        assert second.session_titles == ["Hello"]
        assert second.current_title == "Hello"
        assert len(second.messages) == 3

    def test_event_listener_receives_all_sources(self):
        events = []
        controller = ChatController(MemoryStore(), FakeClient(), credentials=Credentials(api_key="k"),
                                    event_listener=events.append)
        asyncio.run(controller.send("Hello"))
        types = {e.type for e in events}
        assert {"sessions_changed", "transcript_changed", "exchange_state"} <= types
