from __future__ import annotations

from typing import Any

import pytest

from app.application.exceptions import LLMUpstreamError
from app.application.use_cases.handle_incoming_message import (
    TEXT_FAILED,
    VOICE_FAILED,
    VOICE_NOT_UNDERSTOOD,
    HandleIncomingMessageUseCase,
)
from app.application.use_cases.send_reply import SendReplyUseCase
from app.core.config import settings
from app.domain.entities.message import Message
from app.infrastructure.store.memory_store import MemoryConversationStore
from app.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform

USER = "15551234567"


class RecordingAgent:
    def __init__(self, reply: str = "Sure! Which date works for you?", error: Exception | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self._reply = reply
        self._error = error

    def reply(self, user_number, user_name, text, history):
        self.calls.append({"user_number": user_number, "user_name": user_name, "text": text, "history": history})
        if self._error:
            raise self._error
        return self._reply


class StaticTranscriber:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.received: list[bytes] = []

    def transcribe(self, audio: bytes, filename: str = "voice.ogg") -> str | None:
        self.received.append(audio)
        if self.error:
            raise self.error
        return self.text


class AudioPlatform(MockWhatsAppPlatform):
    def download_media(self, media_id: str) -> bytes:
        return b"OggS-audio"


def _text(text: str, mid: str = "wamid.1") -> Message:
    return Message(id=mid, sender_id=USER, type="text", timestamp=1, platform="whatsapp", text=text, profile_name="Jane")


def _voice(mid: str = "wamid.v1", media_id: str | None = "media_1") -> Message:
    return Message(id=mid, sender_id=USER, type="audio", timestamp=1, platform="whatsapp", media_id=media_id)


def _use_case(agent=None, transcriber=None, platform=None, store=None):
    platform = platform or MockWhatsAppPlatform()
    return HandleIncomingMessageUseCase(
        store=store or MemoryConversationStore(),
        agent=agent or RecordingAgent(),
        transcriber=transcriber or StaticTranscriber(),
        platform=platform,
        send_reply=SendReplyUseCase(platform),
    )


def test_text_message_is_answered_and_recorded():
    agent, platform, store = RecordingAgent(), MockWhatsAppPlatform(), MemoryConversationStore()
    use_case = _use_case(agent=agent, platform=platform, store=store)

    use_case.handle(_text("Hi, I'd like to book"))

    assert agent.calls[0]["user_number"] == USER
    assert agent.calls[0]["user_name"] == "Jane"
    assert agent.calls[0]["history"] == []
    assert platform.sent == [(USER, "Sure! Which date works for you?")]
    assert [m["role"] for m in store.get_history(USER)] == ["user", "assistant"]


def test_history_is_passed_on_later_turns():
    agent = RecordingAgent()
    use_case = _use_case(agent=agent)

    use_case.handle(_text("Hi", mid="wamid.1"))
    use_case.handle(_text("Tomorrow please", mid="wamid.2"))

    assert agent.calls[1]["history"] == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Sure! Which date works for you?"},
    ]


def test_duplicate_delivery_is_ignored():
    agent, platform = RecordingAgent(), MockWhatsAppPlatform()
    use_case = _use_case(agent=agent, platform=platform)

    use_case.handle(_text("Hi"))
    use_case.handle(_text("Hi"))

    assert len(agent.calls) == 1
    assert len(platform.sent) == 1


def test_unsupported_message_types_are_ignored():
    agent, platform = RecordingAgent(), MockWhatsAppPlatform()
    use_case = _use_case(agent=agent, platform=platform)

    use_case.handle(Message(id="wamid.img", sender_id=USER, type="image", timestamp=1, platform="whatsapp"))

    assert agent.calls == []
    assert platform.sent == []


def test_agent_failure_sends_fallback():
    platform = MockWhatsAppPlatform()
    use_case = _use_case(agent=RecordingAgent(error=LLMUpstreamError("timeout")), platform=platform)

    use_case.handle(_text("Hi"))

    assert platform.sent == [(USER, TEXT_FAILED)]


def test_voice_message_is_transcribed():
    agent, transcriber = RecordingAgent(), StaticTranscriber(text=" Book me for tomorrow at 9 ")
    use_case = _use_case(agent=agent, transcriber=transcriber, platform=AudioPlatform())

    use_case.handle(_voice())

    assert transcriber.received == [b"OggS-audio"]
    assert agent.calls[0]["text"] == "Book me for tomorrow at 9"


@pytest.mark.parametrize(
    "transcriber,message,expected",
    [
        (StaticTranscriber(text=None), _voice(), VOICE_NOT_UNDERSTOOD),
        (StaticTranscriber(text="x"), _voice(media_id=None), VOICE_NOT_UNDERSTOOD),
        (StaticTranscriber(error=LLMUpstreamError("whisper down")), _voice(), VOICE_FAILED),
    ],
)
def test_voice_failures_send_fallback(transcriber, message, expected):
    agent, platform = RecordingAgent(), AudioPlatform()
    use_case = _use_case(agent=agent, transcriber=transcriber, platform=platform)

    use_case.handle(message)

    assert agent.calls == []
    assert platform.sent == [(USER, expected)]


def test_auto_reply_disabled_skips_sending(monkeypatch):
    monkeypatch.setattr(settings, "AUTO_REPLY_ENABLED", False)
    platform, store = MockWhatsAppPlatform(), MemoryConversationStore()
    use_case = _use_case(platform=platform, store=store)

    use_case.handle(_text("Hi"))

    assert platform.sent == []
    assert [m["role"] for m in store.get_history(USER)] == ["user"]


def test_conversation_history_is_bounded():
    store = MemoryConversationStore(history_limit=3)
    for i in range(5):
        store.append_message(USER, role="user", text=f"m{i}")

    assert [m["content"] for m in store.get_history(USER)] == ["m2", "m3", "m4"]
    assert [m["content"] for m in store.get_recent_messages(USER, limit=2)] == ["m3", "m4"]
