from __future__ import annotations

import logging

from app.application.exceptions import LLMContractError, LLMUpstreamError
from app.application.ports.conversation_store import ConversationStorePort
from app.application.ports.dialogue_agent import DialogueAgentPort
from app.application.ports.message_platform import MessagePlatformPort
from app.application.ports.transcriber import TranscriberPort
from app.application.use_cases.send_reply import SendReplyUseCase
from app.domain.entities.message import Message

VOICE_NOT_UNDERSTOOD = "Sorry, I couldn't understand your voice message. Could you please try again?"
VOICE_FAILED = (
    "I'm having trouble processing your voice message. "
    "Could you please try sending your message as text?"
)
TEXT_FAILED = "I'm having trouble processing your message. Please try again or contact support."


class HandleIncomingMessageUseCase:
    def __init__(
        self,
        store: ConversationStorePort,
        agent: DialogueAgentPort,
        transcriber: TranscriberPort,
        platform: MessagePlatformPort,
        send_reply: SendReplyUseCase,
        history_turns: int = 10,
    ) -> None:
        self._store = store
        self._agent = agent
        self._transcriber = transcriber
        self._platform = platform
        self._send_reply = send_reply
        self._history_turns = history_turns
        self._logger = logging.getLogger(__name__)

    def handle(self, message: Message) -> None:
        if self._store.has_processed(message.id):
            self._logger.info("Duplicate message ignored", extra={"message_id": message.id})
            return
        self._store.mark_processed(message.id)

        if message.is_voice:
            text = self._transcribe(message)
            if text is None:
                return
        elif message.type == "text" and message.text:
            text = message.text
        else:
            self._logger.info(
                "Unsupported message type ignored",
                extra={"message_id": message.id, "reason": message.type},
            )
            return

        try:
            self._respond(message, text)
        except Exception as e:
            self._logger.exception(
                "Error processing message",
                extra={"message_id": message.id, "user_number": message.sender_id, "error": str(e)},
            )
            self._send_reply.notify(recipient_id=message.sender_id, text=VOICE_FAILED if message.is_voice else TEXT_FAILED)

    def _transcribe(self, message: Message) -> str | None:
        if not message.media_id:
            self._send_reply.notify(recipient_id=message.sender_id, text=VOICE_NOT_UNDERSTOOD)
            return None

        try:
            audio = self._platform.download_media(message.media_id)
            text = self._transcriber.transcribe(audio)
        except Exception as e:
            self._logger.exception(
                "Error processing voice message",
                extra={"message_id": message.id, "user_number": message.sender_id, "error": str(e)},
            )
            self._send_reply.notify(recipient_id=message.sender_id, text=VOICE_FAILED)
            return None

        if not text or not text.strip():
            self._send_reply.notify(recipient_id=message.sender_id, text=VOICE_NOT_UNDERSTOOD)
            return None

        self._logger.info("Voice message transcribed", extra={"message_id": message.id})
        return text.strip()

    def _respond(self, message: Message, text: str) -> None:
        thread_id = message.sender_id
        history = [
            {"role": m["role"], "content": m["content"]}
            for m in self._store.get_recent_messages(thread_id, limit=self._history_turns)
        ]
        self._store.append_message(
            thread_id,
            role="user",
            text=text,
            meta={"message_id": message.id, "type": message.type, "platform": message.platform},
        )

        try:
            reply_text = self._agent.reply(
                user_number=message.sender_id,
                user_name=message.profile_name,
                text=text,
                history=history,
            )
        except (LLMUpstreamError, LLMContractError) as e:
            self._logger.error("Agent failed to reply", extra={"message_id": message.id, "error": str(e)})
            reply_text = TEXT_FAILED

        if not reply_text.strip():
            self._logger.warning("Agent returned empty reply", extra={"message_id": message.id})
            return

        if self._send_reply.execute(recipient_id=message.sender_id, text=reply_text):
            self._store.append_message(thread_id, role="assistant", text=reply_text)
            self._logger.info("Reply sent", extra={"message_id": message.id, "user_number": message.sender_id})
