from functools import lru_cache
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.dialogue_agent import DialogueAgentPort
from app.application.ports.message_platform import MessagePlatformPort
from app.application.ports.payment_provider import PaymentProviderPort
from app.application.ports.slot_store import SlotStorePort
from app.application.ports.transcriber import TranscriberPort
from app.application.use_cases.booking_lifecycle import BookingLifecycleManager
from app.application.use_cases.booking_tools import STEPWISE, BookingTools
from app.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from app.application.use_cases.handle_payment_event import HandlePaymentEventUseCase
from app.application.use_cases.send_reply import SendReplyUseCase
from app.application.utils.slot_generator import generate_default_slots
from app.domain.entities.slot import Slot
from app.infrastructure.llm.mock_agent import MockBookingAgent
from app.infrastructure.llm.openai_agent import OpenAIBookingAgent
from app.infrastructure.payments.mock_payments import MockPayments
from app.infrastructure.payments.stripe_payments import StripePayments
from app.infrastructure.store.json_store import JsonBookingStore, JsonSlotStore
from app.infrastructure.store.memory_store import (
    MemoryBookingStore,
    MemoryConversationStore,
    MemoryFieldStore,
    MemorySlotStore,
)
from app.infrastructure.transcription.null_transcriber import NullTranscriber
from app.infrastructure.transcription.openai_transcriber import OpenAITranscriber
from app.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from app.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from app.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform


logger = logging.getLogger(__name__)


def _is_dev() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


def _has_openai_key() -> bool:
    return bool(settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.strip())


def _default_slots() -> list[Slot]:
    return generate_default_slots(
        now=datetime.now(ZoneInfo(settings.BUSINESS_TIMEZONE)),
        days_ahead=settings.SLOT_DAYS_AHEAD,
        start_hour=settings.SLOT_START_HOUR,
        end_hour=settings.SLOT_END_HOUR,
    )


@lru_cache
def get_slot_store() -> SlotStorePort:
    if settings.STORE_PROVIDER.lower() == "memory":
        return MemorySlotStore(slot_factory=_default_slots)
    return JsonSlotStore(data_dir=settings.DATA_DIR, slot_factory=_default_slots)


@lru_cache
def get_booking_store() -> BookingStorePort:
    if settings.STORE_PROVIDER.lower() == "memory":
        return MemoryBookingStore()
    return JsonBookingStore(data_dir=settings.DATA_DIR)


@lru_cache
def get_field_store() -> MemoryFieldStore:
    return MemoryFieldStore()


@lru_cache
def get_conversation_store() -> MemoryConversationStore:
    return MemoryConversationStore()


@lru_cache
def get_payment_provider() -> PaymentProviderPort:
    if not settings.STRIPE_SECRET_KEY:
        if _is_dev():
            logger.info("Using MockPayments (STRIPE_SECRET_KEY missing, ENV=dev/local)")
            return MockPayments(base_url=settings.BASE_URL)
        raise ValueError("STRIPE_SECRET_KEY is required to create payment links.")

    return StripePayments(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        base_url=settings.BASE_URL,
        expiry_minutes=settings.PAYMENT_LINK_EXPIRY_MINUTES,
    )


@lru_cache
def get_message_platform() -> MessagePlatformPort:
    logger.info(
        "WHATSAPP_ACCESS_TOKEN present=%s len=%s",
        bool(settings.WHATSAPP_ACCESS_TOKEN),
        len(settings.WHATSAPP_ACCESS_TOKEN or ""),
    )

    if not (settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID):
        if _is_dev():
            logger.info("Using MockWhatsAppPlatform (credentials missing, ENV=dev/local)")
            return MockWhatsAppPlatform()
        raise ValueError("WHATSAPP_ACCESS_TOKEN and WHATSAPP_PHONE_NUMBER_ID are required to send replies.")

    client = WhatsAppClient(
        access_token=settings.WHATSAPP_ACCESS_TOKEN,
        phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
        api_version=settings.WHATSAPP_API_VERSION,
        base_url=settings.WHATSAPP_GRAPH_BASE_URL,
    )
    return WhatsAppPlatform(client=client)


@lru_cache
def get_lifecycle_manager() -> BookingLifecycleManager:
    return BookingLifecycleManager(
        slots=get_slot_store(),
        bookings=get_booking_store(),
        payments=get_payment_provider(),
        fields=get_field_store(),
        price=settings.BOOKING_PRICE,
        currency=settings.BOOKING_CURRENCY,
    )


@lru_cache
def get_agent() -> DialogueAgentPort:
    if not _has_openai_key():
        logger.info("Using MockBookingAgent (OPENAI_API_KEY missing)")
        return MockBookingAgent(tools=BookingTools(get_lifecycle_manager(), get_field_store(), mode=STEPWISE))

    tools = BookingTools(get_lifecycle_manager(), get_field_store(), mode=settings.AGENT_MODE)
    return OpenAIBookingAgent(
        tools=tools,
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        business_name=settings.BUSINESS_NAME,
        price=settings.BOOKING_PRICE,
        currency=settings.BOOKING_CURRENCY,
        timezone=settings.BUSINESS_TIMEZONE,
        max_tool_rounds=settings.AGENT_MAX_TOOL_ROUNDS,
    )


@lru_cache
def get_transcriber() -> TranscriberPort:
    if not _has_openai_key():
        return NullTranscriber()
    return OpenAITranscriber(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_TRANSCRIBE_MODEL)


def get_send_reply_use_case() -> SendReplyUseCase:
    return SendReplyUseCase(platform=get_message_platform())


def get_handle_incoming_message_use_case() -> HandleIncomingMessageUseCase:
    return HandleIncomingMessageUseCase(
        store=get_conversation_store(),
        agent=get_agent(),
        transcriber=get_transcriber(),
        platform=get_message_platform(),
        send_reply=get_send_reply_use_case(),
    )


def get_handle_payment_event_use_case() -> HandlePaymentEventUseCase:
    return HandlePaymentEventUseCase(
        lifecycle=get_lifecycle_manager(),
        payments=get_payment_provider(),
        send_reply=get_send_reply_use_case(),
    )
