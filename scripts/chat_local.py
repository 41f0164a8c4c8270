#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no WhatsApp).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable user number for the session
- Sends your typed messages through the same HandleIncomingMessageUseCase as the webhook
- Prints whatever the (mock) WhatsApp platform would have sent back
- /pay <booking_id> completes a mock checkout and prints the confirmation
"""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv

load_dotenv()

from app.application.use_cases.handle_payment_event import CHECKOUT_COMPLETED
from app.domain.entities.message import Message
from app.domain.entities.payment_event import PaymentEvent
from app.infrastructure.payments.mock_payments import MockPayments
from app.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from app.wiring.dependencies import (
    get_conversation_store,
    get_handle_incoming_message_use_case,
    get_handle_payment_event_use_case,
    get_message_platform,
    get_payment_provider,
)


def _print_header(user_number: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"user_number: {user_number}")
    print("Type your message and press Enter.")
    print("Commands: /new, /history, /pay <booking_id>, /quit, /help")
    print("-" * 60)


def _drain(platform: MockWhatsAppPlatform, already_shown: int) -> int:
    for _, text in platform.sent[already_shown:]:
        print(f"(assistant) {text}")
    if len(platform.sent) == already_shown:
        print("(no outbound message)")
    return len(platform.sent)


def _pay(booking_id: str, shown: int, platform: MockWhatsAppPlatform) -> int:
    payments = get_payment_provider()
    if not isinstance(payments, MockPayments):
        print("/pay only works with the mock payment provider (unset STRIPE_SECRET_KEY).")
        return shown
    session_id = payments.session_for(booking_id)
    if session_id is None:
        print(f"No checkout session for {booking_id}")
        return shown
    payments.mark_paid(session_id)
    get_handle_payment_event_use_case().handle(
        PaymentEvent(type=CHECKOUT_COMPLETED, session_id=session_id, booking_id=booking_id, user_number=None)
    )
    return _drain(platform, shown)


def main() -> None:
    user_number = os.getenv("CHAT_USER_NUMBER", "15550000001")
    platform = get_message_platform()
    if not isinstance(platform, MockWhatsAppPlatform):
        print("WhatsApp credentials are set; unset them to chat locally without sending real messages.")
        return

    use_case = get_handle_incoming_message_use_case()
    store = get_conversation_store()
    shown = len(platform.sent)
    _print_header(user_number)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new  -> continue as a new user number")
            print("  /history -> show last 10 messages")
            print("  /pay <booking_id> -> complete the mock checkout for a booking")
            print("  /quit -> exit")
            continue
        if cmd == "/new":
            user_number = f"1555{int(time.time()) % 10_000_000:07d}"
            print(f"New user_number: {user_number}")
            continue
        if cmd == "/history":
            print("\n--- History (last 10) ---")
            for item in store.get_history(user_number)[-10:]:
                print(f"{item.get('role')}: {item.get('content', '')}")
            continue
        if cmd.startswith("/pay"):
            parts = user_text.split()
            if len(parts) != 2:
                print("Usage: /pay <booking_id>")
                continue
            shown = _pay(parts[1], shown, platform)
            continue

        message = Message(
            id=f"local_{int(time.time() * 1000)}",
            sender_id=user_number,
            type="text",
            timestamp=int(time.time()),
            platform="local",
            text=user_text,
            profile_name="Local Tester",
        )
        use_case.handle(message)
        shown = _drain(platform, shown)


if __name__ == "__main__":
    main()
