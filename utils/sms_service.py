from __future__ import annotations

import os
from typing import Optional

from twilio.rest import Client


TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
SMS_COUNTRY_CODE = os.getenv("SMS_COUNTRY_CODE", "+91")

_client: Optional[Client] = None


def is_configured() -> bool:
    return bool(TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER)


def _twilio_client() -> Client:
    global _client
    if _client is None:
        if not is_configured():
            raise RuntimeError("TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN / TWILIO_PHONE_NUMBER not set")
        _client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
    return _client


def to_e164(phone: str) -> str:
    phone = (phone or "").strip()
    if phone.startswith("+"):
        return phone
    return f"{SMS_COUNTRY_CODE}{phone}"


def send_sms(*, to_phone: str, body: str) -> str:
    """Send a text message through Twilio and return the message SID."""
    message = _twilio_client().messages.create(
        body=body,
        from_=TWILIO_PHONE_NUMBER,
        to=to_e164(to_phone),
    )
    return message.sid
