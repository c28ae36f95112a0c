from __future__ import annotations

import logging

import requests
from twilio.base.exceptions import TwilioRestException

from utils import brevo_email, sms_service
from utils.otp_service import OTP_TTL_MINUTES, Channel


logger = logging.getLogger(__name__)


class OtpDispatcher:
    """
    Hands generated codes to email (Brevo) or SMS (Twilio).

    Delivery problems are logged and reported as False; they never reach the
    store, so a code stays valid even if it could not be sent. When a transport
    is not configured the code is written to the log instead (local dev).
    """

    def send_code(self, identifier: str, channel: Channel, code: str, *, purpose: str = "verification") -> bool:
        channel = Channel(channel)
        try:
            if channel is Channel.SMS:
                return self._send_sms(identifier, code)
            return self._send_email(identifier, code, purpose)
        except (requests.RequestException, TwilioRestException, RuntimeError) as exc:
            logger.warning("Failed to deliver %s OTP to %s: %s", channel.value, identifier, exc)
            return False

    def send_welcome(self, email: str, role: str) -> bool:
        if not brevo_email.is_configured():
            logger.info("[DEV EMAIL] welcome message for %s (%s)", email, role)
            return True
        subject, html, text = brevo_email.welcome_email(role)
        try:
            brevo_email.send_email(to_email=email, subject=subject, html=html, text=text)
        except (requests.RequestException, RuntimeError) as exc:
            logger.warning("Welcome email to %s failed: %s", email, exc)
            return False
        return True

    def _send_email(self, email: str, code: str, purpose: str) -> bool:
        if not brevo_email.is_configured():
            logger.info("[DEV EMAIL] %s OTP for %s: %s", purpose, email, code)
            return True
        subject, html, text = brevo_email.otp_email(code, ttl_minutes=OTP_TTL_MINUTES, purpose=purpose)
        brevo_email.send_email(to_email=email, subject=subject, html=html, text=text)
        return True

    def _send_sms(self, phone: str, code: str) -> bool:
        if not sms_service.is_configured():
            logger.info("[DEV SMS] OTP for %s: %s", phone, code)
            return True
        body = (
            f"Your {brevo_email.APP_NAME} verification code is: {code}. "
            f"Valid for {OTP_TTL_MINUTES} minutes. Do not share this code."
        )
        sid = sms_service.send_sms(to_phone=phone, body=body)
        logger.info("SMS sent to %s (sid=%s)", phone, sid)
        return True
