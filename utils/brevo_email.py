from __future__ import annotations

import os
from typing import Optional

import requests


BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
APP_NAME = os.getenv("APP_NAME", "Job Portal")
CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:3000")


def is_configured() -> bool:
    return bool(os.getenv("BREVO_API_KEY"))


def _sender_email() -> str:
    from_email = os.getenv("BREVO_FROM") or os.getenv("EMAIL_FROM")
    if not from_email:
        raise RuntimeError("BREVO_FROM (or EMAIL_FROM) is not set")
    return from_email


def send_email(*, to_email: str, subject: str, html: str, text: Optional[str] = None) -> None:
    """
    Sends one message through the Brevo transactional email API.

    Raises RuntimeError when BREVO_API_KEY / BREVO_FROM are missing or Brevo
    rejects the request; network errors surface as requests exceptions.
    """
    api_key = os.getenv("BREVO_API_KEY")
    if not api_key:
        raise RuntimeError("BREVO_API_KEY is not set")

    payload = {
        "sender": {"email": _sender_email(), "name": APP_NAME},
        "to": [{"email": to_email}],
        "subject": subject,
        "htmlContent": html,
    }
    if text:
        payload["textContent"] = text

    resp = requests.post(
        BREVO_API_URL,
        headers={
            "accept": "application/json",
            "api-key": api_key,
            "content-type": "application/json",
        },
        json=payload,
        timeout=15,
    )
    if resp.status_code >= 300:
        raise RuntimeError(f"Brevo send failed ({resp.status_code}): {resp.text}")


def otp_email(code: str, *, ttl_minutes: int, purpose: str = "verification") -> tuple[str, str, str]:
    """Return (subject, html, text) for a verification or password-reset code."""
    if purpose == "password_reset":
        subject = f"Password Reset Code - {APP_NAME}"
        heading = "Password Reset"
        intro = "Use the following code to reset your password:"
    else:
        subject = f"Email Verification - {APP_NAME}"
        heading = "Email Verification"
        intro = f"Thank you for registering with {APP_NAME}. Use the following code to verify your email address:"

    html = f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">
      <h2>{heading}</h2>
      <p>{intro}</p>
      <div style="background:#f4f4f4;padding:20px;text-align:center">
        <span style="font-size:32px;font-weight:700;letter-spacing:5px">{code}</span>
      </div>
      <p>This code expires in {ttl_minutes} minutes.</p>
      <p>If you didn't request this, please ignore this email.</p>
    </div>
    """
    text = f"Your {APP_NAME} code is {code}. It expires in {ttl_minutes} minutes."
    return subject, html, text


def welcome_email(role: str) -> tuple[str, str, str]:
    subject = f"Welcome to {APP_NAME}!"
    html = f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">
      <h2>Welcome to {APP_NAME}!</h2>
      <p>Your account has been verified and activated.</p>
      <p>You can now access all features as a <strong>{role}</strong>.</p>
      <p><a href="{CLIENT_URL}">Start exploring</a></p>
    </div>
    """
    text = f"Your {APP_NAME} account is verified. You can now sign in as a {role}."
    return subject, html, text
