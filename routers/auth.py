from __future__ import annotations

import os
import re
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, EmailStr
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models import User
from utils.delivery import OtpDispatcher
from utils.otp_service import Channel, VerificationCodeStore, VerifyOutcome, VerifyResult


router = APIRouter(prefix="/auth", tags=["auth"])
bearer = HTTPBearer(auto_error=False)

JWT_SECRET = os.getenv("JWT_SECRET", "change_me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
JWT_EXP_MIN = int(os.getenv("JWT_EXP_MIN", "10080"))  # 7 days default

PHONE_RE = re.compile(r"^[6-9]\d{9}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
OTP_RE = re.compile(r"^\d{6}$")
SIGNUP_ROLES = {"jobseeker", "employer"}


def _now() -> datetime:
    return datetime.utcnow()


def get_otp_store(request: Request) -> VerificationCodeStore:
    return request.app.state.otp_store


def get_dispatcher(request: Request) -> OtpDispatcher:
    return request.app.state.otp_dispatcher


def _create_token(*, user: User) -> str:
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": int(_now().timestamp()),
        "exp": int((_now() + timedelta(minutes=JWT_EXP_MIN)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds or not creds.credentials:
        raise HTTPException(401, "Missing Authorization token")
    try:
        payload = jwt.decode(creds.credentials, JWT_SECRET, algorithms=[JWT_ALG])
    except JWTError:
        raise HTTPException(401, "Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(401, "Invalid token")
    user = db.get(User, int(sub))
    if not user:
        raise HTTPException(401, "User not found")
    return user


def require_role(*roles: str):
    """Dependency factory: the current user must hold one of `roles`."""

    def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(403, f"Access restricted to {'/'.join(roles)} accounts")
        return current_user

    return _check


def _safe_password(raw: str) -> bytes:
    # bcrypt only looks at the first 72 bytes; cut on a character boundary.
    return raw.strip().encode("utf-8")[:72].decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(raw: str) -> str:
    return bcrypt.hashpw(_safe_password(raw), bcrypt.gensalt()).decode("utf-8")


def check_password(raw: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_safe_password(raw), password_hash.encode("utf-8"))


def _validate_password(password: str) -> None:
    password = password.strip()
    if len(password) < 6:
        raise HTTPException(400, "Password must be at least 6 characters.")
    if not PASSWORD_RE.match(password):
        raise HTTPException(
            400,
            "Password must contain at least one uppercase letter, one lowercase letter, and one number.",
        )


def _clean_name(value: Optional[str], label: str) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return None
    if not 2 <= len(value) <= 50:
        raise HTTPException(400, f"{label} must be between 2 and 50 characters.")
    return value


def _raise_for_outcome(result: VerifyResult) -> None:
    """Translate a failed verification into the HTTP error the client sees."""
    if result.ok:
        return
    if result.outcome is VerifyOutcome.TOO_MANY_ATTEMPTS:
        raise HTTPException(429, result.as_dict())
    raise HTTPException(400, result.as_dict())


def _gate_resend(store: VerificationCodeStore, identifier: str, channel: Channel) -> None:
    check = store.resend_check(identifier, channel)
    if not check.allowed:
        raise HTTPException(429, {"message": check.message, "wait_time": check.wait_seconds})


class RegisterIn(BaseModel):
    email: EmailStr
    phone: str
    password: str
    role: str  # jobseeker|employer
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@router.post("/register", status_code=201)
def register(
    payload: RegisterIn,
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
    dispatcher: OtpDispatcher = Depends(get_dispatcher),
):
    email = str(payload.email).strip().lower()
    phone = payload.phone.strip()

    if not PHONE_RE.match(phone):
        raise HTTPException(400, "Please provide a valid 10-digit phone number.")
    _validate_password(payload.password)
    role = (payload.role or "").strip().lower()
    if role not in SIGNUP_ROLES:
        raise HTTPException(400, "Role must be either jobseeker or employer.")
    first_name = _clean_name(payload.first_name, "First name")
    last_name = _clean_name(payload.last_name, "Last name")

    existing = db.query(User).filter(or_(User.email == email, User.phone == phone)).first()
    if existing:
        raise HTTPException(400, "User already exists with this email or phone.")

    user = User(
        email=email,
        phone=phone,
        password_hash=hash_password(payload.password),
        role=role,
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email/phone.
        db.rollback()
        raise HTTPException(400, "User already exists with this email or phone.")
    db.refresh(user)

    email_code = store.generate(email, Channel.EMAIL)
    phone_code = store.generate(phone, Channel.SMS)
    dispatcher.send_code(email, Channel.EMAIL, email_code)
    dispatcher.send_code(phone, Channel.SMS, phone_code)

    return {
        "ok": True,
        "message": "User registered successfully. Please verify your email and phone.",
        "user_id": user.id,
    }


class VerifyOtpIn(BaseModel):
    user_id: int
    email_otp: Optional[str] = None
    phone_otp: Optional[str] = None


@router.post("/verify-otp")
def verify_otp(
    payload: VerifyOtpIn,
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
    dispatcher: OtpDispatcher = Depends(get_dispatcher),
):
    user = db.get(User, payload.user_id)
    if not user:
        raise HTTPException(404, "User not found.")

    email_otp = (payload.email_otp or "").strip()
    phone_otp = (payload.phone_otp or "").strip()
    for label, value in (("Email", email_otp), ("Phone", phone_otp)):
        if value and not OTP_RE.match(value):
            raise HTTPException(400, f"{label} OTP must be 6 digits.")

    response = {"ok": True, "message": "OTP verification completed"}

    if email_otp:
        result = store.verify(user.email, email_otp, Channel.EMAIL)
        response["email_result"] = result.as_dict()
        if result.ok:
            user.email_verified = True

    if phone_otp:
        result = store.verify(user.phone, phone_otp, Channel.SMS)
        response["phone_result"] = result.as_dict()
        if result.ok:
            user.phone_verified = True

    newly_verified = False
    if user.email_verified and user.phone_verified and not user.is_verified:
        user.is_verified = True
        newly_verified = True

    db.add(user)
    db.commit()

    if newly_verified:
        dispatcher.send_welcome(user.email, user.role)

    response.update(
        email_verified=bool(user.email_verified),
        phone_verified=bool(user.phone_verified),
        is_verified=bool(user.is_verified),
    )
    return response


class ResendOtpIn(BaseModel):
    channel: Channel
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


@router.post("/resend-otp")
def resend_otp(
    payload: ResendOtpIn,
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
    dispatcher: OtpDispatcher = Depends(get_dispatcher),
):
    if payload.channel is Channel.EMAIL:
        identifier = str(payload.email or "").strip().lower()
        if not identifier:
            raise HTTPException(400, "Email is required for channel 'email'.")
        user = db.query(User).filter(User.email == identifier).first()
    else:
        identifier = (payload.phone or "").strip()
        if not PHONE_RE.match(identifier):
            raise HTTPException(400, "A valid phone is required for channel 'sms'.")
        user = db.query(User).filter(User.phone == identifier).first()

    if not user:
        raise HTTPException(404, "Account not found.")

    _gate_resend(store, identifier, payload.channel)

    code = store.generate(identifier, payload.channel)
    delivered = dispatcher.send_code(identifier, payload.channel, code)
    return {"ok": True, "message": "OTP resent successfully", "delivered": delivered}


class LoginIn(BaseModel):
    email: EmailStr
    password: str


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = str(payload.email).strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(401, "Invalid credentials")

    if not user.is_verified:
        raise HTTPException(401, "Please verify your account first")

    if not check_password(payload.password, user.password_hash):
        raise HTTPException(401, "Invalid credentials")

    user.last_login = _now()
    db.add(user)
    db.commit()
    db.refresh(user)

    return {
        "ok": True,
        "message": "Login successful",
        "access_token": _create_token(user=user),
        "token_type": "bearer",
        "user": user.to_public(),
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"ok": True, "user": current_user.to_public()}


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client drops its copy.
    return {"ok": True, "message": "Logged out successfully"}


class ForgotPasswordRequestIn(BaseModel):
    email: EmailStr


@router.post("/forgot-password/request-otp")
def forgot_password_request_otp(
    payload: ForgotPasswordRequestIn,
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
    dispatcher: OtpDispatcher = Depends(get_dispatcher),
):
    email = str(payload.email).strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(404, "Account not found.")

    _gate_resend(store, email, Channel.EMAIL)

    code = store.generate(email, Channel.EMAIL)
    delivered = dispatcher.send_code(email, Channel.EMAIL, code, purpose="password_reset")
    return {"ok": True, "message": "OTP sent to your email.", "delivered": delivered}


class ForgotPasswordResetIn(BaseModel):
    email: EmailStr
    otp: str
    new_password: str


@router.post("/forgot-password/reset")
def forgot_password_reset(
    payload: ForgotPasswordResetIn,
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
):
    email = str(payload.email).strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(404, "Account not found.")

    _validate_password(payload.new_password)

    result = store.verify(email, payload.otp.strip(), Channel.EMAIL)
    _raise_for_outcome(result)

    user.password_hash = hash_password(payload.new_password)
    db.add(user)
    db.commit()
    return {"ok": True, "message": "Password updated successfully."}


class UpdateProfileIn(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


def apply_profile_update(user: User, payload: UpdateProfileIn, db: Session) -> User:
    """Shared by the role profile routes; only fields that were sent are touched."""
    changed = False
    if payload.first_name is not None:
        user.first_name = _clean_name(payload.first_name, "First name")
        changed = True
    if payload.last_name is not None:
        user.last_name = _clean_name(payload.last_name, "Last name")
        changed = True

    if changed:
        db.add(user)
        db.commit()
        db.refresh(user)
    return user
