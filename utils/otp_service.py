from __future__ import annotations

import logging
import math
import os
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

OTP_LENGTH = 6
OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "10"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
OTP_RESEND_SECONDS = int(os.getenv("OTP_RESEND_SECONDS", "60"))
OTP_SWEEP_MINUTES = int(os.getenv("OTP_SWEEP_MINUTES", "5"))


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class VerifyOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    MISMATCH = "mismatch"


class ResendOutcome(str, Enum):
    ALLOWED = "allowed"
    THROTTLED = "throttled"


@dataclass
class VerificationEntry:
    code: str
    expires_at: float
    created_at: float
    attempts: int = 0

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


_VERIFY_MESSAGES = {
    VerifyOutcome.VERIFIED: "OTP verified successfully",
    VerifyOutcome.NOT_FOUND: "OTP not found or expired",
    VerifyOutcome.EXPIRED: "OTP has expired",
    VerifyOutcome.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please request a new OTP.",
    VerifyOutcome.MISMATCH: "Invalid OTP",
}


@dataclass(frozen=True)
class VerifyResult:
    outcome: VerifyOutcome
    attempts_left: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is VerifyOutcome.VERIFIED

    @property
    def message(self) -> str:
        return _VERIFY_MESSAGES[self.outcome]

    def as_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "success": self.ok,
            "outcome": self.outcome.value,
            "message": self.message,
        }
        if self.attempts_left is not None:
            data["attempts_left"] = self.attempts_left
        return data


@dataclass(frozen=True)
class ResendResult:
    outcome: ResendOutcome
    wait_seconds: int = 0

    @property
    def allowed(self) -> bool:
        return self.outcome is ResendOutcome.ALLOWED

    @property
    def message(self) -> str:
        if self.allowed:
            return "New OTP can be generated"
        return "Please wait before requesting a new OTP"


@dataclass(frozen=True)
class OtpStats:
    total_otps: int
    expired: int

    def as_dict(self) -> Dict[str, int]:
        return {"total_otps": self.total_otps, "expired": self.expired}


Key = Tuple[str, Channel]


class VerificationCodeStore:
    """
    In-memory store of outstanding verification codes keyed by (identifier, channel).

    One lock guards the whole dict; request threads and the scheduler's sweep
    job share it. Time and randomness are injectable so tests can drive expiry
    and throttling with a manual clock.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        ttl_seconds: int = OTP_TTL_MINUTES * 60,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        resend_seconds: int = OTP_RESEND_SECONDS,
    ) -> None:
        self._clock = clock
        # SystemRandom reads os.urandom; if no entropy is available it raises
        # and we let that take the process down.
        self._rng = rng if rng is not None else random.SystemRandom()
        self._ttl_seconds = ttl_seconds
        self._max_attempts = max_attempts
        self._resend_seconds = resend_seconds
        self._entries: Dict[Key, VerificationEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(identifier: str, channel: Channel) -> Key:
        return identifier, Channel(channel)

    def _new_code(self) -> str:
        return f"{self._rng.randrange(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"

    def generate(self, identifier: str, channel: Channel = Channel.EMAIL) -> str:
        """Issue a fresh code for the key, replacing any outstanding one."""
        key = self._key(identifier, channel)
        code = self._new_code()
        now = self._clock()
        with self._lock:
            self._entries[key] = VerificationEntry(
                code=code,
                expires_at=now + self._ttl_seconds,
                created_at=now,
            )
        logger.info("Generated %s OTP for %s", key[1].value, identifier)
        return code

    def verify(self, identifier: str, code: str, channel: Channel = Channel.EMAIL) -> VerifyResult:
        key = self._key(identifier, channel)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return VerifyResult(VerifyOutcome.NOT_FOUND)

            if entry.is_expired(now):
                del self._entries[key]
                return VerifyResult(VerifyOutcome.EXPIRED)

            if entry.attempts >= self._max_attempts:
                del self._entries[key]
                return VerifyResult(VerifyOutcome.TOO_MANY_ATTEMPTS)

            if entry.code != code:
                entry.attempts += 1
                return VerifyResult(
                    VerifyOutcome.MISMATCH,
                    attempts_left=self._max_attempts - entry.attempts,
                )

            del self._entries[key]

        logger.info("OTP verified for %s (%s)", identifier, key[1].value)
        return VerifyResult(VerifyOutcome.VERIFIED)

    def resend_check(self, identifier: str, channel: Channel = Channel.EMAIL) -> ResendResult:
        """
        Advisory throttle check. Does not touch the entry and is not enforced by
        generate(); callers decide whether to honour it.
        """
        key = self._key(identifier, channel)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return ResendResult(ResendOutcome.ALLOWED)
            elapsed_ms = (now - entry.created_at) * 1000

        window_ms = self._resend_seconds * 1000
        if elapsed_ms < window_ms:
            wait = math.ceil((window_ms - elapsed_ms) / 1000)
            return ResendResult(ResendOutcome.THROTTLED, wait_seconds=wait)
        return ResendResult(ResendOutcome.ALLOWED)

    def sweep(self) -> int:
        """Drop time-expired entries. Attempt-exhausted ones are left for verify()."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info("Cleaned %d expired OTPs", len(expired))
        return len(expired)

    def stats(self) -> OtpStats:
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return OtpStats(total_otps=total, expired=expired)
