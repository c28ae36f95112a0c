import os
import random
import tempfile

import pytest

# Point the app at a throwaway SQLite file and disable real transports before
# anything imports database.py / utils.sms_service.
_DB_DIR = tempfile.mkdtemp(prefix="otp-portal-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
for _var in ("BREVO_API_KEY", "BREVO_FROM", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_PHONE_NUMBER"):
    os.environ.pop(_var, None)

from fastapi.testclient import TestClient  # noqa: E402

from database import Base, engine  # noqa: E402
from utils.otp_service import Channel, VerificationCodeStore  # noqa: E402


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDispatcher:
    def __init__(self):
        self.sent = []
        self.welcomed = []
        self.fail = False

    def send_code(self, identifier, channel, code, *, purpose="verification"):
        self.sent.append((identifier, Channel(channel), code, purpose))
        return not self.fail

    def send_welcome(self, email, role):
        self.welcomed.append((email, role))
        return True

    def last_code(self, identifier, channel):
        for ident, ch, code, _ in reversed(self.sent):
            if ident == identifier and ch is Channel(channel):
                return code
        raise AssertionError(f"no code sent to {identifier} over {channel}")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return VerificationCodeStore(clock=clock, rng=random.Random(1234))


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(store, dispatcher):
    import main

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    saved = (main.app.state.otp_store, main.app.state.otp_dispatcher)
    main.app.state.otp_store = store
    main.app.state.otp_dispatcher = dispatcher
    try:
        with TestClient(main.app) as c:
            yield c
    finally:
        main.app.state.otp_store, main.app.state.otp_dispatcher = saved


DEFAULT_PASSWORD = "Secret123"


def register(client, *, email="a@x.com", phone="9876543210", role="jobseeker", password=DEFAULT_PASSWORD):
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "phone": phone, "password": password, "role": role},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["user_id"]


def register_verified(client, dispatcher, **kwargs):
    email = kwargs.get("email", "a@x.com")
    phone = kwargs.get("phone", "9876543210")
    user_id = register(client, **kwargs)
    resp = client.post(
        "/api/auth/verify-otp",
        json={
            "user_id": user_id,
            "email_otp": dispatcher.last_code(email, Channel.EMAIL),
            "phone_otp": dispatcher.last_code(phone, Channel.SMS),
        },
    )
    assert resp.json()["is_verified"] is True
    return user_id


def login(client, email="a@x.com", password=DEFAULT_PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]
