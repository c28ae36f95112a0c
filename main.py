from __future__ import annotations

import logging
import os

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI

from database import init_db
from routers.admin import router as admin_router
from routers.auth import router as auth_router
from routers.employer import router as employer_router
from routers.jobseeker import router as jobseeker_router
from utils.delivery import OtpDispatcher
from utils.otp_service import OTP_SWEEP_MINUTES, VerificationCodeStore


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="OTP Portal Backend")

# Create tables (simple projects; for production use migrations).
init_db()

# One store per process; routes reach it through app.state.
app.state.otp_store = VerificationCodeStore()
app.state.otp_dispatcher = OtpDispatcher()

app.include_router(auth_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(jobseeker_router, prefix="/api")
app.include_router(employer_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"ok": True}


@app.on_event("startup")
def _start_scheduler():
    # Periodic purge of time-expired OTPs; attempt-exhausted ones go lazily on verify.
    sched = BackgroundScheduler(timezone=os.getenv("TZ", "UTC"))
    sched.add_job(
        lambda: app.state.otp_store.sweep(),
        "interval",
        minutes=OTP_SWEEP_MINUTES,
        id="sweep_expired_otps",
        replace_existing=True,
    )
    sched.start()
    app.state._scheduler = sched


@app.on_event("shutdown")
def _stop_scheduler():
    sched = getattr(app.state, "_scheduler", None)
    if sched:
        sched.shutdown(wait=False)
