from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models import ROLES, User
from routers.auth import get_otp_store, require_role
from utils.otp_service import VerificationCodeStore

router = APIRouter(prefix="/admin", tags=["admin"])


require_admin = require_role("admin")


@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    store: VerificationCodeStore = Depends(get_otp_store),
    _: User = Depends(require_admin),
):
    """
    User totals plus a snapshot of outstanding verification codes.
    """
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return {
        "ok": True,
        "stats": {
            "total_users": db.query(User).count(),
            "verified_users": db.query(User).filter(User.is_verified.is_(True)).count(),
            "users_by_role": {role: int(by_role.get(role, 0)) for role in ROLES},
            "otp": store.stats().as_dict(),
        },
    }


@router.get("/otp-stats")
def otp_stats(
    store: VerificationCodeStore = Depends(get_otp_store),
    _: User = Depends(require_admin),
):
    return {"ok": True, **store.stats().as_dict()}


@router.get("/users")
def list_users(
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    users = db.query(User).order_by(User.id).all()
    return {"ok": True, "users": [user.to_public() for user in users]}
