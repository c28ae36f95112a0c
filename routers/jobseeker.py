from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import Job, User
from routers.auth import UpdateProfileIn, apply_profile_update, require_role

router = APIRouter(prefix="/jobseeker", tags=["jobseeker"])

jobseeker_only = require_role("jobseeker")


@router.get("/profile")
def get_profile(current_user: User = Depends(jobseeker_only)):
    return {"ok": True, "user": current_user.to_public()}


@router.put("/profile")
def update_profile(
    payload: UpdateProfileIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(jobseeker_only),
):
    user = apply_profile_update(current_user, payload, db)
    return {"ok": True, "user": user.to_public()}


@router.get("/jobs")
def list_jobs(
    db: Session = Depends(get_db),
    _: User = Depends(jobseeker_only),
):
    """
    Open postings from every employer, newest first.
    """
    jobs = db.query(Job).filter(Job.is_open.is_(True)).order_by(Job.created_at.desc(), Job.id.desc()).all()
    return {"ok": True, "jobs": [job.to_public() for job in jobs]}
