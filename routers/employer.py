from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import get_db
from models import Job, User
from routers.auth import UpdateProfileIn, apply_profile_update, require_role

router = APIRouter(prefix="/employer", tags=["employer"])

employer_only = require_role("employer")


class JobCreate(BaseModel):
    title: str
    description: str
    location: Optional[str] = None


@router.get("/profile")
def get_profile(current_user: User = Depends(employer_only)):
    return {"ok": True, "user": current_user.to_public()}


@router.put("/profile")
def update_profile(
    payload: UpdateProfileIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(employer_only),
):
    user = apply_profile_update(current_user, payload, db)
    return {"ok": True, "user": user.to_public()}


@router.post("/job", status_code=201)
def create_job(
    job_in: JobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(employer_only),
):
    title = job_in.title.strip()
    description = job_in.description.strip()
    if not title or not description:
        raise HTTPException(status_code=400, detail="Title and description are required")

    job = Job(
        employer_id=current_user.id,
        title=title,
        description=description,
        location=(job_in.location or "").strip() or None,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return {"ok": True, "job": job.to_public()}


@router.get("/jobs")
def my_jobs(
    db: Session = Depends(get_db),
    current_user: User = Depends(employer_only),
):
    jobs = db.query(Job).filter(Job.employer_id == current_user.id).order_by(Job.id.desc()).all()
    return {"ok": True, "jobs": [job.to_public() for job in jobs]}
