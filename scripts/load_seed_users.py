import os
import sys
from typing import Optional

import yaml
from sqlalchemy import or_
from sqlalchemy.orm import Session

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from database import SessionLocal, init_db  # noqa: E402
from models import ROLES, User  # noqa: E402
from routers.auth import hash_password  # noqa: E402


def load_seed_users(yml_path: Optional[str] = None) -> int:
    """
    Create the accounts listed in seed_users.yml as fully verified users.

    Existing emails/phones are skipped. Returns the number of users added.
    """
    init_db()
    yml_path = yml_path or os.path.join(os.path.dirname(__file__), "seed_users.yml")
    with open(yml_path, "r") as f:
        data = yaml.safe_load(f) or {}

    db: Session = SessionLocal()
    added = 0
    try:
        for u in (data.get("users", []) or []):
            email = str(u.get("email", "")).strip().lower()
            phone = str(u.get("phone", "")).strip()
            role = u.get("role", "jobseeker")
            if not email or not phone or role not in ROLES:
                print(f"Skipping invalid entry: {u!r}")
                continue

            existing = db.query(User).filter(or_(User.email == email, User.phone == phone)).first()
            if existing:
                print(f"User {email} already exists. Skipping.")
                continue

            db.add(
                User(
                    email=email,
                    phone=phone,
                    password_hash=hash_password(str(u["password"])),
                    role=role,
                    first_name=u.get("first_name"),
                    last_name=u.get("last_name"),
                    email_verified=True,
                    phone_verified=True,
                    is_verified=True,
                )
            )
            print(f"Adding {role} {email}...")
            added += 1

        db.commit()
    finally:
        db.close()
    print(f"Seed users loaded ({added} added).")
    return added


if __name__ == "__main__":
    load_seed_users(sys.argv[1] if len(sys.argv) > 1 else None)
