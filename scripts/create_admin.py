import argparse
import os
import sys

from sqlalchemy.orm import Session

# Add repository root to path so we can import models/db
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from database import SessionLocal, init_db  # noqa: E402
from models import User  # noqa: E402
from routers.auth import hash_password  # noqa: E402


def create_admin(*, email: str, phone: str = "", password: str = "") -> User:
    """
    Create a verified admin, or promote the account that already owns `email`.

    Promotion keeps the existing password unless a new one is given.
    """
    init_db()
    email = email.strip().lower()
    phone = phone.strip()
    db: Session = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user:
            user.role = "admin"
            if password:
                user.password_hash = hash_password(password)
            print(f"Promoting {email} to admin...")
        else:
            if not phone or not password:
                raise ValueError("phone and password are required to create a new admin")
            user = User(
                email=email,
                phone=phone,
                password_hash=hash_password(password),
                role="admin",
            )
            print(f"Creating admin {email}...")

        user.email_verified = True
        user.phone_verified = True
        user.is_verified = True
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
    finally:
        db.close()
    print(f"Admin ready (id={user.id}).")
    return user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote an admin account.")
    parser.add_argument("email")
    parser.add_argument("--phone", default="")
    parser.add_argument("--password", default="")
    args = parser.parse_args()
    create_admin(email=args.email, phone=args.phone, password=args.password)
