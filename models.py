from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base


ROLES = ("jobseeker", "employer", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, unique=True, index=True, nullable=False)

    # bcrypt hash, never plaintext.
    password_hash = Column(String, nullable=False)

    role = Column(String, nullable=False, default="jobseeker")  # see ROLES
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # Each channel is confirmed by its own OTP; the account is usable once both are.
    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    two_factor_enabled = Column(Boolean, default=False, nullable=False)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "first_name": self.first_name or "",
            "last_name": self.last_name or "",
            "email_verified": bool(self.email_verified),
            "phone_verified": bool(self.phone_verified),
            "is_verified": bool(self.is_verified),
            "two_factor_enabled": bool(self.two_factor_enabled),
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=True)
    is_open = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    employer = relationship("User")

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "employer_id": self.employer_id,
            "title": self.title,
            "description": self.description,
            "location": self.location or "",
            "is_open": bool(self.is_open),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
