from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from fluentify.db.base import Base


ROLE_LEARNER = "learner"
ROLE_ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    password_hash = Column(String, nullable=False)

    # "learner" (default) or "admin"
    role = Column(String(32), default=ROLE_LEARNER, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
