"""
Create all tables and, optionally, the first admin account.

Set ADMIN_EMAIL and ADMIN_PASSWORD (and optionally ADMIN_NAME) to create the
admin. Running it again is harmless: an existing email is left untouched.
"""
import sys
import os

# Add the parent directory to the path so we can import fluentify modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fluentify.db.base import Base, engine, SessionLocal
from fluentify.auth.models import User, ROLE_ADMIN
from fluentify.core.security import hash_password
import fluentify.preferences.models  # noqa: F401
import fluentify.courses.models  # noqa: F401
import fluentify.progress.models  # noqa: F401
import fluentify.contests.models  # noqa: F401
import fluentify.chat.models  # noqa: F401


def init_admin(email: str, password: str, name: str) -> bool:
    db = SessionLocal()

    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"SKIP: User '{existing.email}' (ID: {existing.id}, role: {existing.role}) already exists.")
            return True

        admin = User(name=name, email=email, password_hash=hash_password(password), role=ROLE_ADMIN)
        db.add(admin)
        db.commit()
        print(f"SUCCESS: Admin '{admin.name}' (ID: {admin.id}) created.")
        print(f"Email: {admin.email}")
        return True

    except Exception as e:
        db.rollback()
        print(f"ERROR: Failed to create admin: {str(e)}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    print("Creating tables...")
    Base.metadata.create_all(bind=engine)
    print("-" * 50)

    email = os.getenv("ADMIN_EMAIL", "").strip().lower()
    password = os.getenv("ADMIN_PASSWORD", "")
    if not email or not password:
        print("ADMIN_EMAIL / ADMIN_PASSWORD not set, no admin created.")
        sys.exit(0)
    if len(password) < 6:
        print("ERROR: ADMIN_PASSWORD must be at least 6 characters.")
        sys.exit(1)

    if init_admin(email, password, os.getenv("ADMIN_NAME", "Admin").strip() or "Admin"):
        print("-" * 50)
        print("Database initialization complete!")
    else:
        print("-" * 50)
        print("Database initialization failed!")
        sys.exit(1)
