from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User, ROLE_ADMIN, ROLE_LEARNER
from fluentify.auth.schemas import SignupRequest, LoginRequest
from fluentify.preferences.models import LearnerPreference
from fluentify.core.config import ALLOW_ADMIN_SIGNUP
from fluentify.core.deps import get_current_user
from fluentify.core.errors import EmailAlreadyExists, InvalidCredentials, AdminSignupDisabled, MissingRequiredFields
from fluentify.core.responses import auth_response, success_response
from fluentify.core.security import hash_password, verify_password, create_access_token

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _has_preferences(db: Session, user: User) -> bool:
    if user.role != ROLE_LEARNER:
        return False
    return db.query(LearnerPreference.id).filter(LearnerPreference.learner_id == user.id).first() is not None


def user_to_dict(db: Session, user: User) -> dict:
    data = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
    }
    if user.role == ROLE_LEARNER:
        data["hasPreferences"] = _has_preferences(db, user)
    return data


def issue_token(db: Session, user: User) -> str:
    claims = {"sub": str(user.id), "email": user.email, "role": user.role}
    if user.role == ROLE_LEARNER:
        claims["hasPreferences"] = _has_preferences(db, user)
    return create_access_token(claims)


def _create_user(db: Session, body: SignupRequest, role: str) -> User:
    name = body.name.strip()
    email = body.email.strip().lower()
    if not name or not email or not body.password:
        raise MissingRequiredFields()

    if db.query(User).filter(User.email == email).first():
        raise EmailAlreadyExists()

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(body.password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"[AUTH] Signup successful user_id={user.id} role={role}", flush=True)
    return user


def _login(db: Session, body: LoginRequest, role: str) -> User:
    email = body.email.strip().lower()
    user = db.query(User).filter(User.email == email, User.role == role).first()

    if not user or not verify_password(body.password, user.password_hash):
        print(f"[AUTH] Invalid credentials role={role}", flush=True)
        raise InvalidCredentials()

    print(f"[AUTH] Login successful user_id={user.id} role={role}", flush=True)
    return user


# =========================
# SIGNUP
# =========================
@router.post("/signup/learner", status_code=201)
def signup_learner(body: SignupRequest, db: Session = Depends(get_db)):
    user = _create_user(db, body, ROLE_LEARNER)
    return auth_response(user_to_dict(db, user), issue_token(db, user), "Signup successful")


@router.post("/signup/admin", status_code=201)
def signup_admin(body: SignupRequest, db: Session = Depends(get_db)):
    if not ALLOW_ADMIN_SIGNUP:
        raise AdminSignupDisabled()
    user = _create_user(db, body, ROLE_ADMIN)
    return auth_response(user_to_dict(db, user), issue_token(db, user), "Admin signup successful")


# =========================
# LOGIN
# =========================
@router.post("/login/learner")
def login_learner(body: LoginRequest, db: Session = Depends(get_db)):
    user = _login(db, body, ROLE_LEARNER)
    return auth_response(user_to_dict(db, user), issue_token(db, user), "Login successful")


@router.post("/login/admin")
def login_admin(body: LoginRequest, db: Session = Depends(get_db)):
    user = _login(db, body, ROLE_ADMIN)
    return auth_response(user_to_dict(db, user), issue_token(db, user), "Admin login successful")


@router.get("/profile")
def profile(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success_response({"user": user_to_dict(db, user)}, "Profile retrieved successfully")
