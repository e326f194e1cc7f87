from fastapi import Request, Depends
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User, ROLE_ADMIN, ROLE_LEARNER
from fluentify.core.security import decode_access_token
from fluentify.core.errors import NoTokenProvided, InvalidAuthToken, AdminOnly, LearnerOnly


def _extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None

    # Browser clients may send the token as a cookie instead
    token = request.cookies.get("access_token")
    if token and token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token or None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    token = _extract_token(request)
    if not token:
        print(f"[AUTH DEBUG] reject reason=missing_token path={request.url.path}", flush=True)
        raise NoTokenProvided()

    payload = decode_access_token(token)

    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        print(f"[AUTH DEBUG] reject reason=bad_subject path={request.url.path}", flush=True)
        raise InvalidAuthToken()

    user = db.get(User, user_id)
    if not user:
        print(f"[AUTH DEBUG] reject reason=user_not_found user_id={user_id} path={request.url.path}", flush=True)
        raise InvalidAuthToken()

    return user


def get_learner(
    user: User = Depends(get_current_user)
) -> User:
    """Dependency to ensure the caller is a learner."""
    if user.role != ROLE_LEARNER:
        raise LearnerOnly()
    return user


def get_admin(
    user: User = Depends(get_current_user)
) -> User:
    """Dependency to ensure the caller is an admin."""
    if user.role != ROLE_ADMIN:
        raise AdminOnly()
    return user
