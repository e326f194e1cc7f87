from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fluentify.core.config import CORS_ORIGINS, ENABLE_DEBUG_ROUTES
from fluentify.core.errors import AppError, ErrorKind, MissingRequiredFields, ValidationFailed
from fluentify.core.responses import error_response

from fluentify.db.base import Base, engine
# Import every model module so create_all sees all tables
from fluentify.auth.models import User  # noqa: F401
from fluentify.preferences.models import LearnerPreference  # noqa: F401
from fluentify.courses.models import Course  # noqa: F401
from fluentify.progress.models import UnitProgress, LessonProgress, ExerciseAttempt, UserStats  # noqa: F401
from fluentify.contests.models import Contest, ContestSubmission  # noqa: F401
from fluentify.chat.models import ChatSession, ChatMessage  # noqa: F401

from fluentify.auth.routes import router as auth_router
from fluentify.preferences.routes import router as preferences_router
from fluentify.courses.routes import router as courses_router
from fluentify.progress.routes import router as progress_router
from fluentify.contests.routes import router as contests_router
from fluentify.chat.routes import router as chat_router
from fluentify.admin.routes import router as admin_router
from fluentify.retell.routes import router as retell_router
from fluentify.system.routes import router as system_router, debug_router


STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.WINDOW_VIOLATION: 400,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
}


app = FastAPI(title="Fluentify", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AppError)
def handle_app_error(request: Request, exc: AppError):
    status = STATUS_BY_KIND.get(exc.kind, 500)
    if status >= 500:
        print(f"[ERROR] {request.method} {request.url.path} -> {status} {exc.code}: {exc.message}", flush=True)
    return JSONResponse(status_code=status, content=error_response(exc.message, exc.code))


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors and all(e.get("type") == "missing" for e in errors):
        fields = [str(e["loc"][-1]) for e in errors if e.get("loc")]
        err = MissingRequiredFields(f"Missing required fields: {', '.join(fields)}")
        return JSONResponse(status_code=400, content=error_response(err.message, err.code))

    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{field}: {first.get('msg')}" if field else first.get("msg")
    err = ValidationFailed(detail or None)
    return JSONResponse(status_code=422, content=error_response(err.message, err.code))


# Create database tables (still useful in dev; in production prefer Alembic)
Base.metadata.create_all(bind=engine)

# Log OpenAI status once at startup
try:
    from fluentify.ai.openai_client import log_startup as _ai_log_startup
    _ai_log_startup()
except Exception as _e:
    print(f"[AI] startup log failed: {_e}", flush=True)

# Only expose debug routes (including diagnostics) when explicitly enabled.
if ENABLE_DEBUG_ROUTES:
    app.include_router(debug_router)

app.include_router(system_router)
app.include_router(auth_router)
app.include_router(preferences_router)
app.include_router(courses_router)
app.include_router(progress_router)
app.include_router(contests_router)
app.include_router(chat_router)
app.include_router(admin_router)
app.include_router(retell_router)
