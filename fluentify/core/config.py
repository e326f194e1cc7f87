"""
Configuration constants for the application.

Everything is read from the environment. A .env file at the project root is
loaded first so local development does not need exported variables.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def is_production() -> bool:
    return bool(
        os.getenv("RAILWAY_ENVIRONMENT")
        or os.getenv("ENVIRONMENT", "").lower() == "production"
    )


# OpenAI (course/contest generation and the chat tutor)
# IMPORTANT: Do NOT hardcode keys in code or commit them to git.
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "120"))

# Retell voice practice
RETELL_API_KEY = os.getenv("RETELL_API_KEY", "").strip()
RETELL_CREATE_CALL_URL = "https://api.retellai.com/v2/create-web-call"

# Comma separated list of allowed browser origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGIN", "http://localhost:5173").split(",")
    if origin.strip()
]

# Admin accounts can be created through the public signup route unless disabled
ALLOW_ADMIN_SIGNUP = _flag("ALLOW_ADMIN_SIGNUP", "1")

ENABLE_DEBUG_ROUTES = _flag("ENABLE_DEBUG_ROUTES", "0")

# Learning rules
DEFAULT_LESSON_XP = 50
DEFAULT_LESSON_SCORE = 100

# Chat tutor
CHAT_MESSAGE_MAX_LENGTH = 2000
CHAT_HISTORY_WINDOW = 10

# Contests
CONTEST_TYPES = ("mcq", "one-liner", "mix")
DEFAULT_CONTEST_QUESTION_COUNT = 10
DEFAULT_LEADERBOARD_LIMIT = 100
