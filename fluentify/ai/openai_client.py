"""
The one place the service talks to OpenAI.

Course generation, contest generation and the chat tutor all call
`complete_text`; any provider problem comes back as AIGenerationFailed and the
most recent failure is kept for the debug diagnostics route.
"""
import openai

from fluentify.core.config import OPENAI_API_KEY, OPENAI_MODEL, OPENAI_TIMEOUT_SECONDS
from fluentify.core.errors import AIGenerationFailed

_client: openai.OpenAI | None = None
_last_failure: str | None = None


def is_configured() -> bool:
    return bool(OPENAI_API_KEY)


def masked_key() -> str:
    if not OPENAI_API_KEY:
        return "(missing)"
    head, tail = OPENAI_API_KEY[:5], OPENAI_API_KEY[-3:]
    return f"{head}***{tail}" if len(OPENAI_API_KEY) > 12 else "***"


def _shared_client() -> openai.OpenAI | None:
    global _client
    if _client is None and is_configured():
        _client = openai.OpenAI(api_key=OPENAI_API_KEY, timeout=OPENAI_TIMEOUT_SECONDS)
    return _client


def _fail(reason: str, public_message: str | None = None) -> AIGenerationFailed:
    global _last_failure
    _last_failure = reason
    print(f"[AI] {reason}", flush=True)
    return AIGenerationFailed(public_message)


def last_failure() -> str | None:
    return _last_failure


def complete_text(
    messages: list[dict],
    max_tokens: int = 1024,
    temperature: float = 0.7,
    json_mode: bool = False,
) -> str:
    """Run one chat completion and return its stripped text."""
    client = _shared_client()
    if client is None:
        raise _fail("completion skipped: OPENAI_API_KEY is not set", "AI provider is not configured")

    extra = {"response_format": {"type": "json_object"}} if json_mode else {}
    try:
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **extra,
        )
    except openai.AuthenticationError:
        raise _fail(f"provider rejected key {masked_key()}", "AI provider authentication failed")
    except openai.OpenAIError as e:
        raise _fail(f"completion failed: {type(e).__name__}: {e}")

    text = (response.choices[0].message.content or "").strip()
    if not text:
        raise _fail("completion returned no content", "AI provider returned an empty response")
    return text


def status() -> dict:
    return {
        "configured": is_configured(),
        "key": masked_key(),
        "model": OPENAI_MODEL,
        "library": openai.__version__,
        "lastFailure": _last_failure,
    }


def log_startup():
    print(f"[AI] configured={is_configured()} key={masked_key()} model={OPENAI_MODEL} "
          f"openai={openai.__version__}", flush=True)
