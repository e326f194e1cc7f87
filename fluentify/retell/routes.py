"""
Voice pronunciation practice through Retell web calls.

The backend only creates the call; the browser talks to Retell directly with
the returned access token.
"""
import requests
from fastapi import APIRouter, Depends

from fluentify.auth.models import User
from fluentify.core import config
from fluentify.core.clock import isoformat, utc_now
from fluentify.core.deps import get_current_user
from fluentify.core.errors import (
    RetellAgentRequired, RetellApiError, RetellAuthenticationFailed, RetellInvalidAgent,
    RetellNotConfigured, RetellRateLimited,
)
from fluentify.core.responses import created_response
from fluentify.retell.schemas import CreateCallRequest

router = APIRouter(prefix="/api/retell", tags=["retell"])

REQUEST_TIMEOUT_SECONDS = 15


def _error_message(r: requests.Response) -> str:
    try:
        j = r.json()
        if isinstance(j, dict):
            return str(j.get("message") or j.get("error") or "")
    except ValueError:
        pass
    return ""


def _raise_for_retell(r: requests.Response) -> None:
    message = _error_message(r)
    print(f"[RETELL] create-call failed status={r.status_code} body={r.text[:200]!r}", flush=True)

    if r.status_code in (401, 403):
        raise RetellAuthenticationFailed()
    if r.status_code == 429:
        raise RetellRateLimited()
    if r.status_code in (400, 404) and "agent" in message.lower():
        raise RetellInvalidAgent()
    raise RetellApiError(message or None)


@router.post("/create-call", status_code=201)
def create_call(
    body: CreateCallRequest,
    user: User = Depends(get_current_user),
):
    agent_id = (body.agent_id or "").strip()
    if not agent_id:
        raise RetellAgentRequired()

    if not config.RETELL_API_KEY:
        print("[RETELL] RETELL_API_KEY is not configured", flush=True)
        raise RetellNotConfigured()

    try:
        r = requests.post(
            config.RETELL_CREATE_CALL_URL,
            json={
                "agent_id": agent_id,
                "metadata": {"user_id": user.id, "created_at": isoformat(utc_now())},
            },
            headers={"Authorization": f"Bearer {config.RETELL_API_KEY}"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        print("[RETELL] network error:", repr(exc), flush=True)
        raise RetellApiError("Could not reach Retell AI service")

    if not (200 <= r.status_code < 300):
        _raise_for_retell(r)

    try:
        data = r.json()
    except ValueError:
        raise RetellApiError("Invalid response from Retell AI service")
    print(f"[RETELL] call created call_id={data.get('call_id')} user_id={user.id}", flush=True)
    return created_response(
        {
            "accessToken": data.get("access_token"),
            "callId": data.get("call_id"),
            "agentId": data.get("agent_id"),
        },
        "Call session created successfully! You can now start your pronunciation practice.",
    )
