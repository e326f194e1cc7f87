import secrets

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User
from fluentify.chat.models import ChatSession, ChatMessage, SENDER_LEARNER, SENDER_AI
from fluentify.chat.schemas import CreateSessionRequest, UpdateSessionRequest, SendMessageRequest
from fluentify.chat.tutor import ChatTutor, learner_context, validate_message
from fluentify.core.clock import isoformat, utc_now
from fluentify.core.config import CHAT_HISTORY_WINDOW
from fluentify.core.deps import get_learner
from fluentify.core.errors import ChatAccessDenied, ChatSessionInactive, ChatSessionNotFound
from fluentify.core.responses import (
    created_response, success_response, list_response, updated_response, deleted_response,
)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_chat_tutor() -> ChatTutor:
    return ChatTutor()


def session_to_dict(session: ChatSession) -> dict:
    return {
        "id": session.id,
        "sessionToken": session.session_token,
        "language": session.language,
        "title": session.title,
        "isActive": session.is_active,
        "messageCount": session.message_count,
        "startedAt": isoformat(session.started_at),
        "endedAt": isoformat(session.ended_at),
    }


def message_to_dict(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "sessionId": message.session_id,
        "sender": message.sender,
        "message": message.message,
        "createdAt": isoformat(message.created_at),
    }


def _own_session(db: Session, session_id: int, learner_id: int) -> ChatSession:
    session = db.get(ChatSession, session_id)
    if not session:
        raise ChatSessionNotFound()
    if session.learner_id != learner_id:
        raise ChatAccessDenied()
    return session


def _recent_history(db: Session, session_id: int) -> list[ChatMessage]:
    rows = (
        db.query(ChatMessage)
        .filter(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.id.desc())
        .limit(CHAT_HISTORY_WINDOW)
        .all()
    )
    return list(reversed(rows))


# ================== SESSIONS ==================

@router.post("/sessions", status_code=201)
def create_session(
    body: CreateSessionRequest | None = None,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    body = body or CreateSessionRequest()
    session = ChatSession(
        learner_id=user.id,
        language=body.language,
        title=(body.title or "").strip() or "New Chat",
        session_token=secrets.token_hex(32),
        is_active=True,
        message_count=0,
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    print(f"[CHAT] session created session_id={session.id} learner_id={user.id}", flush=True)
    return created_response({"session": session_to_dict(session)}, "Chat session created successfully")


@router.get("/sessions")
def list_sessions(
    active_only: bool = Query(False, alias="activeOnly"),
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    q = db.query(ChatSession).filter(ChatSession.learner_id == user.id)
    if active_only:
        q = q.filter(ChatSession.is_active.is_(True))
    sessions = q.order_by(ChatSession.started_at.desc(), ChatSession.id.desc()).all()
    return list_response([session_to_dict(s) for s in sessions], "Chat sessions retrieved successfully")


@router.delete("/sessions")
def delete_all_sessions(
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    ids = [sid for (sid,) in db.query(ChatSession.id).filter(ChatSession.learner_id == user.id).all()]
    if ids:
        db.query(ChatMessage).filter(ChatMessage.session_id.in_(ids)).delete(synchronize_session=False)
        db.query(ChatSession).filter(ChatSession.id.in_(ids)).delete(synchronize_session=False)
    db.commit()

    print(f"[CHAT] deleted {len(ids)} sessions learner_id={user.id}", flush=True)
    return deleted_response(f"Deleted {len(ids)} chat sessions")


@router.get("/sessions/{session_id}")
def get_session(
    session_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    session = _own_session(db, session_id, user.id)
    messages = (
        db.query(ChatMessage)
        .filter(ChatMessage.session_id == session.id)
        .order_by(ChatMessage.id.asc())
        .all()
    )
    data = session_to_dict(session)
    data["messages"] = [message_to_dict(m) for m in messages]
    return success_response({"session": data}, "Chat session retrieved successfully")


@router.patch("/sessions/{session_id}")
def rename_session(
    session_id: int,
    body: UpdateSessionRequest,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    session = _own_session(db, session_id, user.id)
    session.title = body.title.strip()
    db.commit()
    db.refresh(session)
    return updated_response({"session": session_to_dict(session)}, "Chat session updated successfully")


@router.post("/sessions/{session_id}/end")
def end_session(
    session_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    session = _own_session(db, session_id, user.id)
    if session.is_active:
        session.is_active = False
        session.ended_at = utc_now()
        db.commit()
        db.refresh(session)
    return success_response({"session": session_to_dict(session)}, "Chat session ended successfully")


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: int,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    session = _own_session(db, session_id, user.id)
    db.query(ChatMessage).filter(ChatMessage.session_id == session.id).delete(synchronize_session=False)
    db.delete(session)
    db.commit()
    return deleted_response("Chat session deleted successfully")


# ================== MESSAGES ==================

@router.post("/sessions/{session_id}/messages", status_code=201)
def send_message(
    session_id: int,
    body: SendMessageRequest,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
    tutor: ChatTutor = Depends(get_chat_tutor),
):
    text = validate_message(body.message)
    session = _own_session(db, session_id, user.id)
    if not session.is_active:
        raise ChatSessionInactive()

    history = _recent_history(db, session.id)
    first_message = session.message_count == 0

    # The tutor answers before anything is written; an AI failure leaves the session untouched.
    context = learner_context(db, user.id, session.language)
    reply = tutor.reply(text, history, context)

    try:
        if first_message and session.title == "New Chat":
            session.title = tutor.suggest_title(text)

        learner_msg = ChatMessage(session_id=session.id, sender=SENDER_LEARNER, message=text)
        db.add(learner_msg)
        db.flush()
        ai_msg = ChatMessage(session_id=session.id, sender=SENDER_AI, message=reply)
        db.add(ai_msg)
        session.message_count = (session.message_count or 0) + 2
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(session)
    db.refresh(learner_msg)
    db.refresh(ai_msg)

    print(f"[CHAT] reply sent session_id={session.id} messages={session.message_count}", flush=True)
    return created_response(
        {
            "userMessage": message_to_dict(learner_msg),
            "aiMessage": message_to_dict(ai_msg),
            "session": session_to_dict(session),
        },
        "Message sent successfully",
    )


@router.get("/sessions/{session_id}/messages")
def list_messages(
    session_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    session = _own_session(db, session_id, user.id)
    q = db.query(ChatMessage).filter(ChatMessage.session_id == session.id)
    total = q.count()
    messages = q.order_by(ChatMessage.id.asc()).offset(offset).limit(limit).all()
    return list_response(
        [message_to_dict(m) for m in messages],
        "Messages retrieved successfully",
        meta={"count": len(messages), "totalCount": total, "limit": limit, "offset": offset},
    )
