from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fluentify.db.session import get_db
from fluentify.auth.models import User
from fluentify.preferences.models import LearnerPreference
from fluentify.preferences.schemas import PreferencesRequest
from fluentify.core.clock import isoformat
from fluentify.core.deps import get_learner
from fluentify.core.errors import DuplicatePreferences, PreferencesNotFound
from fluentify.core.responses import created_response, list_response, updated_response, deleted_response

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


def _to_dict(pref: LearnerPreference) -> dict:
    return {
        "id": pref.id,
        "language": pref.language,
        "expectedDuration": pref.expected_duration,
        "createdAt": isoformat(pref.created_at),
        "updatedAt": isoformat(pref.updated_at),
    }


def _get_row(db: Session, learner_id: int) -> LearnerPreference | None:
    return db.query(LearnerPreference).filter(LearnerPreference.learner_id == learner_id).first()


@router.post("/learner", status_code=201)
def save_preferences(
    body: PreferencesRequest,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    if _get_row(db, user.id):
        raise DuplicatePreferences()

    pref = LearnerPreference(
        learner_id=user.id,
        language=body.language.strip(),
        expected_duration=body.expected_duration.strip(),
    )
    db.add(pref)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicatePreferences()
    db.refresh(pref)

    print(f"[PREFS] saved learner_id={user.id} language={pref.language}", flush=True)
    return created_response(_to_dict(pref), "Preferences saved successfully")


@router.get("/learner")
def get_preferences(
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    pref = _get_row(db, user.id)
    rows = [_to_dict(pref)] if pref else []
    return list_response(rows, "Preferences retrieved successfully")


@router.put("/learner")
def update_preferences(
    body: PreferencesRequest,
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    pref = _get_row(db, user.id)
    if not pref:
        raise PreferencesNotFound()

    pref.language = body.language.strip()
    pref.expected_duration = body.expected_duration.strip()
    db.commit()
    db.refresh(pref)
    return updated_response(_to_dict(pref), "Preferences updated successfully")


@router.delete("/learner")
def delete_preferences(
    user: User = Depends(get_learner),
    db: Session = Depends(get_db),
):
    pref = _get_row(db, user.id)
    if not pref:
        raise PreferencesNotFound()

    db.delete(pref)
    db.commit()
    return deleted_response("Preferences deleted successfully")
