import os
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient


# Point the app at an in-memory database and a fixed secret before anything imports config.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["OPENAI_API_KEY"] = ""
os.environ["RETELL_API_KEY"] = ""
os.environ["ENABLE_DEBUG_ROUTES"] = "0"

from fluentify.main import app  # noqa: E402
from fluentify.db.base import Base, engine, SessionLocal  # noqa: E402
from fluentify.auth.models import User, ROLE_ADMIN, ROLE_LEARNER  # noqa: E402
from fluentify.contests.models import Contest  # noqa: E402
from fluentify.core.clock import utc_now  # noqa: E402
from fluentify.core.errors import AIGenerationFailed  # noqa: E402
from fluentify.core.security import create_access_token, hash_password  # noqa: E402
from fluentify.courses.generator import build_course_data  # noqa: E402
from fluentify.courses.models import Course  # noqa: E402
from fluentify.progress.engine import ProgressEngine  # noqa: E402


PASSWORD = "password123"


def course_units(lessons_per_unit=(2, 1), xp=50) -> list[dict]:
    """Units shaped like CourseGenerator output: ids are ordinals starting at 1."""
    units = []
    for unit_id, count in enumerate(lessons_per_unit, start=1):
        units.append({
            "id": unit_id,
            "title": f"Unit {unit_id}",
            "estimatedTime": "1 hour",
            "lessons": [
                {
                    "id": lesson_id,
                    "title": f"Lesson {unit_id}.{lesson_id}",
                    "type": "vocabulary",
                    "xpReward": xp,
                    "exercises": [{"type": "multiple_choice", "question": "Hola?", "correctAnswer": 0}],
                }
                for lesson_id in range(1, count + 1)
            ],
        })
    return units


class FakeCourseGenerator:
    def __init__(self, lessons_per_unit=(2, 1)):
        self.lessons_per_unit = lessons_per_unit
        self.calls = []

    def generate_course(self, language, expected_duration):
        self.calls.append((language, expected_duration))
        return build_course_data(language, expected_duration, course_units(self.lessons_per_unit))


class FakeContestGenerator:
    def generate_contest(self, language, difficulty_level, contest_type, question_count, topic=None):
        return {
            "title": f"{language} {difficulty_level} challenge",
            "description": "Generated for tests",
            "questions": mcq_questions()[:question_count],
        }


class FakeChatTutor:
    def __init__(self, fail=False):
        self.fail = fail
        self.seen_history = []

    def reply(self, message, history, context=None):
        if self.fail:
            raise AIGenerationFailed("AI provider is not configured")
        self.seen_history.append([m.message for m in history])
        return f"Tutor says: {message}"

    def suggest_title(self, first_message):
        return "Ordering Food"


def mcq_questions() -> list[dict]:
    return [
        {"type": "mcq", "question": "Hello?", "options": ["A) Hola", "B) Adios"], "correctAnswer": "A"},
        {"type": "mcq", "question": "Bye?", "options": ["A) Hola", "B) Adios"], "correctAnswer": "B"},
        {"type": "one-liner", "question": "Translate 'hello'", "correctAnswer": "hola",
         "acceptableAnswers": ["ola"]},
    ]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, email, role=ROLE_LEARNER, name="Test User") -> User:
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def headers_for(user: User, expires_delta: timedelta | None = None) -> dict:
    token = create_access_token(
        {"sub": str(user.id), "email": user.email, "role": user.role},
        expires_delta,
    )
    return {"Authorization": f"Bearer {token}"}


def make_course(db, learner_id, language="Spanish", lessons_per_unit=(2, 1), xp=50) -> Course:
    course_data = build_course_data(language, "1 month", course_units(lessons_per_unit, xp))
    meta = course_data["metadata"]
    course = Course(
        learner_id=learner_id,
        language=language,
        expected_duration="1 month",
        title=course_data["course"]["title"],
        total_units=meta["totalUnits"],
        total_lessons=meta["totalLessons"],
        estimated_total_time=meta["estimatedTotalTime"],
        course_data=course_data,
        is_active=True,
    )
    db.add(course)
    db.flush()
    ProgressEngine(db).initialize_course(learner_id, course.id)
    db.refresh(course)
    return course


def make_contest(db, admin_id, start_offset=timedelta(hours=-1), end_offset=timedelta(days=1),
                 published=True, questions=None, contest_type="mix") -> Contest:
    now = utc_now()
    questions = questions if questions is not None else mcq_questions()
    contest = Contest(
        admin_id=admin_id,
        title="Spanish Basics",
        description="",
        language="Spanish",
        difficulty_level="beginner",
        contest_type=contest_type,
        questions=questions,
        total_questions=len(questions),
        start_date=now + start_offset,
        end_date=now + end_offset,
        is_published=published,
    )
    db.add(contest)
    db.commit()
    db.refresh(contest)
    return contest


@pytest.fixture
def learner(db) -> User:
    return make_user(db, "learner@example.com", name="Lena Learner")


@pytest.fixture
def other_learner(db) -> User:
    return make_user(db, "other@example.com", name="Otto Other")


@pytest.fixture
def admin(db) -> User:
    return make_user(db, "admin@example.com", role=ROLE_ADMIN, name="Ada Admin")


@pytest.fixture
def learner_headers(learner) -> dict:
    return headers_for(learner)


@pytest.fixture
def admin_headers(admin) -> dict:
    return headers_for(admin)
