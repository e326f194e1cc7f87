"""
AI language tutor used by the chat routes.

The tutor is stateless: every reply is generated from the system prompt, the
last CHAT_HISTORY_WINDOW messages of the session and the new learner message.
"""
from sqlalchemy.orm import Session

from fluentify.ai.openai_client import complete_text
from fluentify.chat.models import SENDER_LEARNER
from fluentify.core.config import CHAT_MESSAGE_MAX_LENGTH
from fluentify.core.errors import AIGenerationFailed, InvalidChatMessage
from fluentify.courses.models import Course
from fluentify.courses.structure import from_course_data
from fluentify.progress.models import LessonProgress, UserStats
from fluentify.progress.views import progress_percentage

TITLE_MAX_LENGTH = 50

BASE_PROMPT = """You are Fluentify AI, a friendly and knowledgeable language learning assistant. Your role is to help learners with their language learning journey.

Core guidelines:
- Be encouraging, patient, and supportive
- Provide clear, concise explanations with examples
- Adapt your responses to the learner's level
- Focus on practical, real-world language use
- Correct mistakes gently and constructively"""

CAPABILITIES = """

You can help with vocabulary and pronunciation, grammar, practice dialogues,
cultural insights, study tips, questions about lessons, translations and
common expressions.

When the learner describes a real-world scenario (restaurant, airport, hotel,
shopping, meeting people, emergencies, work), give:
1. Key phrases for that situation
2. Pronunciation tips
3. Cultural context and etiquette
4. A short example dialogue
5. Common responses they might hear

Keep responses concise. If the learner asks about something unrelated to
language learning, politely redirect them to language topics."""


def validate_message(message) -> str:
    """Return the trimmed message or raise InvalidChatMessage."""
    if not isinstance(message, str) or not message:
        raise InvalidChatMessage("Message must be a non-empty string")
    trimmed = message.strip()
    if not trimmed:
        raise InvalidChatMessage("Message cannot be empty")
    if len(trimmed) > CHAT_MESSAGE_MAX_LENGTH:
        raise InvalidChatMessage(
            f"Message is too long. Maximum {CHAT_MESSAGE_MAX_LENGTH} characters allowed."
        )
    return trimmed


def extract_topic(message: str) -> str:
    words = " ".join(message.strip().split()[:6])
    if len(words) > TITLE_MAX_LENGTH:
        return words[:TITLE_MAX_LENGTH] + "..."
    return words or "New Chat"


def build_system_prompt(context: dict | None) -> str:
    prompt = BASE_PROMPT
    if context:
        if context.get("language"):
            prompt += f"\n- The learner is studying: {context['language']}"
        if context.get("current_lesson"):
            prompt += f"\n- Current lesson focus: {context['current_lesson']}"
        if context.get("progress"):
            prompt += f"\n- Learner progress: {context['progress']}"
        if context.get("recent_topics"):
            prompt += f"\n- Recent topics covered: {', '.join(context['recent_topics'])}"
    return prompt + CAPABILITIES


def learner_context(db: Session, learner_id: int, language: str | None = None) -> dict:
    context = {"language": language, "current_lesson": None, "progress": None, "recent_topics": []}

    q = db.query(Course).filter(Course.learner_id == learner_id, Course.is_active.is_(True))
    courses = q.order_by(Course.created_at.desc(), Course.id.desc()).all()
    if language:
        courses = [c for c in courses if c.language.lower() == language.lower()]
    if not courses:
        return context

    course = courses[0]
    context["language"] = course.language

    stats = (
        db.query(UserStats)
        .filter(UserStats.learner_id == learner_id, UserStats.course_id == course.id)
        .first()
    )
    done = stats.lessons_completed if stats else 0
    context["progress"] = f"{progress_percentage(done, course.total_lessons)}% complete"

    recent = (
        db.query(LessonProgress)
        .filter(
            LessonProgress.learner_id == learner_id,
            LessonProgress.course_id == course.id,
            LessonProgress.is_completed.is_(True),
        )
        .order_by(LessonProgress.completed_at.desc(), LessonProgress.id.desc())
        .limit(5)
        .all()
    )
    if recent:
        structure = from_course_data(course.course_data)
        titles = []
        for row in recent:
            lesson = structure.find_lesson(row.unit_id, row.lesson_id)
            if lesson and lesson.title and lesson.title not in titles:
                titles.append(lesson.title)
        if titles:
            context["current_lesson"] = titles[0]
            context["recent_topics"] = titles[:3]
    return context


class ChatTutor:
    def __init__(self, complete=complete_text):
        self._complete = complete

    def reply(self, message: str, history: list, context: dict | None = None) -> str:
        """history: ChatMessage rows, oldest first, not including *message*."""
        messages = [{"role": "system", "content": build_system_prompt(context)}]
        for item in history:
            role = "user" if item.sender == SENDER_LEARNER else "assistant"
            messages.append({"role": role, "content": item.message})
        messages.append({"role": "user", "content": message})

        return self._complete(messages, max_tokens=2048, temperature=0.8)

    def suggest_title(self, first_message: str) -> str:
        prompt = (
            "Based on this user message, generate a short, descriptive title (3-6 words max) "
            f'for the chat session.\nUser message: "{first_message}"\n\n'
            "Respond with ONLY the title, nothing else."
        )
        try:
            title = self._complete(
                [{"role": "user", "content": prompt}],
                max_tokens=50,
                temperature=0.7,
            )
        except AIGenerationFailed as e:
            print(f"[CHAT] title generation failed, using message prefix: {e.message}", flush=True)
            return extract_topic(first_message)

        title = title.replace('"', "").replace("'", "").strip()
        if len(title) > TITLE_MAX_LENGTH:
            title = title[:TITLE_MAX_LENGTH] + "..."
        return title or extract_topic(first_message)
