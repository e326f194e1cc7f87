"""
AI course generation.

Generation is chunked so a single reply never has to hold the whole course:
  1. an outline call returns the unit list
  2. one call per unit returns that unit's lessons
The pieces are combined into the course_data tree stored on Course.
"""
import re

from fluentify.ai.json_extract import parse_ai_json
from fluentify.ai.openai_client import complete_text
from fluentify.core.clock import utc_now
from fluentify.core.config import DEFAULT_LESSON_XP
from fluentify.core.errors import AIGenerationFailed, AppError

DEFAULT_UNIT_MINUTES = 150

SYSTEM_PROMPT = (
    "You are a curriculum designer for a language learning app. "
    "You respond with a single valid JSON object and nothing else."
)


def _outline_prompt(language: str, expected_duration: str) -> str:
    return f"""Generate a comprehensive course outline for learning {language} over {expected_duration}.

Respond with ONLY valid JSON in this exact format:
{{
  "units": [
    {{
      "id": 1,
      "title": "Unit Title",
      "description": "What students will learn",
      "difficulty": "Beginner",
      "estimatedTime": "3-4 hours",
      "lessonCount": 6,
      "topics": ["topic1", "topic2", "topic3"]
    }}
  ]
}}

Requirements:
- 6 units with progressive difficulty: Beginner (Units 1-2), Elementary (Units 3-4), Intermediate (Units 5-6)
- Each unit has 6 lessons
- Practical topics for real-world communication
- Cover vocabulary, grammar, conversation, pronunciation and cultural context
- Each unit builds on the previous one"""


def _unit_prompt(language: str, outline: dict, unit_number: int) -> str:
    topics = ", ".join(str(t) for t in outline.get("topics") or [])
    lesson_count = outline.get("lessonCount") or 6
    return f"""Generate detailed lessons for Unit {unit_number} of a {language} course.

Unit info:
- Title: {outline.get("title", "")}
- Description: {outline.get("description", "")}
- Difficulty: {outline.get("difficulty", "")}
- Topics: {topics}
- Number of lessons: {lesson_count}

Respond with ONLY valid JSON in this exact format:
{{
  "id": {unit_number},
  "title": "{outline.get("title", "")}",
  "description": "...",
  "difficulty": "{outline.get("difficulty", "")}",
  "estimatedTime": "{outline.get("estimatedTime", "")}",
  "lessons": [
    {{
      "id": 1,
      "title": "Lesson Title",
      "type": "vocabulary|grammar|conversation|review",
      "description": "What the lesson covers",
      "keyPhrases": ["phrase 1", "phrase 2"],
      "vocabulary": [
        {{"word": "foreign word", "translation": "english", "pronunciation": "phonetic", "example": "example sentence"}}
      ],
      "grammarPoints": [
        {{"topic": "grammar topic", "explanation": "brief explanation", "examples": ["example 1"]}}
      ],
      "exercises": [
        {{"type": "multiple_choice|translation|matching|listening", "question": "...", "options": ["a", "b", "c", "d"], "correctAnswer": 0}}
      ],
      "estimatedDuration": 15,
      "xpReward": {DEFAULT_LESSON_XP}
    }}
  ]
}}

IMPORTANT:
- Create exactly {lesson_count} lessons, numbered from 1
- Vocabulary lessons have 5-8 vocabulary items; grammar lessons 2-4 grammar points
- 3-5 varied exercises per lesson
- The last lesson is type "review" covering all unit topics"""


def _unit_minutes(estimated_time) -> int:
    """"3-4 hours" -> 180, "90 minutes" -> 90, anything unreadable -> default."""
    if isinstance(estimated_time, (int, float)) and not isinstance(estimated_time, bool):
        return int(estimated_time)
    match = re.search(r"\d+", str(estimated_time or ""))
    if not match:
        return DEFAULT_UNIT_MINUTES
    value = int(match.group())
    if "hour" in str(estimated_time).lower():
        return value * 60
    return value


class CourseGenerator:
    """Builds a course_data tree from the AI provider. Swappable in tests."""

    def __init__(self, complete=complete_text):
        self._complete = complete

    def _ask(self, prompt: str, max_tokens: int) -> dict:
        text = self._complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=0.7,
            json_mode=True,
        )
        data = parse_ai_json(text)
        if not isinstance(data, dict):
            raise AIGenerationFailed("AI returned an unexpected JSON shape")
        return data

    def generate_outline(self, language: str, expected_duration: str) -> list[dict]:
        outline = self._ask(_outline_prompt(language, expected_duration), max_tokens=2048)
        units = outline.get("units")
        if not isinstance(units, list) or not units:
            raise AIGenerationFailed("Course outline has no units")
        return units

    def generate_unit(self, language: str, outline: dict, unit_number: int) -> dict:
        unit = self._ask(_unit_prompt(language, outline, unit_number), max_tokens=8192)
        lessons = unit.get("lessons")
        if not isinstance(lessons, list) or not lessons:
            raise AIGenerationFailed(f"Unit {unit_number} has no lessons")

        # Ids drive progress tracking, so they are normalised to ordinals
        unit["id"] = unit_number
        for index, lesson in enumerate(lessons, start=1):
            if not isinstance(lesson, dict):
                raise AIGenerationFailed(f"Unit {unit_number} has a malformed lesson")
            lesson["id"] = index
            lesson.setdefault("xpReward", DEFAULT_LESSON_XP)
        unit.setdefault("title", outline.get("title", f"Unit {unit_number}"))
        unit.setdefault("estimatedTime", outline.get("estimatedTime"))
        return unit

    def generate_course(self, language: str, expected_duration: str) -> dict:
        print(f"[COURSE] generating language={language} duration={expected_duration}", flush=True)
        try:
            outline = self.generate_outline(language, expected_duration)
            print(f"[COURSE] outline ready units={len(outline)}", flush=True)

            units = []
            for number, unit_outline in enumerate(outline, start=1):
                if not isinstance(unit_outline, dict):
                    raise AIGenerationFailed("Course outline has a malformed unit")
                print(f"[COURSE]   generating unit {number}: {unit_outline.get('title', '')}", flush=True)
                units.append(self.generate_unit(language, unit_outline, number))
        except AppError:
            raise
        except Exception as e:
            print(f"[COURSE] generation failed: {type(e).__name__}: {e}", flush=True)
            raise AIGenerationFailed(f"Failed to generate course content: {e}")

        return build_course_data(language, expected_duration, units)


def build_course_data(language: str, expected_duration: str, units: list[dict]) -> dict:
    total_lessons = sum(len(unit.get("lessons") or []) for unit in units)
    return {
        "course": {
            "title": f"{language} Learning Journey",
            "language": language,
            "duration": expected_duration,
            "totalLessons": total_lessons,
            "generatedAt": utc_now().isoformat(),
            "version": "1.0",
            "units": units,
        },
        "metadata": {
            "language": language,
            "totalUnits": len(units),
            "totalLessons": total_lessons,
            "estimatedTotalTime": sum(_unit_minutes(unit.get("estimatedTime")) for unit in units),
        },
    }
