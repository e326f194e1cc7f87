from fluentify.ai.json_extract import parse_ai_json
from fluentify.ai.openai_client import complete_text
from fluentify.contests.scoring import MCQ, ONE_LINER, MIX, validate_contest_structure
from fluentify.core.errors import AIGenerationFailed, InvalidQuestionFormat

SYSTEM_PROMPT = (
    "You are an expert language assessment creator. "
    "You respond with a single valid JSON object and nothing else."
)

TYPE_INSTRUCTIONS = {
    MCQ: """MCQ (multiple choice) questions:
- Each question has 4 options (A, B, C, D) and exactly one correct answer
- correctAnswer is the option letter, e.g. "B"
- Vary the position of correct answers
- Mix fill-in-blank, complete sentence, choose meaning and identify error formats""",
    ONE_LINER: """One-liner questions:
- Each question needs a short text answer (1-3 words)
- Test vocabulary, conjugation, article usage and preposition choices
- Answers must be specific and unambiguous
- List reasonable variations in acceptableAnswers""",
    MIX: """Mixed question types:
- About 60% MCQ and 40% one-liner questions
- MCQ: 4 options, one correct answer given as the option letter
- One-liner: short text answers with acceptableAnswers variations""",
}

DIFFICULTY_INSTRUCTIONS = {
    "beginner": """- Basic vocabulary (common words, everyday objects)
- Simple present tense and basic grammar
- Common phrases and greetings
- Familiar topics (family, food, numbers, colors)""",
    "intermediate": """- Broader vocabulary including abstract concepts
- Multiple tenses and more complex grammar
- Idiomatic expressions and collocations
- Questions requiring inference from context""",
    "advanced": """- Nuanced vocabulary and formal/informal registers
- Subjunctive, conditional and other complex structures
- Cultural references and idiomatic mastery
- Questions requiring deep comprehension""",
}

MCQ_TEMPLATE = """{
      "type": "mcq",
      "question": "Question text",
      "options": ["A) Option 1", "B) Option 2", "C) Option 3", "D) Option 4"],
      "correctAnswer": "A",
      "explanation": "Why this is correct"
    }"""

ONE_LINER_TEMPLATE = """{
      "type": "one-liner",
      "question": "Question text",
      "correctAnswer": "expected answer",
      "acceptableAnswers": ["variation 1", "variation 2"],
      "explanation": "Brief explanation"
    }"""


def _question_template(contest_type: str) -> str:
    if contest_type == ONE_LINER:
        return ONE_LINER_TEMPLATE
    if contest_type == MIX:
        return MCQ_TEMPLATE + ",\n    " + ONE_LINER_TEMPLATE
    return MCQ_TEMPLATE


def build_contest_prompt(
    language: str,
    difficulty_level: str,
    contest_type: str,
    question_count: int,
    topic: str | None = None,
) -> str:
    difficulty = DIFFICULTY_INSTRUCTIONS.get(
        difficulty_level.lower(), "Appropriate difficulty for general learners"
    )
    topic_line = f"- Specific topic: {topic}" if topic else "- Topic: general language proficiency"
    return f"""Generate a language learning contest for {language}.

Contest specifications:
- Language: {language}
- Difficulty level: {difficulty_level}
- Contest type: {contest_type}
- Number of questions: {question_count}
{topic_line}

Difficulty guidelines:
{difficulty}

Question type requirements:
{TYPE_INSTRUCTIONS.get(contest_type, TYPE_INSTRUCTIONS[MCQ])}

Requirements:
1. Every question tests real language skills (vocabulary, grammar, comprehension, usage)
2. Questions are practical and culturally relevant
3. Correct answers are clear and unambiguous
4. Wrong options are plausible but clearly incorrect
5. No translation-only or trivial questions

Output format (valid JSON only):
{{
  "title": "Engaging contest title",
  "description": "What the contest tests",
  "questions": [
    {_question_template(contest_type)}
  ]
}}"""


class ContestGenerator:
    """Generates a validated question set. Swappable in tests."""

    def __init__(self, complete=complete_text):
        self._complete = complete

    def generate_contest(
        self,
        language: str,
        difficulty_level: str,
        contest_type: str,
        question_count: int,
        topic: str | None = None,
    ) -> dict:
        print(
            f"[CONTEST] generating type={contest_type} language={language} "
            f"level={difficulty_level} questions={question_count}",
            flush=True,
        )
        text = self._complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_contest_prompt(
                    language, difficulty_level, contest_type, question_count, topic
                )},
            ],
            max_tokens=4096,
            temperature=0.8,
            json_mode=True,
        )
        data = parse_ai_json(text)
        if not isinstance(data, dict):
            raise AIGenerationFailed("Failed to generate contest: unexpected JSON shape")

        try:
            validate_contest_structure(data.get("title"), data.get("questions"), contest_type)
        except InvalidQuestionFormat as e:
            print(f"[CONTEST] generated contest rejected: {e.message}", flush=True)
            raise AIGenerationFailed(f"Failed to generate contest: {e.message}")

        print(f"[CONTEST] generated {len(data['questions'])} questions", flush=True)
        return data
