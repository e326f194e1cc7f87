"""
Typed application errors.

Engines and services raise these; they carry an error *kind* and a stable
numeric code, never an HTTP status. The exception handlers in main.py are the
only place a kind becomes a status code.

Error code convention:
- 1xxxx: common
- 2xxxx: authentication & authorization
- 3xxxx: courses
- 4xxxx: lessons
- 5xxxx: progress
- 6xxxx: preferences
- 8xxxx: voice practice
- 9xxxx: chat tutor
- 10xxxx: contests
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    WINDOW_VIOLATION = "window_violation"
    UPSTREAM_FAILURE = "upstream_failure"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"


class AppError(Exception):
    kind = ErrorKind.INVALID_INPUT
    code = 10004
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class NotFound(AppError):
    kind = ErrorKind.NOT_FOUND
    code = 10006
    message = "Resource not found"


class Conflict(AppError):
    kind = ErrorKind.CONFLICT
    code = 10009
    message = "Resource already exists"


class InvalidInput(AppError):
    kind = ErrorKind.INVALID_INPUT
    code = 10002
    message = "Invalid request body"


class WindowViolation(AppError):
    kind = ErrorKind.WINDOW_VIOLATION
    code = 100000
    message = "Contest is not open for submissions"


class UpstreamFailure(AppError):
    kind = ErrorKind.UPSTREAM_FAILURE
    code = 10005
    message = "Upstream service failed"


class Unauthorized(AppError):
    kind = ErrorKind.UNAUTHORIZED
    code = 20004
    message = "Unauthorized access"


class Forbidden(AppError):
    kind = ErrorKind.FORBIDDEN
    code = 20005
    message = "Access forbidden"


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------

class MissingRequiredFields(InvalidInput):
    code = 10011
    message = "Missing required fields"


class ValidationFailed(InvalidInput):
    code = 10008
    message = "Validation failed"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class NoTokenProvided(Unauthorized):
    code = 20001
    message = "No authentication token provided"


class InvalidAuthToken(Unauthorized):
    code = 20002
    message = "Invalid authentication token"


class TokenExpired(Unauthorized):
    code = 20003
    message = "Authentication token has expired"


class InvalidCredentials(Unauthorized):
    code = 20006
    message = "Invalid email or password"


class EmailAlreadyExists(Conflict):
    code = 20007
    message = "Email already exists"


class UserNotFound(NotFound):
    code = 20008
    message = "User not found"


class AdminOnly(Forbidden):
    code = 20009
    message = "Admin access required"


class LearnerOnly(Forbidden):
    code = 20010
    message = "Learner access required"


class AdminSignupDisabled(Forbidden):
    code = 20013
    message = "Admin signup is disabled"


# ---------------------------------------------------------------------------
# Courses / lessons / progress
# ---------------------------------------------------------------------------

class CourseNotFound(NotFound):
    code = 30001
    message = "Course not found"


class DuplicateActiveCourse(Conflict):
    code = 30005
    message = "You already have an active course for this language"


class AIGenerationFailed(UpstreamFailure):
    code = 30010
    message = "Failed to generate content"


class InvalidCourseData(UpstreamFailure):
    code = 30011
    message = "Invalid course data"


class LessonNotFound(NotFound):
    code = 40001
    message = "Lesson not found"


class LessonAlreadyCompleted(Conflict):
    code = 40002
    message = "Lesson already completed"


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

class PreferencesNotFound(NotFound):
    code = 60001
    message = "Preferences not found"


class DuplicatePreferences(Conflict):
    code = 60004
    message = "Preferences already exist"


# ---------------------------------------------------------------------------
# Voice practice
# ---------------------------------------------------------------------------

class RetellNotConfigured(UpstreamFailure):
    code = 80001
    message = "Retell AI service is not configured. Please contact support."


class RetellAgentRequired(InvalidInput):
    code = 80002
    message = "Retell Agent ID is required"


class RetellApiError(UpstreamFailure):
    code = 80004
    message = "Retell AI service error"


class RetellInvalidAgent(InvalidInput):
    code = 80005
    message = "Invalid or inactive Retell AI agent"


class RetellRateLimited(UpstreamFailure):
    code = 80006
    message = "Retell AI rate limit exceeded. Please try again later."


class RetellAuthenticationFailed(UpstreamFailure):
    code = 80007
    message = "Retell AI authentication failed"


# ---------------------------------------------------------------------------
# Chat tutor
# ---------------------------------------------------------------------------

class ChatSessionNotFound(NotFound):
    code = 90001
    message = "Chat session not found"


class InvalidChatMessage(InvalidInput):
    code = 90003
    message = "Message content is required"


class ChatSessionInactive(InvalidInput):
    code = 90008
    message = "Chat session is no longer active"


class ChatAccessDenied(Forbidden):
    code = 90009
    message = "You don't have access to this chat session"


# ---------------------------------------------------------------------------
# Contests
# ---------------------------------------------------------------------------

class ContestNotFound(NotFound):
    code = 100001
    message = "Contest not found"


class ContestAlreadySubmitted(Conflict):
    code = 100005
    message = "You have already submitted this contest"


class ContestNotPublished(WindowViolation):
    code = 100006
    message = "Contest is not published yet"


class ContestEnded(WindowViolation):
    code = 100007
    message = "Contest has ended"


class ContestNotStarted(WindowViolation):
    code = 100008
    message = "Contest has not started yet"


class InvalidContestType(InvalidInput):
    code = 100009
    message = "Invalid contest type. Must be mcq, one-liner, or mix"


class InvalidAnswersFormat(InvalidInput):
    code = 100012
    message = "Invalid answers format"


class InvalidQuestionFormat(InvalidInput):
    code = 100016
    message = "Invalid question format"
