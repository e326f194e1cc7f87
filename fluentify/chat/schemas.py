from typing import Any

from pydantic import Field

from fluentify.core.schemas import CamelModel


class CreateSessionRequest(CamelModel):
    language: str | None = None
    title: str | None = Field(None, max_length=255)


class UpdateSessionRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)


class SendMessageRequest(CamelModel):
    # Checked by validate_message so empty and oversized messages share one error code
    message: Any = None
