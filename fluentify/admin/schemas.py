from pydantic import Field

from fluentify.core.schemas import CamelModel


class UpdateLearnerRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, min_length=3, max_length=255)


class ResetPasswordRequest(CamelModel):
    new_password: str = Field(..., min_length=6)
