from pydantic import Field

from fluentify.core.schemas import CamelModel


class PreferencesRequest(CamelModel):
    language: str = Field(..., min_length=1, max_length=100)
    expected_duration: str = Field(..., min_length=1, max_length=100)
