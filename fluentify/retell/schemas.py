from fluentify.core.schemas import CamelModel


class CreateCallRequest(CamelModel):
    agent_id: str | None = None
