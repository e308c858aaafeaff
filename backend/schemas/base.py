"""Wire model base: snake_case in Python, camelCase on the wire."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestModel(ApiModel):
    """Inbound bodies: unknown keys are rejected, not ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")
