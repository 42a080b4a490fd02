"""Queue metadata persisted by the file backend."""

from pydantic import BaseModel, Field


class QueueMetadata(BaseModel):
    """Content of a queue directory's ``queue.json``.

    Attributes:
        name: Logical queue name (the directory itself is named by its hash).
        visibility_timeout: Timeout in milliseconds applied to every pull.
    """

    name: str = Field(description="Logical queue name")
    visibility_timeout: int = Field(ge=0, description="Visibility timeout in milliseconds")

    model_config = {"frozen": True, "extra": "forbid"}
