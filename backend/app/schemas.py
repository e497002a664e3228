from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models import HeadlineItem


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    error: str


class HeadlineOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    url: str
    published_at: datetime | None = None
    source_label: str

    @classmethod
    def from_item(cls, item: HeadlineItem) -> "HeadlineOut":
        return cls(
            title=item.title,
            url=item.url,
            published_at=item.published_at,
            source_label=item.source_label,
        )


class SourceOut(BaseModel):
    key: str
    name: str
    source_type: str
    endpoint: str
    requires_auth: bool
    has_credential: bool


class SourcesResponse(BaseModel):
    sources: list[SourceOut]
