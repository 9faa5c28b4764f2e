"""Response envelope schemas."""
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from samehadaku.models import Pagination


def camelize(value: Any) -> Any:
    """Convert dataclasses / dicts / lists into JSON-ready data with camelCase keys."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, dict):
        return {to_camel(k): camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationResponse(CamelModel):
    """Caller-facing pagination block."""
    current_page: int
    has_prev_page: bool
    prev_page: Optional[int] = None
    has_next_page: bool
    next_page: Optional[int] = None
    total_pages: int

    @classmethod
    def from_pagination(cls, pagination: Optional[Pagination]) -> Optional["PaginationResponse"]:
        if pagination is None:
            return None
        return cls(**asdict(pagination))


class ApiResponse(CamelModel):
    """Envelope shared by every scrape route."""
    status: str = "success"
    creator: str = "Samehadaku API"
    message: str = ""
    data: Any = None
    pagination: Optional[PaginationResponse] = None

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)
