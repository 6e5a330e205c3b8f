"""Project and skill listing schemas."""
from datetime import date, datetime
from typing import Any, Generic, List, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class ProjectResponse(BaseModel):
    """A portfolio project as shown on the site."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: Union[UUID, int, str]
    title: str
    description: str
    short_description: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    start_date: Union[datetime, date]
    end_date: str = "Present"
    status: str
    github_url: Optional[str] = None
    live_url: Optional[str] = None
    image_url: Optional[str] = None
    featured: bool = False
    display_order: int = 0
    views: int = 0

    @field_serializer("id")
    def serialize_id(self, value: Any) -> str:
        return str(value)

    @field_serializer("start_date")
    def serialize_start_date(self, value: Union[datetime, date]) -> str:
        return value.isoformat()


class SkillResponse(BaseModel):
    name: str
    category: str
    level: int = Field(..., ge=0, le=100)
    icon: str


class ListResponse(BaseModel, Generic[T]):
    """
    Standard list envelope:
    {
        "success": true,
        "count": int,
        "data": [...]
    }
    """
    success: bool = True
    count: int
    data: List[T]


def create_list_response(items: List[Any]) -> dict:
    """Wrap already-serialized items in the list envelope."""
    return {"success": True, "count": len(items), "data": items}
