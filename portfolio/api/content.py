"""Project and skill listing endpoints."""

from fastapi import APIRouter

from portfolio.api.deps import AsyncSessionDep
from portfolio.core.rate_limit import RateLimitStandard
from portfolio.schemas.content import ListResponse, ProjectResponse, SkillResponse, create_list_response
from portfolio.services.content import list_projects, list_skills

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/projects", response_model=ListResponse[ProjectResponse], response_model_by_alias=True)
async def get_projects(db: AsyncSessionDep, _: RateLimitStandard) -> dict:
    """Active projects, or the built-in showcase when none are stored."""
    return create_list_response(await list_projects(db))


@router.get("/skills", response_model=ListResponse[SkillResponse])
async def get_skills(_: RateLimitStandard) -> dict:
    return create_list_response(list_skills())
