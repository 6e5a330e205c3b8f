"""
Portfolio Content Service
Projects from the database (with built-in defaults) and the static skill list.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.models import Project, ProjectStatus
from portfolio.schemas.content import ProjectResponse, SkillResponse

logger = logging.getLogger(__name__)

PROJECT_LIMIT = 20

# Shown when the projects table is empty or unreachable
DEFAULT_PROJECTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "Kheir W Barke",
        "description": "AI-powered supermarket management system with intelligent automation and GPS tracking.",
        "technologies": ["AI/ML", "Node.js", "Python", "React", "MongoDB"],
        "features": ["AI inventory management", "GPS tracking", "Automated checkout"],
        "start_date": datetime(2025, 9, 1, tzinfo=timezone.utc),
        "end_date": "Present",
        "status": ProjectStatus.ACTIVE.value,
        "github_url": "https://github.com/andyters/kheir-w-barke",
        "live_url": "#",
        "image_url": "https://images.unsplash.com/photo-1556742049-0cfed4f6a45d?auto=format&fit=crop&w=800&q=80",
        "featured": True,
        "views": 1250,
    }
]

SKILLS: list[dict[str, Any]] = [
    {"name": "Blender", "category": "3D Design", "level": 90, "icon": "fas fa-cube"},
    {"name": "Godot", "category": "Game Development", "level": 85, "icon": "fas fa-gamepad"},
    {"name": "Unity", "category": "Game Development", "level": 80, "icon": "fab fa-unity"},
    {"name": "C#", "category": "Programming", "level": 88, "icon": "fas fa-code"},
    {"name": "Python", "category": "Programming", "level": 92, "icon": "fab fa-python"},
    {"name": "JavaScript", "category": "Programming", "level": 90, "icon": "fab fa-js"},
    {"name": "HTML/CSS", "category": "Frontend", "level": 95, "icon": "fab fa-html5"},
    {"name": "Node.js", "category": "Backend", "level": 90, "icon": "fab fa-node-js"},
    {"name": "Express.js", "category": "Backend", "level": 88, "icon": "fas fa-server"},
    {"name": "AI/ML", "category": "CS & AI", "level": 87, "icon": "fas fa-brain"},
    {"name": "Database Design", "category": "Database", "level": 89, "icon": "fas fa-database"},
    {"name": "MongoDB", "category": "Database", "level": 88, "icon": "fas fa-leaf"},
]


def serialize_project(project: Any) -> dict[str, Any]:
    """Project row or default-project dict as camelCase JSON."""
    if isinstance(project, dict):
        model = ProjectResponse.model_validate(project)
    else:
        model = ProjectResponse.model_validate(project, from_attributes=True)
    return model.model_dump(by_alias=True, mode="json")


def default_projects() -> list[dict[str, Any]]:
    return [serialize_project(p) for p in DEFAULT_PROJECTS]


async def list_projects(db: AsyncSession, limit: int = PROJECT_LIMIT) -> list[dict[str, Any]]:
    """
    Active projects ordered by display_order, newest first within an order.

    Falls back to DEFAULT_PROJECTS when there are none or the query fails.
    """
    query = (
        select(Project)
        .where(Project.status == ProjectStatus.ACTIVE.value)
        .order_by(Project.display_order.asc(), Project.created_at.desc())
        .limit(limit)
    )
    try:
        result = await db.execute(query)
        projects = result.scalars().all()
    except Exception as e:
        logger.error(f"Error fetching projects, serving defaults: {e}")
        await db.rollback()
        return default_projects()

    if not projects:
        return default_projects()
    return [serialize_project(p) for p in projects]


def list_skills() -> list[dict[str, Any]]:
    return [SkillResponse.model_validate(skill).model_dump() for skill in SKILLS]
