"""
Tests for project and skill listings.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from portfolio.models import Project, ProjectStatus
from portfolio.services.content import SKILLS, default_projects, list_projects, list_skills


def make_project(title: str, **overrides) -> Project:
    values = {
        "title": title,
        "description": f"{title} description",
        "technologies": ["Python"],
        "start_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Project(**values)


class TestProjectModel:
    """Tests for Project defaults."""

    def test_short_description_is_derived(self):
        project = make_project("Engine", description="d" * 300)
        assert project.short_description == "d" * 197 + "..."

    def test_explicit_short_description_is_kept(self):
        assert make_project("Engine", short_description="Short").short_description == "Short"


class TestListProjects:
    """Tests for list_projects."""

    @pytest.mark.asyncio
    async def test_empty_table_serves_defaults(self, async_session):
        projects = await list_projects(async_session)

        assert projects == default_projects()
        assert projects[0]["title"] == "Kheir W Barke"
        assert projects[0]["id"] == "1"
        assert projects[0]["startDate"].startswith("2025-09-01")

    @pytest.mark.asyncio
    async def test_active_projects_in_display_order(self, async_session):
        now = datetime.now(timezone.utc)
        async_session.add_all(
            [
                make_project("Second", display_order=2),
                make_project("First older", display_order=1, created_at=now - timedelta(days=1)),
                make_project("First newer", display_order=1, created_at=now),
                make_project("Retired", status=ProjectStatus.ARCHIVED.value),
            ]
        )
        await async_session.commit()

        projects = await list_projects(async_session)

        assert [p["title"] for p in projects] == ["First newer", "First older", "Second"]
        assert projects[0]["technologies"] == ["Python"]
        assert "githubUrl" in projects[0]
        assert "displayOrder" in projects[0]

    @pytest.mark.asyncio
    async def test_limit(self, async_session):
        async_session.add_all([make_project(f"Project {i}") for i in range(5)])
        await async_session.commit()

        assert len(await list_projects(async_session, limit=3)) == 3

    @pytest.mark.asyncio
    async def test_query_failure_serves_defaults(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db gone")))
        session.rollback = AsyncMock()

        assert await list_projects(session) == default_projects()
        session.rollback.assert_awaited_once()


class TestListSkills:
    """Tests for the static skill list."""

    def test_twelve_skills(self):
        skills = list_skills()
        assert len(skills) == 12
        assert skills == SKILLS

    def test_levels_are_percentages(self):
        assert all(0 <= s["level"] <= 100 for s in list_skills())
