# linear_cli/commands/project_commands.py

from typing import Optional, Sequence

import click

from ..api import LinearAPI
from ..config import Config
from ..exceptions import EntityNotFound
from ..matching import require_by_name
from ..ordering import ProjectSiblings, SortOrderEngine
from ..utils import format_table
from .issue_commands import require_success


def alias_badge(config: Config, name: str) -> str:
    """``[CODE] `` prefix for names covered by an alias, else empty."""
    code = config.find_alias_for(name)
    return f"{click.style(f'[{code}]', bold=True)} " if code else ""


class ProjectCommands:
    def __init__(self, linear_api: LinearAPI, config: Config):
        self.linear_api = linear_api
        self.config = config
        self.team_key = config.team_key

    async def list_projects(self, show_all: bool = False):
        projects = await self.linear_api.get_projects(self.team_key)
        if not show_all:
            projects = [p for p in projects if not p.is_closed]

        rows = [
            [
                f"{alias_badge(self.config, p.name)}{p.name}",
                p.state or "",
                f"{int(p.progress * 100)}%",
            ]
            for p in projects
        ]
        click.secho("Projects:\n", bold=True)
        click.echo(format_table(rows))

    async def show_project(self, name: str):
        query = self.config.resolve_alias(name)
        projects = await self.linear_api.get_projects(self.team_key, with_issues=True)
        project = require_by_name(projects, query, "Project")

        click.echo(f"# {project.name}\n")
        click.echo(f"State: {project.state}")
        click.echo(f"Progress: {int(project.progress * 100)}%")
        click.echo(f"\n## Description\n{project.description or 'No description'}")

        by_state = {}
        for issue in project.issues:
            by_state.setdefault(issue.state.name, []).append(issue)

        click.echo("\n## Issues\n")
        for state, issues in by_state.items():
            click.echo(f"### {state}")
            for issue in issues:
                click.echo(f"- {issue.identifier}: {issue.title}")
            click.echo("")

    async def create_project(self, name: str, description: str = ""):
        team_id = await self.linear_api.get_team_id(self.team_key)
        if not team_id:
            raise EntityNotFound("Team", self.team_key)

        result = require_success(
            await self.linear_api.create_project(team_id, name, description or ""),
            "create project",
        )
        project = result["project"]
        click.secho(f"Created project: {project['name']}", fg="green")
        click.echo(project.get("url") or "")

    async def complete_project(self, name: str):
        query = self.config.resolve_alias(name)
        projects = await self.linear_api.get_projects(self.team_key)
        project = require_by_name(projects, query, "Project")

        require_success(
            await self.linear_api.update_project(project.id, {"state": "completed"}),
            "complete project",
        )
        click.secho(f"Completed project: {project.name}", fg="green")

    def _engine(self) -> SortOrderEngine:
        return SortOrderEngine(ProjectSiblings(self.linear_api, self.team_key))

    async def move_project(
        self, name: str, before: Optional[str] = None, after: Optional[str] = None
    ):
        moved = await self._engine().move_one(
            self.config.resolve_alias(name),
            before=self.config.resolve_alias(before),
            after=self.config.resolve_alias(after),
        )
        click.secho(
            f'Moved "{moved.entity.name}" {moved.direction.value} "{moved.anchor.name}"',
            fg="green",
        )

    async def reorder_projects(self, names: Sequence[str]):
        ordered = await self._engine().reorder_all(
            [self.config.resolve_alias(name) for name in names]
        )
        click.secho("Reordered projects:", fg="green")
        for position, project in enumerate(ordered, 1):
            click.echo(f"  {position}. {project.name}")
