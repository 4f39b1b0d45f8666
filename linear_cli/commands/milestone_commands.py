# linear_cli/commands/milestone_commands.py

import asyncio
from typing import Optional, Sequence

import click

from ..api import LinearAPI
from ..config import ROADMAP_ISSUES_PAGE_SIZE, Config
from ..exceptions import EntityNotFound, LinearCLIError
from ..matching import find_milestone, name_matches, require_by_name
from ..ordering import MilestoneSiblings, SortOrderEngine, resolve_direction
from .issue_commands import require_success
from .project_commands import alias_badge


class MilestoneCommands:
    def __init__(self, linear_api: LinearAPI, config: Config):
        self.linear_api = linear_api
        self.config = config
        self.team_key = config.team_key

    async def list_milestones(self, project: Optional[str] = None, show_all: bool = False):
        projects = await self.linear_api.get_projects(self.team_key)
        if not show_all:
            projects = [p for p in projects if not p.is_closed]
        if project:
            query = self.config.resolve_alias(project)
            projects = [p for p in projects if name_matches(p.name, query)]

        click.secho("Milestones:\n", bold=True)
        for p in projects:
            if not p.milestones:
                continue
            click.echo(f"{alias_badge(self.config, p.name)}{click.style(p.name, bold=True)}")
            for m in p.milestones:
                date = f" ({m.target_date})" if m.target_date else ""
                status = f" [{m.status}]" if m.status != "planned" else ""
                click.echo(f"  {alias_badge(self.config, m.name)}{m.name}{date}{status}")
            click.echo("")

    async def show_milestone(self, name: str):
        query = self.config.resolve_alias(name)
        projects, issues = await asyncio.gather(
            self.linear_api.get_projects(self.team_key),
            self.linear_api.get_issues(self.team_key, first=ROADMAP_ISSUES_PAGE_SIZE),
        )

        project, milestone = find_milestone(projects, query)
        if milestone is None:
            raise EntityNotFound("Milestone", query)

        click.echo(f"# {milestone.name}\n")
        click.echo(f"Project: {project.name}")
        click.echo(f"Status: {milestone.status}")
        if milestone.target_date:
            click.echo(f"Target: {milestone.target_date}")
        if milestone.description:
            click.echo(f"\n## Description\n{milestone.description}")

        issues = [i for i in issues if i.milestone_id == milestone.id]
        if not issues:
            return

        groups = [
            ("In Progress", [i for i in issues if i.state.type == "started"]),
            (
                "Backlog",
                [
                    i
                    for i in issues
                    if i.state.type not in ("completed", "started", "canceled")
                ],
            ),
            ("Done", [i for i in issues if i.state.type == "completed"]),
        ]
        click.echo("\n## Issues\n")
        for heading, group in groups:
            if not group:
                continue
            click.echo(f"### {heading}")
            for issue in group:
                click.echo(f"- {issue.identifier}: {issue.title}")
            click.echo("")

    async def create_milestone(
        self,
        name: str,
        project: Optional[str],
        description: Optional[str] = None,
        target_date: Optional[str] = None,
    ):
        if not project:
            raise LinearCLIError("Project required (--project)")

        projects = await self.linear_api.get_projects(self.team_key)
        matched = require_by_name(projects, self.config.resolve_alias(project), "Project")

        data = {"projectId": matched.id, "name": name}
        if description:
            data["description"] = description
        if target_date:
            data["targetDate"] = target_date

        require_success(await self.linear_api.create_milestone(data), "create milestone")
        click.secho(f"Created milestone: {name}", fg="green")
        click.echo(f"Project: {matched.name}")

    async def _siblings_for(self, milestone: str, project: Optional[str]) -> MilestoneSiblings:
        """The sibling set of the project owning ``milestone``."""
        projects = await self.linear_api.get_projects(self.team_key)
        if project:
            owner = require_by_name(projects, self.config.resolve_alias(project), "Project")
        else:
            owner, found = find_milestone(projects, milestone)
            if found is None:
                raise EntityNotFound("Milestone", milestone)
        return MilestoneSiblings(self.linear_api, owner)

    async def move_milestone(
        self,
        name: str,
        before: Optional[str] = None,
        after: Optional[str] = None,
        project: Optional[str] = None,
    ):
        resolve_direction(before, after)
        name = self.config.resolve_alias(name)
        siblings = await self._siblings_for(name, project)
        moved = await SortOrderEngine(siblings).move_one(
            name,
            before=self.config.resolve_alias(before),
            after=self.config.resolve_alias(after),
        )
        click.secho(
            f'Moved "{moved.entity.name}" {moved.direction.value} "{moved.anchor.name}"',
            fg="green",
        )

    async def reorder_milestones(self, names: Sequence[str], project: Optional[str]):
        if not project:
            raise LinearCLIError("--project required")

        projects = await self.linear_api.get_projects(self.team_key)
        owner = require_by_name(projects, self.config.resolve_alias(project), "Project")
        engine = SortOrderEngine(MilestoneSiblings(self.linear_api, owner))
        ordered = await engine.reorder_all([self.config.resolve_alias(n) for n in names])

        click.secho(f"Reordered milestones in {owner.name}:", fg="green")
        for position, milestone in enumerate(ordered, 1):
            click.echo(f"  {position}. {milestone.name}")
