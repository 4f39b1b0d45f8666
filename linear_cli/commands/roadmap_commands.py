# linear_cli/commands/roadmap_commands.py

import asyncio
from typing import List

import click

from ..api import LinearAPI
from ..blocking import display_sort_key
from ..config import CLOSED_STATE_TYPES, ROADMAP_ISSUES_PAGE_SIZE, Config
from ..models import LinearIssue
from ..ordering import sort_key

MAX_ISSUES_PER_GROUP = 5


def _open(issues: List[LinearIssue]) -> List[LinearIssue]:
    return [i for i in issues if i.state.type not in CLOSED_STATE_TYPES]


class RoadmapCommands:
    def __init__(self, linear_api: LinearAPI, config: Config):
        self.linear_api = linear_api
        self.team_key = config.team_key

    async def roadmap(self, show_all: bool = False):
        """Projects by rank with issue counts, milestones and their open issues."""
        projects, issues = await asyncio.gather(
            self.linear_api.get_projects(self.team_key),
            self.linear_api.get_issues(self.team_key, first=ROADMAP_ISSUES_PAGE_SIZE),
        )

        projects = sorted(projects, key=sort_key, reverse=True)
        if not show_all:
            projects = [p for p in projects if not p.is_closed]

        click.secho("Roadmap\n", bold=True)

        for project in projects:
            project_issues = [i for i in issues if i.project_id == project.id]
            done = sum(1 for i in project_issues if i.state.type == "completed")
            in_progress = sum(1 for i in project_issues if i.state.type == "started")
            backlog = sum(
                1
                for i in project_issues
                if i.state.type not in ("completed", "started", "canceled")
            )

            dates = []
            if project.start_date:
                dates.append(f"start: {project.start_date}")
            if project.target_date:
                dates.append(f"target: {project.target_date}")
            date_str = f" ({', '.join(dates)})" if dates else ""
            priority_str = f" [P{project.priority}]" if project.priority > 0 else ""

            click.secho(f"{project.name}{priority_str}{date_str}", bold=True)
            click.echo(
                f"  {click.style(f'✓ {done}', fg='green')} done | "
                f"{click.style(f'→ {in_progress}', fg='yellow')} in progress | "
                f"{click.style(f'○ {backlog}', fg='bright_black')} backlog"
            )

            for milestone in sorted(project.milestones, key=sort_key, reverse=True):
                milestone_issues = [i for i in project_issues if i.milestone_id == milestone.id]
                milestone_done = sum(1 for i in milestone_issues if i.state.type == "completed")
                if milestone.status == "completed":
                    icon = click.style("✓", fg="green")
                elif milestone.status == "inProgress":
                    icon = click.style("→", fg="yellow")
                else:
                    icon = "○"
                target = f" ({milestone.target_date})" if milestone.target_date else ""
                click.echo(
                    f"  {icon} {milestone.name}{target}: "
                    f"{milestone_done}/{len(milestone_issues)} done"
                )
                self._echo_open_issues(_open(milestone_issues))

            unmilestoned = _open([i for i in project_issues if not i.milestone_id])
            if unmilestoned and project.milestones:
                click.secho(
                    f"  ({len(unmilestoned)} issues not in milestones)", fg="bright_black"
                )
            elif unmilestoned:
                self._echo_open_issues(unmilestoned)

            click.echo("")

    def _echo_open_issues(self, issues: List[LinearIssue]):
        issues = sorted(issues, key=display_sort_key(None))
        for issue in issues[:MAX_ISSUES_PER_GROUP]:
            icon = click.style("→", fg="yellow") if issue.state.type == "started" else "○"
            click.echo(f"    {icon} {issue.identifier}: {issue.title}")
        if len(issues) > MAX_ISSUES_PER_GROUP:
            click.secho(
                f"    ... and {len(issues) - MAX_ISSUES_PER_GROUP} more", fg="bright_black"
            )
